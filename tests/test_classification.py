"""Tests for document and invoice classification."""

from decimal import Decimal

import pytest

from finca.domain.classification import (
    INVOICE_MEJORA,
    INVOICE_MOBILIARIO,
    INVOICE_REPARACION,
    classify_document_kind,
    classify_invoice,
    metadata_amount,
    suggest_aeat_category,
)
from finca.domain.entities import DocumentKind


class TestDocumentKind:
    """classify_document_kind."""

    def test_tipo_wins(self):
        assert classify_document_kind({"tipo": "Factura"}, "contrato.pdf") is DocumentKind.INVOICE
        assert classify_document_kind({"tipo": "Contrato"}) is DocumentKind.CONTRACT
        assert classify_document_kind({"tipo": "Extracto bancario"}) is DocumentKind.BANK_STATEMENT

    @pytest.mark.parametrize(
        "filename,kind",
        [
            ("factura_iberdrola_enero.pdf", DocumentKind.INVOICE),
            ("Contrato arrendamiento piso.pdf", DocumentKind.CONTRACT),
            ("extracto-enero.pdf", DocumentKind.BANK_STATEMENT),
            ("movimientos.xlsx", DocumentKind.BANK_STATEMENT),
            ("export.csv", DocumentKind.BANK_STATEMENT),
            ("foto.jpg", DocumentKind.OTHER),
        ],
    )
    def test_filename_hints(self, filename, kind):
        assert classify_document_kind({}, filename) is kind

    def test_nothing_known(self):
        assert classify_document_kind({}) is DocumentKind.OTHER


class TestInvoiceClassification:
    """classify_invoice."""

    def test_furniture(self):
        assert classify_invoice({"description": "Sofá tres plazas", "amount": "899,00"}) == INVOICE_MOBILIARIO
        assert classify_invoice({"tipo": "mobiliario"}) == INVOICE_MOBILIARIO

    def test_improvement_keywords(self):
        assert classify_invoice({"description": "Reforma integral baño", "amount": "120"}) == INVOICE_MEJORA

    def test_amount_threshold(self):
        assert classify_invoice({"description": "Fontanero", "amount": "300.01"}) == INVOICE_MEJORA
        assert classify_invoice({"description": "Fontanero", "amount": "300.00"}) == INVOICE_REPARACION

    def test_capex_flag(self):
        assert classify_invoice({"description": "Pintura", "amount": 80, "is_capex": True}) == INVOICE_MEJORA

    def test_default_is_repair(self):
        assert classify_invoice({"description": "Cambio de grifo", "amount": "45,00"}) == INVOICE_REPARACION


class TestAeatSuggestion:
    """suggest_aeat_category."""

    def test_provider_hint(self):
        suggestion = suggest_aeat_category("Iberdrola Clientes S.A.U.", Decimal("49.10"))
        assert suggestion.fiscal_type == "suministros"
        assert suggestion.box == "0113"
        assert suggestion.confidence == 0.9

    def test_description_hint(self):
        suggestion = suggest_aeat_category("Administrador Fincas Pérez", 60, "Cuota comunidad enero")
        assert suggestion.fiscal_type == "comunidad"
        assert suggestion.box == "0109"
        assert suggestion.confidence == 0.8

    def test_amount_fallback(self):
        assert suggest_aeat_category("Talleres López", 1500).fiscal_type == "capex-mejora-ampliacion"
        low = suggest_aeat_category("Talleres López", 150)
        assert low.fiscal_type == "reparacion-conservacion"
        assert low.confidence == 0.3


def test_metadata_amount():
    assert metadata_amount({"amount": "", "total_amount": "49,10"}, "amount", "total_amount") == Decimal("49.10")
    assert metadata_amount({"amount": "n/a"}, "amount") is None
    assert metadata_amount({}, "amount") is None
