"""Document and invoice classification heuristics.

Metadata dictionaries are the fields extracted by OCR (or typed in by the
user): tipo, provider, amount, base_amount, vat_amount, date, description,
is_capex, detected_account.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging
from pathlib import Path
from typing import Any, Optional

from finca.domain.entities import DocumentKind
from finca.utils.amount_parser import to_decimal
from finca.utils.text import normalize_text

logger = logging.getLogger(__name__)

# Invoices above this total are treated as improvements
MEJORA_AMOUNT_THRESHOLD = Decimal("300")

INVOICE_MEJORA = "Mejora"
INVOICE_MOBILIARIO = "Mobiliario"
INVOICE_REPARACION = "Reparación y Conservación"

_KIND_BY_TIPO = {
    "factura": DocumentKind.INVOICE,
    "recibo": DocumentKind.INVOICE,
    "mejora": DocumentKind.INVOICE,
    "mobiliario": DocumentKind.INVOICE,
    "invoice": DocumentKind.INVOICE,
    "contrato": DocumentKind.CONTRACT,
    "contract": DocumentKind.CONTRACT,
    "extracto bancario": DocumentKind.BANK_STATEMENT,
    "extracto": DocumentKind.BANK_STATEMENT,
    "bank statement": DocumentKind.BANK_STATEMENT,
}

_FILENAME_HINTS = [
    (("extracto", "movimientos", "statement"), DocumentKind.BANK_STATEMENT),
    (("factura", "invoice", "recibo", "ticket"), DocumentKind.INVOICE),
    (("contrato", "arrendamiento", "alquiler", "contract"), DocumentKind.CONTRACT),
]

_STATEMENT_SUFFIXES = {".csv", ".xlsx", ".xls", ".xlsm", ".txt"}

MEJORA_KEYWORDS = [
    "reforma",
    "obra",
    "instalacion",
    "ventanas",
    "ampliacion",
    "rehabilitacion",
    "modernizacion",
    "renovacion",
    "mejora",
    "construccion",
    "albanileria",
    "aislamiento",
    "tejado",
    "fachada",
    "aire acondicionado",
    "cocina nueva",
    "bano nuevo",
]

MOBILIARIO_KEYWORDS = [
    "sofa",
    "cama",
    "colchon",
    "frigorifico",
    "lavadora",
    "horno",
    "mueble",
    "muebles",
    "lampara",
    "mesa",
    "silla",
    "armario",
    "televisor",
    "microondas",
    "lavavajillas",
    "nevera",
    "electrodomestico",
    "mobiliario",
    "menaje",
]

# AEAT rental income return: expense type -> box
AEAT_BOXES = {
    "financiacion": "0105",
    "reparacion-conservacion": "0106",
    "comunidad": "0109",
    "servicios-personales": "0112",
    "suministros": "0113",
    "seguros": "0114",
    "tributos-locales": "0115",
    "amortizacion-muebles": "0117",
    "capex-mejora-ampliacion": "0106",
}

PROVIDER_HINTS = {
    "iberdrola": "suministros",
    "endesa": "suministros",
    "naturgy": "suministros",
    "repsol": "suministros",
    "aqualia": "suministros",
    "canal isabel ii": "suministros",
    "mapfre": "seguros",
    "zurich": "seguros",
    "axa": "seguros",
    "allianz": "seguros",
    "bbva": "financiacion",
    "santander": "financiacion",
    "caixabank": "financiacion",
    "bankinter": "financiacion",
    "ayuntamiento": "tributos-locales",
    "diputacion": "tributos-locales",
}

_DESCRIPTION_HINTS = [
    (("comunidad", "community"), "comunidad"),
    (("seguro", "insurance"), "seguros"),
    (("ibi", "basura", "waste"), "tributos-locales"),
]

CAPEX_SUGGESTION_AMOUNT = Decimal("1000")


@dataclass(frozen=True)
class AeatSuggestion:
    """Suggested AEAT expense type with its return box."""

    fiscal_type: str
    box: str
    confidence: float


def _has_keyword(text: str, keywords: list[str]) -> bool:
    padded = f" {text} "
    return any(f" {keyword} " in padded for keyword in keywords)


def metadata_amount(metadata: dict[str, Any], *keys: str) -> Optional[Decimal]:
    """First parseable amount among the given metadata keys, or None."""
    for key in keys:
        value = metadata.get(key)
        if value is None or value == "":
            continue
        try:
            return to_decimal(value)
        except ValueError:
            logger.debug("Ignoring unparseable %s value %r", key, value)
    return None


def classify_document_kind(metadata: dict[str, Any], filename: Optional[str] = None) -> DocumentKind:
    """Decide the document kind from the tipo field, then from the file name."""
    tipo = normalize_text(str(metadata.get("tipo") or ""))
    if tipo in _KIND_BY_TIPO:
        return _KIND_BY_TIPO[tipo]

    if filename:
        name = normalize_text(Path(filename).stem)
        for hints, kind in _FILENAME_HINTS:
            if _has_keyword(name, list(hints)):
                return kind
        if Path(filename).suffix.lower() in _STATEMENT_SUFFIXES:
            return DocumentKind.BANK_STATEMENT

    return DocumentKind.OTHER


def classify_invoice(metadata: dict[str, Any]) -> str:
    """Classify an invoice as Mejora, Mobiliario or Reparación y Conservación.

    Furniture wins over improvement; an explicit is_capex flag, improvement
    keywords or a total above MEJORA_AMOUNT_THRESHOLD mean Mejora.
    """
    text = normalize_text(
        " ".join(str(metadata.get(key) or "") for key in ("description", "concepto", "provider"))
    )
    tipo = normalize_text(str(metadata.get("tipo") or ""))

    if tipo == "mobiliario" or _has_keyword(text, MOBILIARIO_KEYWORDS):
        return INVOICE_MOBILIARIO

    amount = metadata_amount(metadata, "amount", "total_amount")
    if (
        metadata.get("is_capex")
        or tipo == "mejora"
        or _has_keyword(text, MEJORA_KEYWORDS)
        or (amount is not None and amount > MEJORA_AMOUNT_THRESHOLD)
    ):
        return INVOICE_MEJORA

    return INVOICE_REPARACION


def suggest_aeat_category(
    provider: str, amount: Decimal | float, description: Optional[str] = None
) -> AeatSuggestion:
    """Suggest the AEAT expense type and box for a supplier invoice.

    Provider hints are the strongest signal, description keywords come next
    and the amount alone gives a low confidence guess.
    """
    provider_text = f" {normalize_text(provider or '')} "
    for keyword, fiscal_type in PROVIDER_HINTS.items():
        if f" {keyword} " in provider_text:
            return AeatSuggestion(fiscal_type, AEAT_BOXES[fiscal_type], 0.9)

    description_text = normalize_text(description or "")
    for keywords, fiscal_type in _DESCRIPTION_HINTS:
        if _has_keyword(description_text, list(keywords)):
            return AeatSuggestion(fiscal_type, AEAT_BOXES[fiscal_type], 0.8)

    if to_decimal(amount) > CAPEX_SUGGESTION_AMOUNT:
        return AeatSuggestion("capex-mejora-ampliacion", AEAT_BOXES["capex-mejora-ampliacion"], 0.3)
    return AeatSuggestion("reparacion-conservacion", AEAT_BOXES["reparacion-conservacion"], 0.3)
