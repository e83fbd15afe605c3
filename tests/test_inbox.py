"""Tests for the document inbox service."""

import shutil

import pytest

from finca.domain.entities import DocumentKind, InboxStatus, OcrStatus
from finca.domain.errors import ConflictError, NotFoundError
from finca.domain.ocr import OcrResult
from finca.domain.routing import Assignment

INVOICE_FIELDS = {
    "provider": "Iberdrola Clientes S.A.U.",
    "amount": "49.10",
    "base_amount": "40.58",
    "vat_amount": "8.52",
    "date": "2024-01-15",
    "tipo": "factura",
}


def extractor_returning(fields, confidence):
    def extract(item):
        return OcrResult(fields=dict(fields), confidence=confidence)

    return extract


def failing_extractor(item):
    raise RuntimeError("OCR endpoint unavailable")


@pytest.fixture
def invoice_pdf(tmp_path):
    path = tmp_path / "factura_luz_enero.pdf"
    path.write_bytes(b"%PDF-1.4 test")
    return path


@pytest.fixture
def invoice_item(inbox_service, invoice_pdf):
    """An invoice whose OCR completed with high confidence."""
    item_id = inbox_service.add_document(str(invoice_pdf))
    inbox_service.process_ocr(item_id, extractor_returning(INVOICE_FIELDS, 0.95))
    return item_id


@pytest.fixture
def statement_copy(tmp_path, fixtures_dir):
    path = tmp_path / "santander_statement.csv"
    shutil.copy(fixtures_dir / "santander_statement.csv", path)
    return path


def actions(inbox_service, item_id):
    return [entry.action for entry in inbox_service.get_log(item_id)]


class TestAddDocument:
    """add_document."""

    def test_add_document(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        item = inbox_service.get_item(item_id)

        assert item.filename == "factura_luz_enero.pdf"
        assert item.mime_type == "application/pdf"
        assert item.ocr_status is OcrStatus.PENDING
        assert item.status is InboxStatus.RECEIVED
        assert item.document_kind is DocumentKind.INVOICE
        assert actions(inbox_service, item_id) == ["received"]

    def test_missing_file(self, inbox_service, tmp_path):
        with pytest.raises(FileNotFoundError):
            inbox_service.add_document(str(tmp_path / "nope.pdf"))

    def test_list_items_by_status(self, inbox_service, invoice_pdf):
        inbox_service.add_document(str(invoice_pdf))
        assert len(inbox_service.list_items()) == 1
        assert len(inbox_service.list_items(InboxStatus.RECEIVED)) == 1
        assert inbox_service.list_items("SAVED") == []

    def test_log_of_missing_item(self, inbox_service):
        with pytest.raises(NotFoundError):
            inbox_service.get_log(42)


class TestOcr:
    """OCR state machine."""

    def test_confident_ocr_is_ok(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        item = inbox_service.process_ocr(item_id, extractor_returning(INVOICE_FIELDS, 0.95))

        assert item.ocr_status is OcrStatus.OK
        assert item.ocr_confidence == pytest.approx(0.95)
        assert item.extracted_fields["amount"] == "49.10"
        assert actions(inbox_service, item_id) == ["received", "ocr_processing", "ocr_ok"]

    def test_low_confidence_requires_review(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        item = inbox_service.process_ocr(item_id, extractor_returning({"provider": "Iber"}, 0.5))

        assert item.ocr_status is OcrStatus.REQUIRES_REVIEW
        assert actions(inbox_service, item_id)[-1] == "ocr_requires_review"

        again = inbox_service.process_ocr(item_id, extractor_returning(INVOICE_FIELDS, 0.9))
        assert again.ocr_status is OcrStatus.OK
        assert again.extracted_fields["provider"] == "Iberdrola Clientes S.A.U."

    def test_ocr_reclassifies_kind(self, inbox_service, tmp_path):
        path = tmp_path / "scan_001.pdf"
        path.write_bytes(b"%PDF")
        item_id = inbox_service.add_document(str(path))
        assert inbox_service.get_item(item_id).document_kind is DocumentKind.OTHER

        item = inbox_service.process_ocr(item_id, extractor_returning({"tipo": "contrato"}, 0.9))
        assert item.document_kind is DocumentKind.CONTRACT

    def test_extractor_failure_sets_error(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        item = inbox_service.process_ocr(item_id, failing_extractor)

        assert item.ocr_status is OcrStatus.ERROR
        assert item.message == "OCR failed: OCR endpoint unavailable"
        assert item.extracted_fields == {}
        assert actions(inbox_service, item_id)[-1] == "ocr_error"

        with pytest.raises(ConflictError):
            inbox_service.process_ocr(item_id, extractor_returning(INVOICE_FIELDS, 0.9))
        assert inbox_service.get_item(item_id).ocr_status is OcrStatus.ERROR

    def test_ok_items_cannot_be_processed_again(self, inbox_service, invoice_item):
        with pytest.raises(ConflictError):
            inbox_service.process_ocr(invoice_item, extractor_returning({}, 1.0))

    def test_missing_item(self, inbox_service):
        with pytest.raises(NotFoundError):
            inbox_service.process_ocr(99, extractor_returning({}, 1.0))


class TestCorrections:
    """correct_fields."""

    def test_correction_moves_review_to_ok(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        inbox_service.process_ocr(item_id, extractor_returning({"amount": "4.91"}, 0.4))

        item = inbox_service.correct_fields(item_id, {"amount": "49.10", "provider": "Iberdrola"})
        assert item.ocr_status is OcrStatus.OK
        assert item.extracted_fields == {"amount": "49.10", "provider": "Iberdrola"}
        assert actions(inbox_service, item_id)[-1] == "corrected"

    def test_correction_of_ok_item(self, inbox_service, invoice_item):
        item = inbox_service.correct_fields(invoice_item, {"date": "2024-01-16"})
        assert item.ocr_status is OcrStatus.OK
        assert item.extracted_fields["date"] == "2024-01-16"
        assert item.extracted_fields["provider"] == "Iberdrola Clientes S.A.U."

    def test_correction_while_processing(self, inbox_service, invoice_pdf, temp_db):
        item_id = inbox_service.add_document(str(invoice_pdf))
        temp_db.update_inbox_item(item_id, ocr_status=OcrStatus.PROCESSING)
        with pytest.raises(ConflictError):
            inbox_service.correct_fields(item_id, {"amount": "1"})

    def test_correction_after_ocr_error(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        inbox_service.process_ocr(item_id, failing_extractor)

        with pytest.raises(ConflictError, match="from ERROR to OK"):
            inbox_service.correct_fields(item_id, {"amount": "49.10"})
        assert inbox_service.get_item(item_id).extracted_fields == {}


class TestRouting:
    """route_item and auto_route."""

    def test_invoice_is_saved(self, inbox_service, invoice_item):
        result = inbox_service.route_item(invoice_item, Assignment(property_id="calle-mayor-3"))

        assert result.success is True
        item = inbox_service.get_item(invoice_item)
        assert item.status is InboxStatus.SAVED
        assert item.destination == "fiscalidad/detalle/create"
        assert item.property_id == "calle-mayor-3"
        assert actions(inbox_service, invoice_item)[-1] == "routed"

    def test_saved_item_cannot_be_routed_again(self, inbox_service, invoice_item):
        inbox_service.route_item(invoice_item, Assignment(is_personal=True))
        with pytest.raises(ConflictError):
            inbox_service.route_item(invoice_item, Assignment(is_personal=True))

    def test_missing_assignment_goes_to_review(self, inbox_service, invoice_item):
        result = inbox_service.route_item(invoice_item, Assignment())

        assert result.success is False
        item = inbox_service.get_item(invoice_item)
        assert item.status is InboxStatus.REVIEW
        assert "(missing: assignment)" in item.message

        inbox_service.route_item(invoice_item, Assignment(is_personal=True))
        assert inbox_service.get_item(invoice_item).status is InboxStatus.SAVED

    def test_totals_warning_is_logged(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        fields = dict(INVOICE_FIELDS, vat_amount="10.00")
        inbox_service.process_ocr(item_id, extractor_returning(fields, 0.95))

        result = inbox_service.route_item(item_id, Assignment(property_id="p1"))
        assert result.warnings
        assert actions(inbox_service, item_id)[-2:] == ["routed", "warning"]

    def test_incomplete_invoice_then_auto_route(self, inbox_service, invoice_pdf):
        item_id = inbox_service.add_document(str(invoice_pdf))
        fields = {k: v for k, v in INVOICE_FIELDS.items() if k != "date"}
        inbox_service.process_ocr(item_id, extractor_returning(fields, 0.95))

        result = inbox_service.route_item(item_id, Assignment(property_id="p1"))
        assert result.missing_fields == ["date"]
        assert inbox_service.get_item(item_id).status is InboxStatus.REVIEW
        assert inbox_service.auto_route(item_id) is None

        inbox_service.correct_fields(item_id, {"date": "2024-01-15"})
        routed = inbox_service.auto_route(item_id)
        assert routed is not None and routed.success
        assert inbox_service.get_item(item_id).status is InboxStatus.SAVED

    def test_unexpected_failure_sets_error(self, inbox_service, invoice_item, monkeypatch):
        def broken(item, assignment):
            raise RuntimeError("router exploded")

        monkeypatch.setattr("finca.domain.inbox.route_document", broken)
        result = inbox_service.route_item(invoice_item, Assignment(property_id="p1"))

        assert result.success is False
        assert "router exploded" in result.message
        item = inbox_service.get_item(invoice_item)
        assert item.status is InboxStatus.ERROR
        assert actions(inbox_service, invoice_item)[-1] == "error"


class TestStatementRouting:
    """Bank statements routed from the inbox are imported."""

    def test_statement_imported_into_assigned_account(
        self, inbox_service, statement_copy, sample_account, temp_db
    ):
        item_id = inbox_service.add_document(str(statement_copy))
        assert inbox_service.get_item(item_id).document_kind is DocumentKind.BANK_STATEMENT

        result = inbox_service.route_item(
            item_id, Assignment(is_personal=True, account_id=sample_account.id)
        )

        assert result.success is True
        assert "5 imported, 1 skipped" in result.message
        movements = temp_db.list_movements(account_id=sample_account.id)
        assert len(movements) == 5
        assert all(m.inbox_item_id == item_id for m in movements)
        assert inbox_service.get_item(item_id).status is InboxStatus.SAVED

    def test_statement_account_found_by_iban(self, inbox_service, statement_copy, sample_account, temp_db):
        item_id = inbox_service.add_document(str(statement_copy))
        inbox_service.correct_fields(item_id, {"detected_account": "ES12 0049 0001 5025 1234 5678"})

        result = inbox_service.route_item(item_id, Assignment(is_personal=True))
        assert result.success is True
        assert len(temp_db.list_movements(account_id=sample_account.id)) == 5

    def test_statement_with_unknown_iban(self, inbox_service, statement_copy, sample_account):
        item_id = inbox_service.add_document(str(statement_copy))
        inbox_service.correct_fields(item_id, {"detected_account": "ES9100000000000000000000"})

        result = inbox_service.route_item(item_id, Assignment(is_personal=True))
        assert result.success is False
        assert result.missing_fields == ["targetAccount"]
        assert inbox_service.get_item(item_id).status is InboxStatus.REVIEW

    def test_statement_needing_mapping(self, inbox_service, tmp_path, fixtures_dir, sample_account):
        path = tmp_path / "extracto_catalan.csv"
        shutil.copy(fixtures_dir / "unknown_layout.csv", path)
        item_id = inbox_service.add_document(str(path))

        result = inbox_service.route_item(
            item_id, Assignment(is_personal=True, account_id=sample_account.id)
        )
        assert result.success is False
        assert result.missing_fields == ["column_mapping"]
        assert inbox_service.get_item(item_id).status is InboxStatus.REVIEW
