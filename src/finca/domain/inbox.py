"""Inbox domain service.

An inbox item is one uploaded document. It goes through OCR (PENDING ->
PROCESSING -> OK | REQUIRES_REVIEW | ERROR), optional manual correction and
finally routing, which leaves it SAVED, in REVIEW or in ERROR. Every step is
written to the item's audit log.
"""

from dataclasses import replace
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional

from finca.database.base import Database
from finca.domain.account import AccountService
from finca.domain.bank_import import BankImportService
from finca.domain.classification import classify_document_kind
from finca.domain.entities import InboxItem, InboxLogEntry, InboxStatus, OcrStatus, Scope
from finca.domain.errors import (
    ConflictError,
    NotFoundError,
    illegal_ocr_transition,
    inbox_item_not_found,
)
from finca.domain.ocr import Extractor
from finca.domain.routing import (
    Assignment,
    RoutingDestination,
    RoutingResult,
    can_auto_route,
    route_document,
)
from finca.utils.account_resolver import resolve_account

logger = logging.getLogger(__name__)

# Below this OCR confidence the extracted fields need a human look
OCR_REVIEW_THRESHOLD = 0.8

OCR_TRANSITIONS = {
    OcrStatus.PENDING: {OcrStatus.PROCESSING},
    OcrStatus.PROCESSING: {OcrStatus.OK, OcrStatus.REQUIRES_REVIEW, OcrStatus.ERROR},
    OcrStatus.REQUIRES_REVIEW: {OcrStatus.PROCESSING},
    OcrStatus.ERROR: set(),
    OcrStatus.OK: set(),
}


def _looks_like_iban(value: str) -> bool:
    compact = value.replace(" ", "")
    return len(compact) >= 15 and compact[:2].isalpha() and compact[2:4].isdigit()


class InboxService:
    """Service for the document inbox."""

    def __init__(self, db: Database):
        """Initialize inbox service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.import_service = BankImportService(db)

    def _require_item(self, item_id: int) -> InboxItem:
        item = self.db.get_inbox_item(item_id)
        if item is None:
            raise NotFoundError(inbox_item_not_found(item_id))
        return item

    def _log(self, item_id: int, action: str, message: str) -> None:
        self.db.add_inbox_log(item_id, action, message)
        logger.info("Inbox item %d %s: %s", item_id, action, message)

    def _set_ocr_status(self, item: InboxItem, target: OcrStatus, **changes: Any) -> InboxItem:
        if target not in OCR_TRANSITIONS[item.ocr_status]:
            raise ConflictError(illegal_ocr_transition(item.id, item.ocr_status.value, target.value))
        self.db.update_inbox_item(item.id, ocr_status=target, **changes)
        return self._require_item(item.id)

    def add_document(self, file_path: str, mime_type: Optional[str] = None) -> int:
        """Register an uploaded document.

        Args:
            file_path: Path of the stored document
            mime_type: MIME type; guessed from the file name when omitted

        Returns:
            Inbox item ID

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {file_path}")
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)

        item_id = self.db.create_inbox_item(
            filename=path.name, file_path=str(path.resolve()), mime_type=mime_type
        )
        kind = classify_document_kind({}, path.name)
        self.db.update_inbox_item(item_id, document_kind=kind)
        self._log(item_id, "received", f"Received {path.name} ({kind.value})")
        return item_id

    def get_item(self, item_id: int) -> Optional[InboxItem]:
        """Get inbox item by ID."""
        return self.db.get_inbox_item(item_id)

    def list_items(self, status: Optional[InboxStatus | str] = None) -> list[InboxItem]:
        """List inbox items, optionally only those in one routing status."""
        if isinstance(status, InboxStatus):
            status = status.value
        return self.db.list_inbox_items(status=status)

    def get_log(self, item_id: int) -> list[InboxLogEntry]:
        """Audit log of an item, oldest first."""
        self._require_item(item_id)
        return self.db.list_inbox_log(item_id)

    def process_ocr(self, item_id: int, extractor: Extractor) -> InboxItem:
        """Run OCR on an item.

        Extractor failures never propagate: the item goes to OCR ERROR with a
        message and its extracted fields are left as they were.

        Raises:
            NotFoundError: If item doesn't exist
            ConflictError: If the item's OCR status does not allow processing
        """
        item = self._set_ocr_status(self._require_item(item_id), OcrStatus.PROCESSING)
        self._log(item.id, "ocr_processing", "OCR started")

        try:
            result = extractor(item)
        except Exception as e:
            logger.warning("OCR failed for inbox item %d: %s", item.id, e)
            message = f"OCR failed: {e}"
            item = self._set_ocr_status(item, OcrStatus.ERROR, message=message)
            self._log(item.id, "ocr_error", message)
            return item

        fields = {**item.extracted_fields, **result.fields}
        kind = classify_document_kind(fields, item.filename)
        if result.confidence >= OCR_REVIEW_THRESHOLD:
            target = OcrStatus.OK
            message = f"OCR completed with confidence {result.confidence:.2f}"
        else:
            target = OcrStatus.REQUIRES_REVIEW
            message = (
                f"OCR confidence {result.confidence:.2f} is below {OCR_REVIEW_THRESHOLD:.2f}; "
                "review the extracted fields"
            )

        item = self._set_ocr_status(
            item,
            target,
            extracted_fields=fields,
            ocr_confidence=result.confidence,
            document_kind=kind,
            message=message,
        )
        self._log(item.id, f"ocr_{target.value.lower()}", message)
        return item

    def correct_fields(self, item_id: int, fields: dict[str, Any]) -> InboxItem:
        """Apply manual corrections to the extracted fields.

        Items that are not yet OK move through PROCESSING to OK.

        Raises:
            NotFoundError: If item doesn't exist
            ConflictError: If OCR is still running or ended in ERROR
        """
        item = self._require_item(item_id)
        if item.ocr_status is OcrStatus.PROCESSING:
            raise ConflictError(f"Inbox item {item_id}: OCR is still running")
        if item.ocr_status is OcrStatus.ERROR:
            raise ConflictError(illegal_ocr_transition(item.id, item.ocr_status.value, OcrStatus.OK.value))

        merged = {**item.extracted_fields, **fields}
        kind = classify_document_kind(merged, item.filename) if "tipo" in fields else item.document_kind
        message = f"Corrected fields: {', '.join(sorted(fields))}"

        if item.ocr_status is OcrStatus.OK:
            self.db.update_inbox_item(
                item.id, extracted_fields=merged, document_kind=kind, message=message
            )
            item = self._require_item(item.id)
        else:
            item = self._set_ocr_status(item, OcrStatus.PROCESSING)
            item = self._set_ocr_status(
                item, OcrStatus.OK, extracted_fields=merged, document_kind=kind, message=message
            )
        self._log(item.id, "corrected", message)
        return item

    def _resolve_statement_account(self, account: Any) -> int:
        if isinstance(account, str) and _looks_like_iban(account):
            found = self.account_service.find_by_iban(account)
            if found is None:
                raise NotFoundError(f"No account with IBAN {account}")
            return found.id
        return resolve_account(self.account_service, account)

    def _apply_effects(self, item: InboxItem, result: RoutingResult) -> RoutingResult:
        for effect in result.effects:
            if effect["type"] != "create_movements":
                continue
            try:
                account_id = self._resolve_statement_account(effect["account"])
            except NotFoundError as e:
                return replace(
                    result,
                    success=False,
                    message=str(e),
                    requires_manual_assignment=True,
                    missing_fields=["targetAccount"],
                )
            outcome = self.import_service.import_file(
                item.file_path, account_id, inbox_item_id=item.id
            )
            if outcome["fallback_required"]:
                return replace(
                    result,
                    success=False,
                    message="Statement columns could not be recognised; import it with a column mapping",
                    warnings=result.warnings + outcome["warnings"],
                    missing_fields=["column_mapping"],
                )
            effect["imported"] = outcome["imported"]
            effect["skipped"] = outcome["skipped"]
            result = replace(
                result,
                message=f"{result.message}: {outcome['imported']} imported, {outcome['skipped']} skipped",
                warnings=result.warnings + outcome["warnings"],
            )
        return result

    def route_item(self, item_id: int, assignment: Assignment) -> RoutingResult:
        """Route an item and record the outcome on it.

        Successful routing leaves the item SAVED; a missing assignment or
        missing fields put it in REVIEW; any unexpected failure puts it in
        ERROR and is returned as an unsuccessful result. Items in REVIEW or ERROR can be routed again.

        Raises:
            NotFoundError: If item doesn't exist
            ConflictError: If the item is already SAVED
        """
        item = self._require_item(item_id)
        if item.status is InboxStatus.SAVED:
            raise ConflictError(f"Inbox item {item_id} has already been filed")

        scope = Scope.PERSONAL if assignment.is_personal else (
            Scope.PROPERTY if assignment.property_id else None
        )
        self.db.update_inbox_item(
            item.id,
            scope=scope,
            property_id=assignment.property_id,
            account_id=assignment.account_id if assignment.account_id is not None else item.account_id,
        )
        item = self._require_item(item.id)

        try:
            result = route_document(item, assignment)
            if result.success and not result.missing_fields:
                result = self._apply_effects(item, result)
        except Exception as e:
            logger.exception("Routing failed for inbox item %d", item.id)
            message = f"Routing failed: {e}"
            self.db.update_inbox_item(item.id, status=InboxStatus.ERROR, message=message)
            self._log(item.id, "error", message)
            return RoutingResult(
                success=False,
                destination=RoutingDestination("tesoreria", "inbox", "process"),
                message=message,
            )

        if result.success and not result.missing_fields:
            status = InboxStatus.SAVED
            message = result.message
        else:
            status = InboxStatus.REVIEW
            message = result.message
            if result.missing_fields:
                message = f"{message} (missing: {', '.join(result.missing_fields)})"

        self.db.update_inbox_item(
            item.id, status=status, destination=str(result.destination), message=message
        )
        self._log(item.id, "routed" if status is InboxStatus.SAVED else "review", message)
        for warning in result.warnings:
            self._log(item.id, "warning", warning)
        return result

    def auto_route(self, item_id: int) -> Optional[RoutingResult]:
        """Route an item with its stored assignment when nothing is missing.

        Returns:
            RoutingResult, or None when the item needs a manual decision
        """
        item = self._require_item(item_id)
        if item.status is InboxStatus.SAVED or not can_auto_route(item):
            return None
        assignment = Assignment(
            property_id=item.property_id,
            is_personal=item.scope is Scope.PERSONAL,
            account_id=item.account_id,
        )
        return self.route_item(item_id, assignment)
