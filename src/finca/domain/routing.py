"""Routing of inbox documents to their filing destination.

The router only decides. It returns a RoutingResult whose effects describe
what the caller must do (create a fiscal entry, create movements, archive);
finca.domain.inbox applies them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from finca.domain.classification import classify_document_kind, classify_invoice, metadata_amount
from finca.domain.entities import DocumentKind, InboxItem, OcrStatus

# Cents tolerance for base + VAT against the invoice total
TOTALS_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class Assignment:
    """User assignment of a document: a property, or personal."""

    property_id: Optional[str] = None
    is_personal: bool = False
    account_id: Optional[int] = None


@dataclass(frozen=True)
class RoutingDestination:
    """Where a document ends up: module, section and action."""

    module: str
    section: str
    action: str

    def __str__(self) -> str:
        return f"{self.module}/{self.section}/{self.action}"


@dataclass(frozen=True)
class RoutingResult:
    """Outcome of routing one document."""

    success: bool
    destination: RoutingDestination
    message: str
    warnings: list[str] = field(default_factory=list)
    requires_manual_assignment: bool = False
    missing_fields: list[str] = field(default_factory=list)
    effects: list[dict[str, Any]] = field(default_factory=list)


def document_kind_of(item: InboxItem) -> DocumentKind:
    """Stored kind of an item, or the classifier's guess."""
    if item.document_kind is not None:
        return item.document_kind
    return classify_document_kind(item.extracted_fields, item.filename)


def target_account_of(item: InboxItem, assignment: Assignment) -> Any:
    """Account a bank statement should be imported into, if known."""
    detected = item.extracted_fields.get("detected_account")
    if detected:
        return detected
    if assignment.account_id is not None:
        return assignment.account_id
    return item.account_id


def route_document(item: InboxItem, assignment: Assignment) -> RoutingResult:
    """Decide the destination and side effects of an inbox document.

    Args:
        item: Inbox item with its extracted fields
        assignment: Property or personal assignment chosen by the user

    Returns:
        RoutingResult; success=False results carry requires_manual_assignment
        and/or missing_fields
    """
    if not assignment.property_id and not assignment.is_personal:
        return RoutingResult(
            success=False,
            destination=RoutingDestination("tesoreria", "inbox", "process"),
            message="Assignment required: choose a property or mark as personal",
            requires_manual_assignment=True,
            missing_fields=["assignment"],
        )

    kind = document_kind_of(item)
    if kind is DocumentKind.INVOICE:
        return _route_invoice(item, assignment)
    if kind is DocumentKind.CONTRACT:
        return _route_contract(item, assignment)
    if kind is DocumentKind.BANK_STATEMENT:
        return _route_bank_statement(item, assignment)
    return _route_other(item, assignment)


def _route_invoice(item: InboxItem, assignment: Assignment) -> RoutingResult:
    metadata = item.extracted_fields
    missing_fields = []
    warnings = []

    total = metadata_amount(metadata, "amount", "total_amount")
    provider = metadata.get("provider") or metadata.get("proveedor")
    if total is None:
        missing_fields.append("amount")
    if not provider:
        missing_fields.append("provider")
    if not metadata.get("date"):
        missing_fields.append("date")

    base = metadata_amount(metadata, "base_amount")
    vat = metadata_amount(metadata, "vat_amount")
    if base and vat and total and abs(base + vat - total) > TOTALS_TOLERANCE:
        warnings.append(f"Totals do not add up: {base:.2f} + {vat:.2f} != {total:.2f}")

    classification = classify_invoice(metadata)
    amount_text = f"{total:.2f}" if total is not None else None
    effects = [
        {
            "type": "fiscal_entry",
            "document_id": item.id,
            "amount": amount_text,
            "provider": provider,
            "date": metadata.get("date"),
            "classification": classification,
            "property_id": assignment.property_id,
            "is_personal": assignment.is_personal,
        },
        {
            "type": "treasury_entry",
            "document_id": item.id,
            "amount": amount_text,
            "description": f"Factura {provider or item.filename}",
            "category": "Gasto",
            "subcategory": classification,
            "property_id": assignment.property_id,
            "is_personal": assignment.is_personal,
        },
    ]
    return RoutingResult(
        success=True,
        destination=RoutingDestination("fiscalidad", "detalle", "create"),
        message=f"Invoice filed in fiscalidad ({classification}) and tesoreria",
        warnings=warnings,
        missing_fields=missing_fields,
        effects=effects,
    )


def _route_contract(item: InboxItem, assignment: Assignment) -> RoutingResult:
    if assignment.is_personal:
        return RoutingResult(
            success=False,
            destination=RoutingDestination("personal", "documentos", "archive"),
            message="Contracts must be assigned to a specific property",
            requires_manual_assignment=True,
        )
    if not assignment.property_id:
        return RoutingResult(
            success=False,
            destination=RoutingDestination("inmuebles", "contratos", "archive"),
            message="Select the property to archive the contract under",
            requires_manual_assignment=True,
            missing_fields=["property_id"],
        )
    return RoutingResult(
        success=True,
        destination=RoutingDestination("inmuebles", "contratos", "archive"),
        message="Contract archived in inmuebles/contratos",
        effects=[
            {
                "type": "archive",
                "document_id": item.id,
                "filename": item.filename,
                "property_id": assignment.property_id,
            }
        ],
    )


def _route_bank_statement(item: InboxItem, assignment: Assignment) -> RoutingResult:
    account = target_account_of(item, assignment)
    if not account:
        return RoutingResult(
            success=False,
            destination=RoutingDestination("tesoreria", "movimientos", "process"),
            message="Select the target account for the bank statement",
            requires_manual_assignment=True,
            missing_fields=["targetAccount"],
        )
    return RoutingResult(
        success=True,
        destination=RoutingDestination("tesoreria", "movimientos", "create"),
        message="Statement processed into tesoreria/movimientos",
        effects=[
            {
                "type": "create_movements",
                "document_id": item.id,
                "account": account,
                "filename": item.filename,
                "property_id": assignment.property_id,
                "is_personal": assignment.is_personal,
            }
        ],
    )


def _route_other(item: InboxItem, assignment: Assignment) -> RoutingResult:
    module = "personal" if assignment.is_personal else "inmuebles"
    return RoutingResult(
        success=True,
        destination=RoutingDestination(module, "documentos", "archive"),
        message=f"Document archived in {module}/documentos",
        effects=[
            {
                "type": "archive",
                "document_id": item.id,
                "filename": item.filename,
                "property_id": assignment.property_id,
                "is_personal": assignment.is_personal,
            }
        ],
    )


def can_auto_route(item: InboxItem) -> bool:
    """True when an item has everything needed to be filed without review."""
    if item.ocr_status is not OcrStatus.OK:
        return False
    if not item.property_id and item.scope is None:
        return False

    metadata = item.extracted_fields
    kind = document_kind_of(item)
    if kind is DocumentKind.INVOICE:
        return bool(
            metadata.get("provider")
            and metadata_amount(metadata, "amount", "total_amount") is not None
            and metadata.get("date")
        )
    if kind is DocumentKind.CONTRACT:
        return bool(item.property_id)
    if kind is DocumentKind.BANK_STATEMENT:
        return bool(metadata.get("detected_account") or item.account_id)
    return True
