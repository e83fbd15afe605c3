"""Domain model entities for finca.

These are pure data classes representing business concepts, independent of
database schema. The ORM layer converts to and from them in
finca.database.mappers.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class OcrStatus(str, Enum):
    """OCR lifecycle of an inbox item."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    OK = "OK"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"
    ERROR = "ERROR"


class InboxStatus(str, Enum):
    """Routing lifecycle of an inbox item."""

    RECEIVED = "RECEIVED"
    SAVED = "SAVED"
    REVIEW = "REVIEW"
    ERROR = "ERROR"


class DocumentKind(str, Enum):
    """Kinds of document the router knows how to file."""

    INVOICE = "invoice"
    CONTRACT = "contract"
    BANK_STATEMENT = "bank_statement"
    OTHER = "other"


class Scope(str, Enum):
    """Who a document belongs to."""

    PROPERTY = "PROPERTY"
    PERSONAL = "PERSONAL"


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    name: str
    bank_name: str
    created_at: datetime
    iban: Optional[str] = None


@dataclass(frozen=True)
class ProfileColumnMapping:
    """One column of a bank profile: header text mapped to a movement field."""

    id: int
    profile_id: int
    column_name: str
    field_name: str


@dataclass(frozen=True)
class BankProfile:
    """Saved spreadsheet layout, looked up by header signature."""

    id: int
    signature: str
    name: str
    bank_name: Optional[str]
    created_at: datetime
    last_used_at: Optional[datetime] = None
    usage_count: int = 0
    mappings: tuple[ProfileColumnMapping, ...] = ()

    def column_map(self) -> dict[str, str]:
        """Return the mapping as field name -> column header."""
        return {m.field_name: m.column_name for m in self.mappings}


@dataclass(frozen=True)
class ParsedMovement:
    """A movement read from a statement row, before it is persisted."""

    date: date
    amount: Decimal
    description: str
    original_row: Optional[int] = None
    is_duplicate: bool = False
    duplicate_hash: Optional[str] = None
    value_date: Optional[date] = None
    balance: Optional[Decimal] = None
    reference: Optional[str] = None


@dataclass(frozen=True)
class Movement:
    """Persisted treasury movement."""

    id: int
    account_id: int
    date: date
    amount: Decimal
    description: str
    duplicate_hash: str
    imported_at: datetime
    value_date: Optional[date] = None
    balance: Optional[Decimal] = None
    reference: Optional[str] = None
    source_file: Optional[str] = None
    source_row: Optional[int] = None
    inbox_item_id: Optional[int] = None


@dataclass(frozen=True)
class DuplicateStats:
    """Counts describing duplicate groups in a list of movements."""

    total: int
    duplicates: int
    unique: int
    duplicate_groups: int


@dataclass(frozen=True)
class HeaderDetection:
    """Outcome of locating the header row of a statement grid.

    columns maps movement field names (date, amount, ...) to column indices.
    source is "synonyms", "profile", "manual" or None when fallback is needed.
    """

    header_row: int
    data_start_row: int
    columns: dict[str, int]
    confidence: float
    fallback_required: bool
    signature: Optional[str] = None
    source: Optional[str] = None
    profile_id: Optional[int] = None
    bank_name: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a treasury record."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InboxItem:
    """An uploaded document moving through OCR, classification and routing."""

    id: int
    filename: str
    file_path: Optional[str]
    mime_type: Optional[str]
    ocr_status: OcrStatus
    status: InboxStatus
    created_at: datetime
    updated_at: datetime
    document_kind: Optional[DocumentKind] = None
    scope: Optional[Scope] = None
    property_id: Optional[str] = None
    account_id: Optional[int] = None
    extracted_fields: dict[str, Any] = field(default_factory=dict)
    ocr_confidence: Optional[float] = None
    destination: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class InboxLogEntry:
    """Audit log entry attached to an inbox item."""

    id: int
    item_id: int
    action: str
    message: str
    created_at: datetime
