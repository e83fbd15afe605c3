"""SQLAlchemy models for finca database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    Float,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    iban = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    movements = relationship("Movement", back_populates="account", cascade="all, delete-orphan")


class BankProfile(Base):
    """Saved spreadsheet layout keyed by header signature."""

    __tablename__ = "bank_profiles"

    id = Column(Integer, primary_key=True)
    signature = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)

    # Relationships
    column_mappings = relationship(
        "ProfileColumnMapping",
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="ProfileColumnMapping.id",
    )


class ProfileColumnMapping(Base):
    """Header text to movement field mapping of a bank profile."""

    __tablename__ = "profile_column_mappings"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("bank_profiles.id"), nullable=False)
    column_name = Column(String, nullable=False)
    field_name = Column(String, nullable=False)

    # Relationships
    profile = relationship("BankProfile", back_populates="column_mappings")


class Movement(Base):
    """Treasury movement model."""

    __tablename__ = "movements"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    value_date = Column(Date, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=False)
    balance = Column(Numeric(12, 2), nullable=True)
    reference = Column(String, nullable=True)
    duplicate_hash = Column(String, nullable=False)
    source_file = Column(String, nullable=True)
    source_row = Column(Integer, nullable=True)
    inbox_item_id = Column(Integer, ForeignKey("inbox_items.id"), nullable=True)
    imported_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (Index("ix_movement_account_hash", "account_id", "duplicate_hash"),)

    # Relationships
    account = relationship("Account", back_populates="movements")


class InboxItem(Base):
    """Uploaded document awaiting OCR, classification and routing."""

    __tablename__ = "inbox_items"

    id = Column(Integer, primary_key=True)
    filename = Column(String, nullable=False)
    file_path = Column(String, nullable=True)
    mime_type = Column(String, nullable=True)
    document_kind = Column(String, nullable=True)
    ocr_status = Column(String, nullable=False, default="PENDING")
    status = Column(String, nullable=False, default="RECEIVED")
    scope = Column(String, nullable=True)
    property_id = Column(String, nullable=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    extracted_fields = Column(JSON, nullable=False, default=dict)
    ocr_confidence = Column(Float, nullable=True)
    destination = Column(String, nullable=True)
    message = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    log_entries = relationship(
        "InboxLogEntry",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="InboxLogEntry.id",
    )


class InboxLogEntry(Base):
    """Audit log line for an inbox item."""

    __tablename__ = "inbox_log_entries"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("inbox_items.id"), nullable=False)
    action = Column(String, nullable=False)
    message = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    item = relationship("InboxItem", back_populates="log_entries")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
