"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, making it easy to change when
the database schema changes.
"""

from finca.domain import entities as domain
from finca.database.models import (
    Account as ORMAccount,
    BankProfile as ORMBankProfile,
    ProfileColumnMapping as ORMProfileColumnMapping,
    Movement as ORMMovement,
    InboxItem as ORMInboxItem,
    InboxLogEntry as ORMInboxLogEntry,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        created_at=orm_account.created_at,
        iban=orm_account.iban,
    )


def profile_column_mapping_to_domain(
    orm_mapping: ORMProfileColumnMapping,
) -> domain.ProfileColumnMapping:
    """Convert SQLAlchemy ProfileColumnMapping model to domain entity."""
    return domain.ProfileColumnMapping(
        id=orm_mapping.id,
        profile_id=orm_mapping.profile_id,
        column_name=orm_mapping.column_name,
        field_name=orm_mapping.field_name,
    )


def bank_profile_to_domain(orm_profile: ORMBankProfile) -> domain.BankProfile:
    """Convert SQLAlchemy BankProfile model (with its mappings) to domain entity."""
    return domain.BankProfile(
        id=orm_profile.id,
        signature=orm_profile.signature,
        name=orm_profile.name,
        bank_name=orm_profile.bank_name,
        created_at=orm_profile.created_at,
        last_used_at=orm_profile.last_used_at,
        usage_count=orm_profile.usage_count,
        mappings=tuple(
            profile_column_mapping_to_domain(m) for m in orm_profile.column_mappings
        ),
    )


def movement_to_domain(orm_movement: ORMMovement) -> domain.Movement:
    """Convert SQLAlchemy Movement model to domain Movement entity."""
    return domain.Movement(
        id=orm_movement.id,
        account_id=orm_movement.account_id,
        date=orm_movement.date,
        amount=orm_movement.amount,
        description=orm_movement.description,
        duplicate_hash=orm_movement.duplicate_hash,
        imported_at=orm_movement.imported_at,
        value_date=orm_movement.value_date,
        balance=orm_movement.balance,
        reference=orm_movement.reference,
        source_file=orm_movement.source_file,
        source_row=orm_movement.source_row,
        inbox_item_id=orm_movement.inbox_item_id,
    )


def inbox_item_to_domain(orm_item: ORMInboxItem) -> domain.InboxItem:
    """Convert SQLAlchemy InboxItem model to domain InboxItem entity."""
    return domain.InboxItem(
        id=orm_item.id,
        filename=orm_item.filename,
        file_path=orm_item.file_path,
        mime_type=orm_item.mime_type,
        ocr_status=domain.OcrStatus(orm_item.ocr_status),
        status=domain.InboxStatus(orm_item.status),
        created_at=orm_item.created_at,
        updated_at=orm_item.updated_at,
        document_kind=(
            domain.DocumentKind(orm_item.document_kind) if orm_item.document_kind else None
        ),
        scope=domain.Scope(orm_item.scope) if orm_item.scope else None,
        property_id=orm_item.property_id,
        account_id=orm_item.account_id,
        extracted_fields=dict(orm_item.extracted_fields or {}),
        ocr_confidence=orm_item.ocr_confidence,
        destination=orm_item.destination,
        message=orm_item.message,
    )


def inbox_log_entry_to_domain(orm_entry: ORMInboxLogEntry) -> domain.InboxLogEntry:
    """Convert SQLAlchemy InboxLogEntry model to domain entity."""
    return domain.InboxLogEntry(
        id=orm_entry.id,
        item_id=orm_entry.item_id,
        action=orm_entry.action,
        message=orm_entry.message,
        created_at=orm_entry.created_at,
    )
