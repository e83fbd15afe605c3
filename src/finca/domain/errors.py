"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity or path does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or illegal state changes."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def profile_not_found(profile_id: int) -> str:
    """Return message for missing bank profile."""
    return f"Bank profile {profile_id} not found"


def inbox_item_not_found(item_id: int) -> str:
    """Return message for missing inbox item."""
    return f"Inbox item {item_id} not found"


def duplicate_profile_signature(signature: str) -> str:
    """Return message for a header signature that already has a profile."""
    return f"A bank profile with signature '{signature}' already exists"


def illegal_ocr_transition(item_id: int, current: str, target: str) -> str:
    """Return message for a forbidden OCR status change."""
    return f"Inbox item {item_id}: cannot move OCR status from {current} to {target}"


def account_delete_blocked(account_id: int, movement_count: int) -> str:
    """Return message when account has dependent movements."""
    return (
        f"Cannot delete account {account_id}: it has "
        f"{movement_count} movement{'s' if movement_count != 1 else ''}. "
        "Please delete them first."
    )
