"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from finca.domain.entities import (
    Account,
    BankProfile,
    Movement,
    InboxItem,
    InboxLogEntry,
)


class Database(ABC):
    """Abstract database interface for finca."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, name: str, bank_name: str, iban: Optional[str] = None) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_movement_count(self, account_id: int) -> int:
        """Count movements stored for an account."""
        pass

    # Bank profile operations
    @abstractmethod
    def create_bank_profile(
        self,
        signature: str,
        name: str,
        bank_name: Optional[str],
        mappings: dict[str, str],
    ) -> int:
        """Create a bank profile with its field -> column mappings. Returns profile ID."""
        pass

    @abstractmethod
    def get_bank_profile(self, profile_id: int) -> Optional[BankProfile]:
        """Get bank profile by ID."""
        pass

    @abstractmethod
    def get_bank_profile_by_signature(self, signature: str) -> Optional[BankProfile]:
        """Get bank profile by header signature."""
        pass

    @abstractmethod
    def list_bank_profiles(self) -> list[BankProfile]:
        """List bank profiles, most used first."""
        pass

    @abstractmethod
    def delete_bank_profile(self, profile_id: int) -> None:
        """Delete a bank profile and its mappings."""
        pass

    @abstractmethod
    def replace_profile_mappings(self, profile_id: int, mappings: dict[str, str]) -> None:
        """Replace the field -> column mappings of a bank profile."""
        pass

    @abstractmethod
    def record_profile_usage(self, profile_id: int) -> None:
        """Increment usage count and stamp last use."""
        pass

    # Movement operations
    @abstractmethod
    def create_movement(
        self,
        account_id: int,
        date: date,
        amount: Decimal,
        description: str,
        duplicate_hash: str,
        value_date: Optional[date] = None,
        balance: Optional[Decimal] = None,
        reference: Optional[str] = None,
        source_file: Optional[str] = None,
        source_row: Optional[int] = None,
        inbox_item_id: Optional[int] = None,
    ) -> int:
        """Create a movement. Returns movement ID."""
        pass

    @abstractmethod
    def movement_hash_exists(self, account_id: int, duplicate_hash: str) -> bool:
        """Check if a movement with the given hash exists for the account."""
        pass

    @abstractmethod
    def list_movements(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Movement]:
        """List movements with optional filters, ordered by date."""
        pass

    # Inbox operations
    @abstractmethod
    def create_inbox_item(
        self, filename: str, file_path: Optional[str] = None, mime_type: Optional[str] = None
    ) -> int:
        """Create an inbox item in RECEIVED / PENDING state. Returns item ID."""
        pass

    @abstractmethod
    def get_inbox_item(self, item_id: int) -> Optional[InboxItem]:
        """Get inbox item by ID."""
        pass

    @abstractmethod
    def list_inbox_items(self, status: Optional[str] = None) -> list[InboxItem]:
        """List inbox items, optionally filtered by routing status."""
        pass

    @abstractmethod
    def update_inbox_item(self, item_id: int, **changes: Any) -> None:
        """Update columns of an inbox item."""
        pass

    @abstractmethod
    def add_inbox_log(self, item_id: int, action: str, message: str) -> int:
        """Append an audit entry to an inbox item. Returns entry ID."""
        pass

    @abstractmethod
    def list_inbox_log(self, item_id: int) -> list[InboxLogEntry]:
        """List audit entries of an inbox item in insertion order."""
        pass
