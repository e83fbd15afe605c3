"""Account domain service."""

from typing import Optional
from finca.database.base import Database
from finca.domain.entities import Account as AccountEntity
from finca.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    account_delete_blocked,
    account_not_found,
)


class AccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, name: str, bank_name: str, iban: Optional[str] = None) -> int:
        """Create a new account.

        Args:
            name: Account name
            bank_name: Bank name
            iban: Optional IBAN, stored without spaces

        Returns:
            Account ID

        Raises:
            ConflictError: If account name already exists
        """
        for acc in self.db.list_accounts():
            if acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        if iban is not None:
            iban = iban.replace(" ", "").upper()
        return self.db.create_account(name=name, bank_name=bank_name, iban=iban)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts."""
        return self.db.list_accounts()

    def find_by_iban(self, iban: str) -> Optional[AccountEntity]:
        """Find the account whose IBAN matches, ignoring spaces and case."""
        wanted = iban.replace(" ", "").upper()
        for acc in self.db.list_accounts():
            if acc.iban and acc.iban == wanted:
                return acc
        return None

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Raises:
            NotFoundError: If account not found
            DependencyError: If the account still has movements
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        movement_count = self.db.get_account_movement_count(account_id)
        if movement_count > 0:
            raise DependencyError(account_delete_blocked(account_id, movement_count))

        self.db.delete_account(account_id)
