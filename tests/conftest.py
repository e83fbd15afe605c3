"""Shared pytest fixtures for finca tests."""

import tempfile
import os
from pathlib import Path
import pytest

from finca.database.factories import create_sqlite_database
from finca.domain.account import AccountService
from finca.domain.bank_import import BankImportService
from finca.domain.bank_profile import BankProfileService
from finca.domain.inbox import InboxService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that drive the CLI
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def profile_service(temp_db):
    """Create a BankProfileService with a temporary database."""
    return BankProfileService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a BankImportService with a temporary database."""
    return BankImportService(temp_db)


@pytest.fixture
def inbox_service(temp_db):
    """Create an InboxService with a temporary database."""
    return InboxService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(
        name="Cuenta Test", bank_name="Banco Santander", iban="ES12 0049 0001 5025 1234 5678"
    )
    return account_service.get_account(account_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
