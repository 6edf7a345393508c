"""Shared pytest fixtures for ledgerkeep tests."""

import tempfile
import os
from decimal import Decimal
import pytest

from ledgerkeep.database.factories import create_sqlite_database
from ledgerkeep.domain.account import AccountService
from ledgerkeep.domain.audit import EditHistoryService
from ledgerkeep.domain.category import CategoryService
from ledgerkeep.domain.status import StatusService
from ledgerkeep.domain.transaction import TransactionService
from ledgerkeep.domain.tree_cache import NullTreeCache
from ledgerkeep.domain.vendor import VendorService
from ledgerkeep.logging_config import reset_logging

ORG = "org-1"
OTHER_ORG = "org-2"
ACTOR = "alice"


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI runs configure logging globally; undo it between tests."""
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def second_db(temp_db):
    """Independent connection to the same database file, for interleaved writers."""
    db = create_sqlite_database(database_path=temp_db.database_path)
    db.connect()

    yield db

    db.disconnect()


@pytest.fixture
def org():
    return ORG


@pytest.fixture
def actor():
    return ACTOR


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def vendor_service(temp_db):
    """Create a VendorService with a temporary database."""
    return VendorService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService that never caches trees."""
    return CategoryService(temp_db, NullTreeCache())


@pytest.fixture
def transaction_service(temp_db, category_service):
    """Create a TransactionService sharing the category service."""
    return TransactionService(temp_db, category_service)


@pytest.fixture
def status_service(temp_db):
    """Create a StatusService with a temporary database."""
    return StatusService(temp_db)


@pytest.fixture
def edit_history_service(temp_db):
    """Create an EditHistoryService with a temporary database."""
    return EditHistoryService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Checking account opened with 1000.00 and a 5.00 transaction fee."""
    account_id = account_service.create_account(
        ORG, name="Checking", balance=Decimal("1000.00"), transaction_fee=Decimal("5.00")
    )
    return account_service.get_account(ORG, account_id)


@pytest.fixture
def second_account(account_service):
    """Savings account opened with 500.00."""
    account_id = account_service.create_account(ORG, name="Savings", balance=Decimal("500.00"))
    return account_service.get_account(ORG, account_id)


@pytest.fixture
def sample_categories(category_service):
    """Small hierarchy: Food > Groceries, Food > Restaurants, Travel."""
    food = category_service.create_category(ORG, "Food")
    return {
        "Food": food,
        "Groceries": category_service.create_category(ORG, "Groceries", parent_id=food),
        "Restaurants": category_service.create_category(ORG, "Restaurants", parent_id=food),
        "Travel": category_service.create_category(ORG, "Travel"),
    }


@pytest.fixture
def balance_of(temp_db):
    """Read an account balance straight from the store."""

    def _balance(account_id: int) -> Decimal:
        return temp_db.get_account(account_id).balance

    return _balance


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
