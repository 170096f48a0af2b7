"""Shared pytest fixtures for qbrecon tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from qbrecon.database.factories import create_sqlite_database
from qbrecon.domain.account import AccountService
from qbrecon.domain.balance import BalanceService
from qbrecon.domain.category import CategoryService
from qbrecon.domain.classification import ClassificationService
from qbrecon.domain.duplicates import DuplicateService
from qbrecon.domain.entities import AccountType, TransactionDraft, TransactionType
from qbrecon.domain.linking import TransactionLinkingService
from qbrecon.domain.qb_mapping import QBMappingService
from qbrecon.domain.quickbooks_import import QuickBooksImportService
from qbrecon.domain.transaction import TransactionService

USER = "alice"
OTHER_USER = "bob"


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
def account_service(temp_db):
    """Create an AccountService for the test user."""
    return AccountService(temp_db, USER)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService for the test user."""
    return CategoryService(temp_db, USER)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService for the test user."""
    return TransactionService(temp_db, USER)


@pytest.fixture
def mapping_service(temp_db):
    """Create a QBMappingService for the test user."""
    return QBMappingService(temp_db, USER)


@pytest.fixture
def classification_service(temp_db):
    """Create a ClassificationService for the test user."""
    return ClassificationService(temp_db, USER)


@pytest.fixture
def linking_service(temp_db):
    """Create a TransactionLinkingService for the test user."""
    return TransactionLinkingService(temp_db, USER)


@pytest.fixture
def balance_service(temp_db):
    """Create a BalanceService for the test user."""
    return BalanceService(temp_db, USER)


@pytest.fixture
def duplicate_service(temp_db):
    """Create a DuplicateService for the test user."""
    return DuplicateService(temp_db, USER)


@pytest.fixture
def import_service(temp_db):
    """Create a QuickBooksImportService for the test user."""
    return QuickBooksImportService(temp_db, USER)


@pytest.fixture
def sample_account(account_service):
    """Create a checking account mapped to '1000 Checking'."""
    account_id = account_service.create_account(
        name="Checking",
        account_type=AccountType.CHECKING,
        qb_account_names=["1000 Checking"],
    )
    return account_service.get_account(account_id)


@pytest.fixture
def sample_card(account_service):
    """Create a credit card account mapped to '2100 Visa'."""
    account_id = account_service.create_account(
        name="Visa",
        account_type=AccountType.CREDIT_CARD,
        qb_account_names=["2100 Visa"],
    )
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Create a few categories with QuickBooks aliases and return their IDs."""
    return {
        "Groceries": category_service.create_category(
            "Groceries", TransactionType.EXPENSE, qb_category_names=["6100 Groceries"]
        ),
        "Mortgage": category_service.create_category(
            "Mortgage", TransactionType.EXPENSE, qb_category_names=["2500 Mortgage"]
        ),
        "Salary": category_service.create_category(
            "Salary", TransactionType.INCOME, qb_category_names=["4000 Salary"]
        ),
    }


@pytest.fixture
def add_transaction(temp_db):
    """Insert one transaction for a user and return its ID."""

    def _add(
        amount,
        transaction_date=date(2026, 1, 5),
        description="Test transaction",
        transaction_type=None,
        user_id=USER,
        **fields,
    ):
        amount = Decimal(amount)
        if transaction_type is None:
            transaction_type = TransactionType.INCOME if amount > 0 else TransactionType.EXPENSE
        draft = TransactionDraft(
            transaction_date=transaction_date,
            amount=amount,
            description=description,
            transaction_type=transaction_type,
            **fields,
        )
        return temp_db.create_transactions(user_id, [draft])[0]

    return _add


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def general_ledger_csv(fixtures_dir):
    """Raw bytes of the General Ledger fixture."""
    return (fixtures_dir / "general_ledger.csv").read_bytes()


@pytest.fixture
def transaction_detail_csv(fixtures_dir):
    """Raw bytes of the Transaction Detail fixture."""
    return (fixtures_dir / "transaction_detail.csv").read_bytes()


@pytest.fixture
def holdings_csv(fixtures_dir):
    """Raw bytes of the holdings fixture."""
    return (fixtures_dir / "holdings.csv").read_bytes()
