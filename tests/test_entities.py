"""Tests for domain entities."""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, date, UTC
from decimal import Decimal

from qbrecon.domain.entities import (
    Account,
    AccountType,
    Category,
    ImportBatch,
    ImportFileType,
    ImportStatus,
    NetWorthBucket,
    TransactionDraft,
    TransactionType,
    is_liability_type,
)


def _account(**overrides):
    fields = dict(
        id=1,
        user_id="alice",
        name="Checking",
        account_type=AccountType.CHECKING,
        net_worth_bucket=NetWorthBucket.CASH,
        is_active=True,
        qb_account_names=("1000 Checking",),
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
    )
    fields.update(overrides)
    return Account(**fields)


class TestAccount:
    """Tests for Account entity."""

    def test_create_account(self):
        """Test creating an Account entity."""
        account = _account()
        assert account.name == "Checking"
        assert account.qb_account_names == ("1000 Checking",)
        assert account.interest_rate is None
        assert account.payoff_priority is None

    def test_account_immutability(self):
        """Test that Account entities are immutable."""
        account = _account()
        with pytest.raises(FrozenInstanceError):
            account.name = "New Name"

    def test_account_equality(self):
        """Test Account entity equality."""
        assert _account() == _account()
        assert _account() != _account(id=2)

    @pytest.mark.parametrize(
        "account_type,expected",
        [
            (AccountType.CHECKING, False),
            (AccountType.SAVINGS, False),
            (AccountType.INVESTMENT, False),
            (AccountType.RETIREMENT, False),
            (AccountType.OTHER, False),
            (AccountType.CREDIT_CARD, True),
            (AccountType.LOAN, True),
            (AccountType.MORTGAGE, True),
        ],
    )
    def test_is_liability(self, account_type, expected):
        """Credit cards, loans and mortgages are liabilities."""
        assert _account(account_type=account_type).is_liability is expected
        assert is_liability_type(account_type.value) is expected


class TestCategory:
    """Tests for Category entity."""

    def test_create_category_with_parent(self):
        """Test creating a Category with a parent."""
        category = Category(
            id=2,
            user_id="alice",
            name="Fuel",
            category_type=TransactionType.EXPENSE,
            parent_id=1,
            color=None,
            qb_category_names=(),
            created_at=datetime.now(UTC),
        )
        assert category.parent_id == 1
        assert category.category_type == TransactionType.EXPENSE


class TestTransactionDraft:
    """Tests for TransactionDraft entity."""

    def test_optional_fields_default_to_none(self):
        draft = TransactionDraft(
            transaction_date=date(2026, 1, 5),
            amount=Decimal("-12.34"),
            description="Coffee",
            transaction_type=TransactionType.EXPENSE,
        )
        assert draft.account_id is None
        assert draft.qb_account is None
        assert draft.split_account is None


class TestImportBatch:
    """Tests for ImportBatch entity."""

    def test_metadata_defaults_to_empty_dict(self):
        batch = ImportBatch(
            id=1,
            user_id="alice",
            filename="ledger.csv",
            file_type=ImportFileType.GENERAL_LEDGER,
            status=ImportStatus.PENDING,
            record_count=0,
            created_at=datetime.now(UTC),
        )
        assert batch.metadata == {}
        assert batch.error_message is None

    def test_enum_values(self):
        """Enum values are the strings stored in the database."""
        assert ImportFileType.TRANSACTION_DETAIL.value == "quickbooks_transactions"
        assert ImportFileType.GENERAL_LEDGER.value == "quickbooks_general_ledger"
        assert ImportStatus("completed") == ImportStatus.COMPLETED
