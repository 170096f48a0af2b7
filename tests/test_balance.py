"""Tests for balance anchors, ledgers and net worth."""

from datetime import date
from decimal import Decimal

import pytest

from qbrecon.domain.balance import calculate_account_balance, latest_manual_anchor
from qbrecon.domain.entities import AccountType, BalanceSource
from qbrecon.domain.errors import NotFoundError, ValidationError


@pytest.fixture
def checking_history(sample_account, add_transaction):
    """Three checking transactions around a January 1 anchor."""
    add_transaction("-50.00", date(2025, 12, 31), account_id=sample_account.id)
    add_transaction("-200.00", date(2026, 1, 5), account_id=sample_account.id)
    add_transaction("300.00", date(2026, 1, 10), account_id=sample_account.id)
    return sample_account


def test_balance_without_anchor(balance_service, checking_history):
    """Without an anchor the balance is the sum of every transaction."""
    result = balance_service.compute_account_balance(checking_history.id)
    assert result.balance == Decimal("50.00")
    assert result.transaction_count == 3
    assert result.starting_date is None


def test_balance_from_anchor(balance_service, checking_history):
    """Transactions before the anchor date are excluded."""
    balance_service.set_starting_balance(checking_history.id, Decimal("1000.00"), date(2026, 1, 1))

    result = balance_service.compute_account_balance(checking_history.id)

    assert result.balance == Decimal("1100.00")
    assert result.transaction_count == 2
    assert result.starting_balance == Decimal("1000.00")
    assert result.starting_date == date(2026, 1, 1)


def test_single_manual_anchor(balance_service, sample_account):
    """Setting a new anchor replaces earlier manual anchors only."""
    balance_service.set_starting_balance(sample_account.id, Decimal("10"), date(2026, 1, 1))
    balance_service.record_balance_snapshot(
        sample_account.id, Decimal("99"), date(2026, 2, 1), BalanceSource.IMPORT
    )
    balance_service.set_starting_balance(sample_account.id, Decimal("20"), date(2025, 6, 1))

    balances = balance_service.list_balances(sample_account.id)
    manual = [b for b in balances if b.source == BalanceSource.MANUAL]

    assert len(manual) == 1
    assert len(balances) == 2
    anchor = balance_service.get_anchor(sample_account.id)
    assert anchor.balance == Decimal("20")
    assert anchor.balance_date == date(2025, 6, 1)



def test_snapshot_cannot_add_manual_anchor(balance_service, sample_account):
    """Manual anchors only come from set_starting_balance."""
    balance_service.set_starting_balance(sample_account.id, Decimal("10"), date(2026, 1, 1))

    with pytest.raises(ValidationError, match="set_starting_balance"):
        balance_service.record_balance_snapshot(
            sample_account.id, Decimal("50"), date(2026, 3, 1), BalanceSource.MANUAL
        )
    with pytest.raises(ValidationError, match="starting balance"):
        balance_service.record_balance_snapshot(sample_account.id, Decimal("50"), date(2026, 1, 1))

    snapshot_id = balance_service.record_balance_snapshot(
        sample_account.id, Decimal("50"), date(2026, 3, 1)
    )
    snapshot = next(b for b in balance_service.list_balances(sample_account.id) if b.id == snapshot_id)
    assert snapshot.source == BalanceSource.IMPORT
    assert balance_service.get_anchor(sample_account.id).balance == Decimal("10")

def test_unknown_account(balance_service):
    with pytest.raises(NotFoundError):
        balance_service.compute_account_balance(999)


class TestLedger:
    """Tests for running-balance ledgers."""

    def test_running_balance(self, balance_service, checking_history):
        """Rows carry the balance after each transaction, oldest first."""
        balance_service.set_starting_balance(checking_history.id, Decimal("1000.00"), date(2026, 1, 1))

        ledger = balance_service.compute_ledger(checking_history.id)

        assert [row.running_balance for row in ledger.rows] == [Decimal("800.00"), Decimal("1100.00")]
        assert ledger.final_balance == Decimal("1100.00")

    def test_start_date_hides_rows_only(self, balance_service, checking_history):
        """Rows before the start date still count toward the running balance."""
        ledger = balance_service.compute_ledger(checking_history.id, start_date=date(2026, 1, 6))

        assert len(ledger.rows) == 1
        assert ledger.rows[0].running_balance == Decimal("50.00")
        assert ledger.rows[0].balance_change == Decimal("300.00")

    def test_end_date_stops_ledger(self, balance_service, checking_history):
        """The final balance is the balance at the end date."""
        ledger = balance_service.compute_ledger(checking_history.id, end_date=date(2026, 1, 5))

        assert len(ledger.rows) == 2
        assert ledger.final_balance == Decimal("-250.00")


def test_net_worth_totals(balance_service, account_service, sample_account, sample_card, add_transaction):
    """Assets minus liabilities over active accounts, with market values."""
    add_transaction("1000.00", account_id=sample_account.id)
    add_transaction("-300.00", account_id=sample_card.id)

    brokerage_id = account_service.create_account("Brokerage", AccountType.INVESTMENT)
    add_transaction("100.00", account_id=brokerage_id)
    account_service.update_account(brokerage_id, market_value=Decimal("5000"))

    closed_id = account_service.create_account("Old Savings", AccountType.SAVINGS, is_active=False)
    add_transaction("700.00", account_id=closed_id)

    totals = balance_service.net_worth_totals()

    assert totals.total_assets == Decimal("6000.00")
    assert totals.total_liabilities == Decimal("300.00")
    assert totals.net_worth == Decimal("5700.00")
    assert sum(totals.by_bucket.values()) == Decimal("5700.00")


def test_market_value_only_for_investment_types(balance_service, account_service, sample_account, add_transaction):
    """A market value on a checking account does not replace its balance."""
    add_transaction("40.00", account_id=sample_account.id)
    account_service.update_account(sample_account.id, market_value=Decimal("9999"))

    item = balance_service.accounts_with_balances()[0]

    assert item.display_balance == Decimal("40.00")


def test_latest_manual_anchor_and_calculation():
    """Pure helpers work without a database."""
    assert latest_manual_anchor([]) is None
    result = calculate_account_balance(Decimal("5"), None, [])
    assert result.balance == Decimal("5")
    assert result.transaction_count == 0
