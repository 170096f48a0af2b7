"""Account balance engine.

Balances are computed on demand: the latest manual anchor (or zero) plus the
sum of every transaction on the account dated on or after the anchor date.
Only one manual anchor is kept per account; import and calculated snapshots
may coexist with it for history.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Iterable

from qbrecon.database.base import Database
from qbrecon.domain.account import AccountService
from qbrecon.domain.entities import (
    Account,
    AccountBalance,
    AccountType,
    BalanceSource,
    NetWorthBucket,
    Transaction,
)
from qbrecon.domain.errors import ValidationError, require_user

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

MARKET_VALUED_TYPES = frozenset({AccountType.INVESTMENT, AccountType.RETIREMENT})


@dataclass(frozen=True)
class BalanceResult:
    """Computed balance of one account."""

    balance: Decimal
    transaction_count: int
    starting_balance: Decimal
    starting_date: Optional[date]


@dataclass(frozen=True)
class LedgerRow:
    """A transaction with the balance after applying it."""

    transaction: Transaction
    running_balance: Decimal

    @property
    def balance_change(self) -> Decimal:
        return self.transaction.amount


@dataclass(frozen=True)
class Ledger:
    """Running-balance view of an account."""

    starting_balance: Decimal
    starting_date: Optional[date]
    rows: tuple[LedgerRow, ...]
    final_balance: Decimal


@dataclass(frozen=True)
class AccountWithBalance:
    """An account and the balance shown for it."""

    account: Account
    result: BalanceResult

    @property
    def current_balance(self) -> Decimal:
        return self.result.balance

    @property
    def display_balance(self) -> Decimal:
        """Market value for investment-style accounts when set, else computed."""
        if self.account.account_type in MARKET_VALUED_TYPES and self.account.market_value is not None:
            return self.account.market_value
        return self.result.balance


@dataclass(frozen=True)
class NetWorthTotals:
    """Asset, liability and net worth totals over active accounts."""

    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    by_bucket: dict[NetWorthBucket, Decimal] = field(default_factory=dict)


def latest_manual_anchor(balances: Iterable[AccountBalance]) -> Optional[AccountBalance]:
    """The manual snapshot with the latest date, if any."""
    manual = [b for b in balances if b.source == BalanceSource.MANUAL]
    if not manual:
        return None
    return max(manual, key=lambda b: (b.balance_date, b.id))


def calculate_account_balance(
    starting_balance: Decimal,
    starting_date: Optional[date],
    transactions: Iterable[Transaction],
) -> BalanceResult:
    """Anchor balance plus every transaction dated on or after the anchor date."""
    relevant = [
        t for t in transactions if starting_date is None or t.transaction_date >= starting_date
    ]
    total = sum((t.amount for t in relevant), ZERO)
    return BalanceResult(
        balance=starting_balance + total,
        transaction_count=len(relevant),
        starting_balance=starting_balance,
        starting_date=starting_date,
    )


def build_ledger(
    starting_balance: Decimal,
    starting_date: Optional[date],
    transactions: Iterable[Transaction],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Ledger:
    """Running balance over transactions ordered by date, then creation.

    The running sum always starts at the anchor; start_date/end_date only
    select which rows are returned, so displayed balances stay correct.
    """
    ordered = sorted(
        (t for t in transactions if starting_date is None or t.transaction_date >= starting_date),
        key=lambda t: (t.transaction_date, t.id),
    )

    running = starting_balance
    final = starting_balance
    rows: list[LedgerRow] = []
    for txn in ordered:
        running += txn.amount
        if end_date is not None and txn.transaction_date > end_date:
            break
        final = running
        if start_date is not None and txn.transaction_date < start_date:
            continue
        rows.append(LedgerRow(txn, running))

    return Ledger(
        starting_balance=starting_balance,
        starting_date=starting_date,
        rows=tuple(rows),
        final_balance=final,
    )


def calculate_net_worth_totals(accounts: Iterable[AccountWithBalance]) -> NetWorthTotals:
    """Assets minus absolute liabilities over active accounts."""
    total_assets = ZERO
    liabilities = ZERO
    by_bucket: dict[NetWorthBucket, Decimal] = {}

    for item in accounts:
        if not item.account.is_active:
            continue
        balance = item.display_balance
        if item.account.is_liability:
            liabilities += balance
        else:
            total_assets += balance
        bucket = item.account.net_worth_bucket
        by_bucket[bucket] = by_bucket.get(bucket, ZERO) + balance

    total_liabilities = abs(liabilities)
    return NetWorthTotals(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        by_bucket=by_bucket,
    )


class BalanceService:
    """Reads and writes balance anchors and computes derived balances."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)
        self.account_service = AccountService(db, self.user_id)

    def set_starting_balance(self, account_id: int, balance: Decimal, balance_date: date) -> int:
        """Replace all manual anchors of an account with a single new one.

        Returns:
            ID of the new snapshot

        Raises:
            NotFoundError: If the account isn't the user's
        """
        self.account_service.require_account(account_id)
        removed = self.db.delete_account_balances(account_id, source=BalanceSource.MANUAL)
        logger.debug("Removed %d manual anchors for account %s", removed, account_id)
        return self.db.upsert_account_balance(
            account_id, balance_date, Decimal(balance), BalanceSource.MANUAL
        )

    def record_balance_snapshot(
        self,
        account_id: int,
        balance: Decimal,
        balance_date: date,
        source: BalanceSource = BalanceSource.IMPORT,
    ) -> int:
        """Insert or replace a non-manual snapshot of an account for a date.

        Raises:
            NotFoundError: If the account isn't the user's
            ValidationError: For a manual source, or a date holding the manual anchor
        """
        source = BalanceSource(source)
        if source == BalanceSource.MANUAL:
            raise ValidationError("Manual balances are set with set_starting_balance")
        self.account_service.require_account(account_id)
        anchor = latest_manual_anchor(
            self.db.list_account_balances(account_id, source=BalanceSource.MANUAL)
        )
        if anchor is not None and anchor.balance_date == balance_date:
            raise ValidationError(
                f"{balance_date} holds the starting balance of account {account_id}"
            )
        return self.db.upsert_account_balance(account_id, balance_date, Decimal(balance), source)

    def list_balances(self, account_id: int) -> list[AccountBalance]:
        self.account_service.require_account(account_id)
        return self.db.list_account_balances(account_id)

    def get_anchor(self, account_id: int) -> Optional[AccountBalance]:
        """Latest manual anchor of an account."""
        self.account_service.require_account(account_id)
        return latest_manual_anchor(
            self.db.list_account_balances(account_id, source=BalanceSource.MANUAL)
        )

    def _anchor_values(self, account_id: int) -> tuple[Decimal, Optional[date]]:
        anchor = self.get_anchor(account_id)
        if anchor is None:
            return ZERO, None
        return anchor.balance, anchor.balance_date

    def compute_account_balance(self, account_id: int) -> BalanceResult:
        """Current balance of an account.

        Raises:
            NotFoundError: If the account isn't the user's
        """
        starting_balance, starting_date = self._anchor_values(account_id)
        transactions = self.db.list_transactions(
            self.user_id, account_id=account_id, start_date=starting_date
        )
        return calculate_account_balance(starting_balance, starting_date, transactions)

    def compute_ledger(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Ledger:
        """Running-balance rows of an account, optionally limited to a date range."""
        starting_balance, starting_date = self._anchor_values(account_id)
        transactions = self.db.list_transactions(
            self.user_id, account_id=account_id, start_date=starting_date
        )
        return build_ledger(starting_balance, starting_date, transactions, start_date, end_date)

    def accounts_with_balances(self, active_only: bool = False) -> list[AccountWithBalance]:
        """Every account with its computed balance, ordered by name."""
        return [
            AccountWithBalance(account, self.compute_account_balance(account.id))
            for account in self.account_service.list_accounts(active_only=active_only)
        ]

    def net_worth_totals(self) -> NetWorthTotals:
        return calculate_net_worth_totals(self.accounts_with_balances(active_only=True))
