"""Account domain service."""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional, Iterable

from qbrecon.database.base import Database
from qbrecon.domain.entities import (
    Account as AccountEntity,
    AccountType,
    NetWorthBucket,
    is_liability_type,
)
from qbrecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_account_name,
    require_user,
)

logger = logging.getLogger(__name__)

_DEFAULT_BUCKETS = {
    AccountType.INVESTMENT: NetWorthBucket.INVESTMENTS,
    AccountType.RETIREMENT: NetWorthBucket.RETIREMENT,
}


def default_net_worth_bucket(account_type: AccountType) -> NetWorthBucket:
    """Net worth bucket implied by an account type."""
    if is_liability_type(account_type):
        return NetWorthBucket.LIABILITIES
    return _DEFAULT_BUCKETS.get(AccountType(account_type), NetWorthBucket.CASH)


def qb_key(name: Optional[str]) -> str:
    """Lookup key for a QuickBooks name: trimmed and lowercased."""
    return (name or "").strip().lower()


def find_account_for_qb_name(
    qb_account_name: Optional[str], accounts: Iterable[AccountEntity]
) -> Optional[AccountEntity]:
    """Return the first account whose alias list contains the name.

    Matching is case-insensitive and ignores surrounding whitespace.
    """
    key = qb_key(qb_account_name)
    if not key:
        return None
    for account in accounts:
        if any(qb_key(alias) == key for alias in account.qb_account_names):
            return account
    return None


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database, user_id: Optional[str]):
        """Initialize account service.

        Args:
            db: Database instance
            user_id: Owning user; every operation is scoped to it

        Raises:
            AuthorizationError: If no user is given
        """
        self.db = db
        self.user_id = require_user(user_id)

    def create_account(
        self,
        name: str,
        account_type: AccountType | str,
        net_worth_bucket: Optional[NetWorthBucket | str] = None,
        institution: Optional[str] = None,
        qb_account_names: Iterable[str] = (),
        is_active: bool = True,
    ) -> int:
        """Create a new account.

        Args:
            name: Display name, unique per user
            account_type: One of the AccountType values
            net_worth_bucket: Bucket; derived from the type when omitted
            institution: Optional bank or brokerage name
            qb_account_names: Initial QuickBooks aliases
            is_active: Whether the account counts toward totals

        Returns:
            Account ID

        Raises:
            ValidationError: If name, type or bucket is invalid
            ConflictError: If account name already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name cannot be empty")
        account_type = _account_type(account_type)
        bucket = (
            _net_worth_bucket(net_worth_bucket)
            if net_worth_bucket is not None
            else default_net_worth_bucket(account_type)
        )

        if self.find_account_by_name(name) is not None:
            raise ConflictError(duplicate_account_name(name))

        aliases = _dedupe_aliases(qb_account_names)
        account_id = self.db.create_account(
            user_id=self.user_id,
            name=name,
            account_type=account_type,
            net_worth_bucket=bucket,
            is_active=is_active,
            qb_account_names=aliases,
            institution=institution,
        )
        logger.info("Created account %s (%s) for %s", name, account_type.value, self.user_id)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(self.user_id, account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID or raise NotFoundError."""
        account = self.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(self, active_only: bool = False) -> list[AccountEntity]:
        """List the user's accounts ordered by name."""
        return self.db.list_accounts(self.user_id, active_only=active_only)

    def find_account_by_name(self, name: str) -> Optional[AccountEntity]:
        """Find an account by display name, ignoring case."""
        key = qb_key(name)
        for account in self.list_accounts():
            if qb_key(account.name) == key:
                return account
        return None

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        account_type: Optional[AccountType | str] = None,
        net_worth_bucket: Optional[NetWorthBucket | str] = None,
        institution: Optional[str] = None,
        is_active: Optional[bool] = None,
        interest_rate: Optional[Decimal] = None,
        minimum_payment: Optional[Decimal] = None,
        target_payoff_date: Optional[date] = None,
        payoff_priority: Optional[int] = None,
        clear_payoff_priority: bool = False,
        market_value: Optional[Decimal] = None,
    ) -> None:
        """Update account fields. Only the arguments given are changed.

        Raises:
            NotFoundError: If account not found
            ConflictError: If the new name is used by another account
            ValidationError: If a debt field is negative
        """
        self.require_account(account_id)
        changes: dict = {}

        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Account name cannot be empty")
            existing = self.find_account_by_name(name)
            if existing is not None and existing.id != account_id:
                raise ConflictError(duplicate_account_name(name))
            changes["name"] = name
        if account_type is not None:
            changes["account_type"] = _account_type(account_type)
        if net_worth_bucket is not None:
            changes["net_worth_bucket"] = _net_worth_bucket(net_worth_bucket)
        if institution is not None:
            changes["institution"] = institution
        if is_active is not None:
            changes["is_active"] = is_active
        for field_name, value in (
            ("interest_rate", interest_rate),
            ("minimum_payment", minimum_payment),
            ("market_value", market_value),
        ):
            if value is None:
                continue
            if value < 0:
                raise ValidationError(f"{field_name.replace('_', ' ').capitalize()} cannot be negative")
            changes[field_name] = value
        if market_value is not None:
            changes["market_value_updated_at"] = datetime.now(UTC)
        if target_payoff_date is not None:
            changes["target_payoff_date"] = target_payoff_date
        if clear_payoff_priority:
            changes["payoff_priority"] = None
        elif payoff_priority is not None:
            changes["payoff_priority"] = payoff_priority

        if changes:
            self.db.update_account(self.user_id, account_id, changes)

    def delete_account(self, account_id: int) -> int:
        """Delete an account.

        Linked transactions are kept and become unlinked.

        Args:
            account_id: Account ID to delete

        Returns:
            Number of transactions that were detached

        Raises:
            NotFoundError: If account not found
        """
        account = self.require_account(account_id)
        detached = self.db.get_account_transaction_count(self.user_id, account_id)
        self.db.delete_account(self.user_id, account_id)
        logger.info("Deleted account %s; detached %d transactions", account.name, detached)
        return detached

    def add_qb_name(self, account_id: int, qb_name: str) -> bool:
        """Append a QuickBooks alias to an account.

        Returns:
            False when the alias was already present (case-insensitive)
        """
        account = self.require_account(account_id)
        qb_name = (qb_name or "").strip()
        if not qb_name:
            raise ValidationError("QuickBooks account name cannot be empty")
        if any(qb_key(alias) == qb_key(qb_name) for alias in account.qb_account_names):
            return False
        self.db.set_account_qb_names(
            self.user_id, account_id, [*account.qb_account_names, qb_name]
        )
        return True

    def remove_qb_name(self, account_id: int, qb_name: str) -> bool:
        """Remove a QuickBooks alias from an account. Returns True if removed."""
        account = self.require_account(account_id)
        remaining = [alias for alias in account.qb_account_names if qb_key(alias) != qb_key(qb_name)]
        if len(remaining) == len(account.qb_account_names):
            return False
        self.db.set_account_qb_names(self.user_id, account_id, remaining)
        return True


def _dedupe_aliases(names: Iterable[str]) -> list[str]:
    seen: dict[str, str] = {}
    for name in names:
        if name and name.strip():
            seen.setdefault(qb_key(name), name.strip())
    return list(seen.values())


def _account_type(value: AccountType | str) -> AccountType:
    try:
        return AccountType(value)
    except ValueError:
        valid = ", ".join(t.value for t in AccountType)
        raise ValidationError(f"Invalid account type '{value}'. Expected one of: {valid}") from None


def _net_worth_bucket(value: NetWorthBucket | str) -> NetWorthBucket:
    try:
        return NetWorthBucket(value)
    except ValueError:
        valid = ", ".join(b.value for b in NetWorthBucket)
        raise ValidationError(f"Invalid net worth bucket '{value}'. Expected one of: {valid}") from None
