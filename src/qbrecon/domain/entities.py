"""Domain model entities for qbrecon.

These are pure data classes representing business concepts, independent of
database schema. Services and engines only ever see these types; the
SQLAlchemy models stay behind the mapper layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class AccountType(str, Enum):
    """Closed set of account types."""

    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    INVESTMENT = "investment"
    RETIREMENT = "retirement"
    LOAN = "loan"
    MORTGAGE = "mortgage"
    OTHER = "other"


class NetWorthBucket(str, Enum):
    """Net worth grouping for an account."""

    CASH = "cash"
    INVESTMENTS = "investments"
    REAL_ESTATE = "real_estate"
    CRYPTO = "crypto"
    RETIREMENT = "retirement"
    LIABILITIES = "liabilities"


class TransactionType(str, Enum):
    """Classified transaction type (also used as category type)."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class BalanceSource(str, Enum):
    """Where an account balance snapshot came from."""

    MANUAL = "manual"
    IMPORT = "import"
    CALCULATED = "calculated"


class ImportStatus(str, Enum):
    """Lifecycle of an import batch."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportFileType(str, Enum):
    """Declared file type of an import batch."""

    TRANSACTION_DETAIL = "quickbooks_transactions"
    GENERAL_LEDGER = "quickbooks_general_ledger"
    INVESTMENTS = "investments"


class MappingType(str, Enum):
    """Disposition of a QuickBooks account name."""

    UNMAPPED = "unmapped"
    IGNORED = "ignored"
    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"


LIABILITY_ACCOUNT_TYPES = frozenset(
    {AccountType.CREDIT_CARD, AccountType.LOAN, AccountType.MORTGAGE}
)


def is_liability_type(account_type: AccountType | str) -> bool:
    """Return True for credit cards, loans and mortgages."""
    return AccountType(account_type) in LIABILITY_ACCOUNT_TYPES


@dataclass(frozen=True)
class Account:
    """Internal account (asset or liability) owned by a user."""

    id: int
    user_id: str
    name: str
    account_type: AccountType
    net_worth_bucket: NetWorthBucket
    is_active: bool
    qb_account_names: tuple[str, ...]
    created_at: datetime
    institution: Optional[str] = None
    interest_rate: Optional[Decimal] = None
    minimum_payment: Optional[Decimal] = None
    target_payoff_date: Optional[date] = None
    payoff_priority: Optional[int] = None
    market_value: Optional[Decimal] = None
    market_value_updated_at: Optional[datetime] = None

    @property
    def is_liability(self) -> bool:
        return is_liability_type(self.account_type)


@dataclass(frozen=True)
class AccountBalance:
    """Absolute balance of an account as of a date."""

    id: int
    account_id: int
    balance_date: date
    balance: Decimal
    source: BalanceSource
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Income/expense/transfer category with an optional parent."""

    id: int
    user_id: str
    name: str
    category_type: TransactionType
    parent_id: Optional[int]
    color: Optional[str]
    qb_category_names: tuple[str, ...]
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    user_id: str
    transaction_date: date
    amount: Decimal
    description: Optional[str]
    transaction_type: TransactionType
    account_id: Optional[int]
    category_id: Optional[int]
    import_batch_id: Optional[int]
    created_at: datetime
    memo: Optional[str] = None
    qb_transaction_type: Optional[str] = None
    qb_num: Optional[str] = None
    qb_name: Optional[str] = None
    qb_class: Optional[str] = None
    qb_split: Optional[str] = None
    qb_account: Optional[str] = None
    split_account: Optional[str] = None
    linked_via_counter: bool = False


@dataclass(frozen=True)
class TransactionDraft:
    """A transaction ready to be inserted (no id yet)."""

    transaction_date: date
    amount: Decimal
    description: Optional[str]
    transaction_type: TransactionType
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    import_batch_id: Optional[int] = None
    memo: Optional[str] = None
    qb_transaction_type: Optional[str] = None
    qb_num: Optional[str] = None
    qb_name: Optional[str] = None
    qb_class: Optional[str] = None
    qb_split: Optional[str] = None
    qb_account: Optional[str] = None
    split_account: Optional[str] = None


@dataclass(frozen=True)
class ImportBatch:
    """One uploaded file and its processing state."""

    id: int
    user_id: str
    filename: str
    file_type: ImportFileType
    status: ImportStatus
    record_count: int
    created_at: datetime
    error_message: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Investment:
    """Brokerage holding snapshot row."""

    id: int
    user_id: str
    symbol: str
    quantity: Decimal
    as_of_date: date
    account_id: Optional[int] = None
    import_batch_id: Optional[int] = None
    name: Optional[str] = None
    cost_basis: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    asset_class: Optional[str] = None
    sector: Optional[str] = None


@dataclass(frozen=True)
class TransactionTypeMapping:
    """Remembered income/expense decision for a QuickBooks transaction type."""

    user_id: str
    qb_transaction_type: str
    mapped_type: TransactionType


@dataclass(frozen=True)
class QBAccountClassification:
    """Remembered income/expense decision for a QuickBooks account name."""

    user_id: str
    qb_account_name: str
    classification: TransactionType
