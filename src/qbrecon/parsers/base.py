"""Parser result structures shared by the QuickBooks and brokerage parsers."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from qbrecon.domain.entities import AccountType, TransactionType

# Descriptions longer than this are truncated.
MAX_DESCRIPTION_LENGTH = 500


@dataclass(frozen=True)
class ParsedTransaction:
    """Intermediate representation output by parsers, before DB insertion."""

    transaction_date: date
    description: str
    amount: Decimal
    transaction_type: TransactionType
    memo: Optional[str] = None
    qb_transaction_type: Optional[str] = None
    qb_num: Optional[str] = None
    qb_name: Optional[str] = None
    qb_class: Optional[str] = None
    qb_split: Optional[str] = None
    qb_account: Optional[str] = None
    split_account: Optional[str] = None
    balance: Optional[Decimal] = None


@dataclass(frozen=True)
class DiscoveredAccount:
    """A QuickBooks account section found in a General Ledger export."""

    name: str
    beginning_balance: Decimal
    transaction_count: int
    total_debits: Decimal
    total_credits: Decimal
    ending_balance: Optional[Decimal]
    suggested_type: AccountType
    is_asset: bool
    is_liability: bool

    @property
    def net_change(self) -> Decimal:
        return self.total_debits - self.total_credits

    @property
    def is_income_expense_category(self) -> bool:
        return not self.is_asset and not self.is_liability


@dataclass
class ParseResult:
    """Outcome of parsing one QuickBooks export.

    Attributes:
        transactions: Successfully parsed rows
        discovered_accounts: Account sections (General Ledger only)
        errors: Every row-level warning, never truncated
        row_count: Data rows after the header
        skipped_count: Rows that did not produce a transaction
    """

    transactions: list[ParsedTransaction] = field(default_factory=list)
    discovered_accounts: list[DiscoveredAccount] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    row_count: int = 0
    skipped_count: int = 0

    @property
    def discovered_names(self) -> list[str]:
        """Names needing a mapping decision before the rows can be stored.

        Only General Ledger sections gate an import; Transaction Detail rows
        have no sections and are categorized and linked as they come.
        """
        return [account.name for account in self.discovered_accounts]

    @property
    def referenced_names(self) -> list[str]:
        """Section names, or the distinct row account names when there are none."""
        if self.discovered_accounts:
            return self.discovered_names

        seen: dict[str, str] = {}
        for txn in self.transactions:
            if txn.qb_account and txn.qb_account.strip():
                seen.setdefault(txn.qb_account.strip().lower(), txn.qb_account.strip())
        return list(seen.values())


@dataclass(frozen=True)
class ParsedInvestment:
    """One holding row from a brokerage positions export."""

    symbol: str
    quantity: Decimal
    as_of_date: date
    name: Optional[str] = None
    cost_basis: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    asset_class: Optional[str] = None
    sector: Optional[str] = None


@dataclass
class InvestmentParseResult:
    """Outcome of parsing a brokerage holdings CSV."""

    investments: list[ParsedInvestment] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    row_count: int = 0
    skipped_count: int = 0
    total_value: Decimal = Decimal("0")


def build_description(*parts: Optional[str]) -> str:
    """Join the non-empty parts with " - ", falling back to "Unknown"."""
    description = " - ".join(part for part in parts if part) or "Unknown"
    return description[:MAX_DESCRIPTION_LENGTH]
