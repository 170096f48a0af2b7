"""Ordered keyword rule tables for QuickBooks labels and account names.

Each table is evaluated top to bottom and the first matching rule wins,
so the order of the entries is part of the behaviour.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from qbrecon.domain.entities import AccountType, MappingType, TransactionType

# Four-digit QuickBooks account number; group 1 is its leading digit.
_NUMBER_PREFIX = re.compile(r"^(\d)\d{3}")


@dataclass(frozen=True)
class TypeRule:
    """Substring keyword rule for transaction-type labels."""

    keyword: str
    result: TransactionType

    def matches(self, label: str) -> bool:
        return self.keyword in label


_EXPENSE_LABELS = (
    "credit card expense",
    "credit card charge",
    "credit card credit",
    "credit card",
    "check",
    "bill payment",
    "bill",
    "expense",
    "debit",
    "purchase",
)
_TRANSFER_LABELS = ("transfer", "journal entry")
_INCOME_LABELS = ("deposit", "payment", "invoice", "sales receipt", "refund", "sales", "income")

# Expense labels come first: "credit card credit" must not fall through to
# an income keyword.
TRANSACTION_TYPE_RULES: tuple[TypeRule, ...] = (
    tuple(TypeRule(label, TransactionType.EXPENSE) for label in _EXPENSE_LABELS)
    + tuple(TypeRule(label, TransactionType.TRANSFER) for label in _TRANSFER_LABELS)
    + tuple(TypeRule(label, TransactionType.INCOME) for label in _INCOME_LABELS)
)


def match_transaction_type(label: Optional[str]) -> Optional[TransactionType]:
    """First rule matching the label, or None when nothing matches."""
    if not label:
        return None
    lowered = label.strip().lower()
    for rule in TRANSACTION_TYPE_RULES:
        if rule.matches(lowered):
            return rule.result
    return None


def determine_transaction_type(amount: Decimal, label: Optional[str]) -> TransactionType:
    """Infer income/expense/transfer from a QuickBooks transaction type label.

    Args:
        amount: Signed amount as parsed
        label: QuickBooks transaction type (e.g. "Check", "Deposit")

    Returns:
        Matched rule result; without a match, expense for amounts <= 0
        and income otherwise
    """
    matched = match_transaction_type(label)
    if matched is not None:
        return matched
    return TransactionType.INCOME if amount > 0 else TransactionType.EXPENSE


def type_from_label(label: Optional[str]) -> TransactionType:
    """Category type implied by a label alone (expense when unknown)."""
    return match_transaction_type(label) or TransactionType.EXPENSE


def looks_like_income_account(split_account: Optional[str]) -> bool:
    """True for split accounts such as "Income - Consulting" (not "Income Taxes")."""
    lowered = (split_account or "").strip().lower()
    if "income" not in lowered or "income tax" in lowered:
        return False
    return lowered.startswith("income") or "income -" in lowered or "income:" in lowered


def determine_ledger_type(
    amount: Decimal, label: Optional[str], split_account: Optional[str]
) -> TransactionType:
    """Transaction type for a General Ledger row.

    An income split account wins over the label; otherwise the label
    rule table applies.
    """
    if looks_like_income_account(split_account):
        return TransactionType.INCOME
    return determine_transaction_type(amount, label)


@dataclass(frozen=True)
class AccountGuess:
    """Heuristic classification of a QuickBooks account name."""

    account_type: AccountType
    is_asset: bool = False
    is_liability: bool = False

    @property
    def is_income_expense_category(self) -> bool:
        return not self.is_asset and not self.is_liability


def _prefix(*digits: str) -> Callable[[str], bool]:
    def predicate(name: str) -> bool:
        match = _NUMBER_PREFIX.match(name.strip())
        return match is not None and match.group(1) in digits

    return predicate


def _contains(*keywords: str) -> Callable[[str], bool]:
    def predicate(name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in keywords)

    return predicate


def _words(*words: str) -> Callable[[str], bool]:
    pattern = re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b")

    def predicate(name: str) -> bool:
        return pattern.search(name.lower()) is not None

    return predicate


def _any(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    def predicate(name: str) -> bool:
        return any(p(name) for p in predicates)

    return predicate


_CATEGORY = AccountGuess(AccountType.OTHER)
_OTHER_ASSET = AccountGuess(AccountType.OTHER, is_asset=True)
_OTHER_LIABILITY = AccountGuess(AccountType.OTHER, is_liability=True)

# QuickBooks numbering: 1xxx assets, 2xxx liabilities, 3xxx equity,
# 4xxx income, 5xxx-9xxx expenses.
ACCOUNT_TYPE_RULES: tuple[tuple[Callable[[str], bool], AccountGuess], ...] = (
    (_prefix("3", "4", "5", "6", "7", "8", "9"), _CATEGORY),
    (
        _contains("credit card", "visa", "mastercard", "amex", "discover", "chase sapphire"),
        AccountGuess(AccountType.CREDIT_CARD, is_liability=True),
    ),
    (
        _contains("heloc", "line of credit", "credit line"),
        AccountGuess(AccountType.LOAN, is_liability=True),
    ),
    (_contains("loan"), AccountGuess(AccountType.LOAN, is_liability=True)),
    (_contains("mortgage"), AccountGuess(AccountType.MORTGAGE, is_liability=True)),
    (_contains("savings", "money market"), AccountGuess(AccountType.SAVINGS, is_asset=True)),
    (_contains("checking"), AccountGuess(AccountType.CHECKING, is_asset=True)),
    (
        _any(_contains("401k", "retirement", "pension"), _words("ira")),
        AccountGuess(AccountType.RETIREMENT, is_asset=True),
    ),
    (
        _contains(
            "investment",
            "brokerage",
            "schwab",
            "fidelity",
            "vanguard",
            "ameritrade",
            "morgan stanley",
            "raymond james",
            "crypto",
        ),
        AccountGuess(AccountType.INVESTMENT, is_asset=True),
    ),
    (
        _any(
            _contains("house", "property", "real estate", "tiffin", "escrow", "prepaid"),
            _words("rv"),
        ),
        _OTHER_ASSET,
    ),
    (_contains("payable", "liability", "accrued"), _OTHER_LIABILITY),
    (_prefix("1"), _OTHER_ASSET),
    (_prefix("2"), _OTHER_LIABILITY),
)


def guess_account_type(name: str) -> AccountGuess:
    """Suggest an account type for a QuickBooks account name.

    Names matching no rule are treated as income/expense categories.
    """
    for predicate, guess in ACCOUNT_TYPE_RULES:
        if predicate(name):
            return guess
    return _CATEGORY


_PREFIX_MAPPING = {
    "1": MappingType.ASSET,
    "2": MappingType.LIABILITY,
    "3": MappingType.IGNORED,
    "4": MappingType.INCOME,
}


def suggest_mapping_type(name: str) -> MappingType:
    """Suggested disposition for an unmapped QuickBooks name.

    The number prefix decides when present (5-9 are expenses); otherwise
    the account-type guess decides.
    """
    match = _NUMBER_PREFIX.match(name.strip())
    if match:
        return _PREFIX_MAPPING.get(match.group(1), MappingType.EXPENSE)

    guess = guess_account_type(name)
    if guess.is_liability:
        return MappingType.LIABILITY
    if guess.is_asset:
        return MappingType.ASSET
    return MappingType.EXPENSE
