"""Debt payoff projections and payoff ordering strategies."""

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Union

from qbrecon.database.base import Database
from qbrecon.domain.balance import BalanceService
from qbrecon.domain.entities import AccountType
from qbrecon.domain.errors import ValidationError, require_user
from qbrecon.utils.date_parser import add_months

Number = Union[Decimal, float, int]


class PayoffStrategy(str, Enum):
    """Order in which debts are paid down."""

    AVALANCHE = "avalanche"
    SNOWBALL = "snowball"
    MANUAL = "manual"


@dataclass(frozen=True)
class DebtAccount:
    """A liability account with its displayed balance and debt terms."""

    account_id: int
    name: str
    account_type: AccountType
    display_balance: Decimal
    interest_rate: Optional[Decimal] = None
    minimum_payment: Optional[Decimal] = None
    target_payoff_date: Optional[date] = None
    payoff_priority: Optional[int] = None


def calculate_months_to_payoff(balance: Number, apr: Number, monthly_payment: Number) -> Optional[int]:
    """Months of fixed payments needed to clear a balance.

    Returns:
        0 when nothing is owed, None when the payment is not positive or
        never covers the monthly interest
    """
    balance = float(balance)
    monthly_payment = float(monthly_payment)
    if balance <= 0:
        return 0
    if monthly_payment <= 0:
        return None

    monthly_rate = float(apr) / 100 / 12
    if monthly_rate == 0:
        return math.ceil(balance / monthly_payment)

    if monthly_payment <= balance * monthly_rate:
        return None

    # n = -log(1 - r * B / P) / log(1 + r)
    return math.ceil(
        -math.log(1 - (monthly_rate * balance) / monthly_payment) / math.log(1 + monthly_rate)
    )


def calculate_payoff_date(
    balance: Number,
    apr: Number,
    monthly_payment: Number,
    today: Optional[date] = None,
) -> Optional[date]:
    """Calendar date of the final payment, or None if the debt never clears."""
    today = today or date.today()
    months = calculate_months_to_payoff(balance, apr, monthly_payment)
    if months is None:
        return None
    return add_months(today, months)


def calculate_weighted_apr(debts: Sequence[DebtAccount]) -> Decimal:
    """Balance-weighted APR over debts that have a positive rate."""
    with_rate = [d for d in debts if d.interest_rate is not None and d.interest_rate > 0]
    total_balance = sum((abs(d.display_balance) for d in with_rate), Decimal("0"))
    if total_balance == 0:
        return Decimal("0")
    weighted = sum((d.interest_rate * abs(d.display_balance) for d in with_rate), Decimal("0"))
    return weighted / total_balance


def _rate(debt: DebtAccount) -> Decimal:
    return debt.interest_rate if debt.interest_rate is not None else Decimal("0")


def _avalanche_key(debt: DebtAccount):
    return (-_rate(debt), -abs(debt.display_balance))


def sort_by_payoff_strategy(
    debts: Sequence[DebtAccount], strategy: PayoffStrategy = PayoffStrategy.AVALANCHE
) -> list[DebtAccount]:
    """Debts in the order they should be paid down.

    avalanche: highest APR first, larger balance breaking ties.
    snowball: smallest absolute balance first.
    manual: ascending payoff priority; debts without one go last in
    avalanche order.
    """
    strategy = PayoffStrategy(strategy)
    if strategy == PayoffStrategy.SNOWBALL:
        return sorted(debts, key=lambda d: abs(d.display_balance))
    if strategy == PayoffStrategy.MANUAL:
        return sorted(
            debts,
            key=lambda d: (
                d.payoff_priority is None,
                d.payoff_priority if d.payoff_priority is not None else 0,
                *_avalanche_key(d),
            ),
        )
    return sorted(debts, key=_avalanche_key)


def get_effective_strategy(debts: Sequence[DebtAccount]) -> PayoffStrategy:
    """Manual as soon as any debt has a priority, avalanche otherwise."""
    if any(d.payoff_priority is not None for d in debts):
        return PayoffStrategy.MANUAL
    return PayoffStrategy.AVALANCHE


def calculate_monthly_interest(balance: Number, apr: Number) -> Decimal:
    balance = Decimal(balance)
    apr = Decimal(apr)
    if balance <= 0 or apr <= 0:
        return Decimal("0")
    return abs(balance) * apr / 100 / 12


def calculate_total_minimum_payments(debts: Sequence[DebtAccount]) -> Decimal:
    return sum((d.minimum_payment or Decimal("0") for d in debts), Decimal("0"))


def calculate_total_monthly_interest(debts: Sequence[DebtAccount]) -> Decimal:
    return sum(
        (calculate_monthly_interest(d.display_balance, _rate(d)) for d in debts), Decimal("0")
    )


def format_months_to_payoff(months: Optional[int]) -> str:
    """Human-readable payoff horizon, e.g. "3 months", "2 years", "1y 4m"."""
    if months is None:
        return "Never"
    if months == 0:
        return "Paid off"
    if months < 12:
        return f"{months} month{'' if months == 1 else 's'}"

    years, remaining = divmod(months, 12)
    if remaining == 0:
        return f"{years} year{'' if years == 1 else 's'}"
    return f"{years}y {remaining}m"


@dataclass(frozen=True)
class DebtProjection:
    """A debt with its payoff projection at the minimum payment."""

    debt: DebtAccount
    monthly_interest: Decimal
    months_to_payoff: Optional[int]
    payoff_date: Optional[date]

    @property
    def payoff_label(self) -> str:
        if self.debt.minimum_payment is None and self.months_to_payoff is None:
            return "No payment set"
        return format_months_to_payoff(self.months_to_payoff)


@dataclass(frozen=True)
class DebtView:
    """Ordered debts and their totals."""

    strategy: PayoffStrategy
    debts: tuple[DebtProjection, ...]
    total_debt: Decimal
    total_minimum_payments: Decimal
    total_monthly_interest: Decimal
    weighted_apr: Decimal


def project_debt(debt: DebtAccount, today: Optional[date] = None) -> DebtProjection:
    balance = abs(debt.display_balance)
    rate = _rate(debt)
    payment = debt.minimum_payment if debt.minimum_payment is not None else Decimal("0")
    return DebtProjection(
        debt=debt,
        monthly_interest=calculate_monthly_interest(balance, rate),
        months_to_payoff=calculate_months_to_payoff(balance, rate, payment),
        payoff_date=calculate_payoff_date(balance, rate, payment, today=today),
    )


def build_debt_view(
    debts: Sequence[DebtAccount],
    strategy: Optional[PayoffStrategy] = None,
    today: Optional[date] = None,
) -> DebtView:
    """Order debts by the requested (or effective) strategy and project each."""
    effective = PayoffStrategy(strategy) if strategy is not None else get_effective_strategy(debts)
    ordered = sort_by_payoff_strategy(debts, effective)
    return DebtView(
        strategy=effective,
        debts=tuple(project_debt(d, today=today) for d in ordered),
        total_debt=sum((abs(d.display_balance) for d in debts), Decimal("0")),
        total_minimum_payments=calculate_total_minimum_payments(debts),
        total_monthly_interest=calculate_total_monthly_interest(debts),
        weighted_apr=calculate_weighted_apr(debts),
    )


class DebtService:
    """Debt view over the user's active liability accounts."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)
        self.balance_service = BalanceService(db, self.user_id)

    def list_debts(self) -> list[DebtAccount]:
        debts = []
        for item in self.balance_service.accounts_with_balances(active_only=True):
            account = item.account
            if not account.is_liability:
                continue
            debts.append(
                DebtAccount(
                    account_id=account.id,
                    name=account.name,
                    account_type=account.account_type,
                    display_balance=item.display_balance,
                    interest_rate=account.interest_rate,
                    minimum_payment=account.minimum_payment,
                    target_payoff_date=account.target_payoff_date,
                    payoff_priority=account.payoff_priority,
                )
            )
        return debts

    def compute_debt_view(
        self, strategy: Optional[PayoffStrategy | str] = None, today: Optional[date] = None
    ) -> DebtView:
        """Ordered debts with APR, payment and projection fields.

        Args:
            strategy: avalanche, snowball or manual; effective strategy when omitted
            today: Date projections start from
        """
        if strategy is not None:
            try:
                strategy = PayoffStrategy(strategy)
            except ValueError:
                raise ValidationError(f"Unknown payoff strategy '{strategy}'") from None
        return build_debt_view(self.list_debts(), strategy, today=today)
