"""Parser for QuickBooks Online General Ledger exports.

The export groups rows under account sections:

    1000 Checking,,,,,,,,,                     <- section header
    ,Beginning Balance,,,,,,,,90124.79         <- opening balance
    ,1000 Checking,01/02/2026,Expense,,PennyMac,,Mortgage,-2562.45,87562.34
    Total for 1000 Checking,,,,,,,,-53277.15,  <- section total

Besides the flat transaction list, every section becomes a discovered
account that must be mapped before the rows can be stored.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence

from qbrecon.parsers.base import (
    DiscoveredAccount,
    ParsedTransaction,
    ParseResult,
    build_description,
)
from qbrecon.parsers.rules import determine_ledger_type, guess_account_type
from qbrecon.parsers.tabular import (
    Row,
    TableReadError,
    build_rows,
    find_header_row,
    find_row_containing,
    read_table,
)
from qbrecon.utils.amount_parser import parse_amount, parse_optional_amount
from qbrecon.utils.date_parser import parse_qb_date

logger = logging.getLogger(__name__)

HEADER_MARKER = "distribution account"
BEGINNING_BALANCE = "beginning balance"


@dataclass
class _Section:
    name: str
    beginning_balance: Decimal = Decimal("0")
    ending_balance: Optional[Decimal] = None
    transactions: list[ParsedTransaction] = field(default_factory=list)


@dataclass(frozen=True)
class _Columns:
    distribution_account: int
    transaction_date: int
    transaction_type: int
    num: int
    name: int
    memo: int
    split_account: int
    amount: int
    balance: int

    @classmethod
    def from_header(cls, header: Sequence[str]) -> "_Columns":
        lowered = [cell.strip().lower() for cell in header]

        def index_of(*names: str) -> int:
            for name in names:
                if name in lowered:
                    return lowered.index(name)
            return -1

        memo = next(
            (i for i, cell in enumerate(lowered) if "memo" in cell or "description" in cell),
            -1,
        )
        return cls(
            distribution_account=index_of(HEADER_MARKER, "account"),
            transaction_date=index_of("transaction date", "date"),
            transaction_type=index_of("transaction type", "type"),
            num=index_of("num"),
            name=index_of("name"),
            memo=memo,
            split_account=index_of("split account", "split"),
            amount=index_of("amount"),
            balance=index_of("balance"),
        )


def _cell(row: Row, index: int) -> str:
    return row.get(index) if index >= 0 else ""


def parse_general_ledger(raw: bytes, filename: str, binary: Optional[bool] = None) -> ParseResult:
    """Parse a General Ledger export (CSV, XLS or XLSX).

    Sections whose name mentions "deleted" are skipped together with
    their rows, as are zero-amount rows.

    Args:
        raw: File contents
        filename: Original filename (selects CSV or spreadsheet reading)
        binary: Override the reader choice

    Returns:
        ParseResult with transactions, discovered accounts and warnings
    """
    result = ParseResult()
    try:
        # Blank lines are kept: every raw line counts as a ledger row
        table = read_table(raw, filename, binary=binary, skip_empty_lines=False)
    except TableReadError as e:
        result.errors.append(f"Parse error: {e}")
        return result

    header_index = find_row_containing(table, HEADER_MARKER)
    if header_index is None:
        header_index = find_header_row(table)
    columns = _Columns.from_header(table[header_index]) if table else None

    if columns is None or columns.transaction_date < 0 or columns.amount < 0:
        result.errors.append('Could not find header row with "Distribution account" column')
        return result

    sections: dict[str, _Section] = {}
    current: Optional[_Section] = None
    in_deleted_section = False

    for row in build_rows(table, header_index):
        result.row_count += 1
        if row.is_empty():
            result.skipped_count += 1
            continue

        first_cell = row.get(0)
        distribution = _cell(row, columns.distribution_account)
        first_lower = first_cell.lower()

        if first_cell and not first_lower.startswith("total") and not distribution:
            result.skipped_count += 1
            if "deleted" in first_lower:
                logger.debug("Skipping deleted account section %r", first_cell)
                current, in_deleted_section = None, True
                continue
            in_deleted_section = False
            current = sections.setdefault(first_cell, _Section(first_cell))
            continue

        if first_lower.startswith("total"):
            result.skipped_count += 1
            total = parse_optional_amount(_cell(row, columns.amount))
            if current is not None and total is not None:
                current.ending_balance = total
            continue

        if distribution.lower() == BEGINNING_BALANCE:
            result.skipped_count += 1
            opening = _cell(row, columns.balance) or _cell(row, columns.amount)
            if current is not None:
                current.beginning_balance = parse_optional_amount(opening) or Decimal("0")
            continue

        transaction = None if in_deleted_section else _parse_transaction(row, columns, current, result.errors)
        if transaction is None:
            result.skipped_count += 1
            continue

        result.transactions.append(transaction)
        if current is not None:
            current.transactions.append(transaction)

    result.discovered_accounts = _discovered_accounts(sections.values())
    logger.debug(
        "Parsed %d ledger rows in %d sections from %s",
        len(result.transactions),
        len(sections),
        filename,
    )
    return result


def _parse_transaction(
    row: Row, columns: _Columns, section: Optional[_Section], errors: list[str]
) -> Optional[ParsedTransaction]:
    date_value = _cell(row, columns.transaction_date)
    if not date_value:
        return None

    transaction_date = parse_qb_date(date_value)
    if transaction_date is None:
        errors.append(f'Row {row.number}: Invalid date format "{date_value}"')
        return None

    amount_value = _cell(row, columns.amount)
    try:
        amount = parse_amount(amount_value)
    except ValueError:
        errors.append(f'Row {row.number}: Invalid amount "{amount_value}"')
        return None
    if amount == 0:
        return None

    qb_type = _cell(row, columns.transaction_type) or None
    name = _cell(row, columns.name) or None
    memo = _cell(row, columns.memo) or None
    split_account = _cell(row, columns.split_account) or None

    if name or memo:
        description = build_description(name, memo)
    else:
        description = build_description(qb_type)

    return ParsedTransaction(
        transaction_date=transaction_date,
        description=description,
        amount=amount,
        transaction_type=determine_ledger_type(amount, qb_type, split_account),
        memo=memo,
        qb_transaction_type=qb_type,
        qb_num=_cell(row, columns.num) or None,
        qb_name=name,
        qb_account=section.name if section is not None else None,
        split_account=split_account,
        balance=parse_optional_amount(_cell(row, columns.balance)),
    )


def _discovered_accounts(sections) -> list[DiscoveredAccount]:
    discovered = []
    for section in sections:
        guess = guess_account_type(section.name)
        debits = sum((t.amount for t in section.transactions if t.amount > 0), Decimal("0"))
        credits = sum((-t.amount for t in section.transactions if t.amount < 0), Decimal("0"))
        discovered.append(
            DiscoveredAccount(
                name=section.name,
                beginning_balance=section.beginning_balance,
                transaction_count=len(section.transactions),
                total_debits=debits,
                total_credits=credits,
                ending_balance=section.ending_balance,
                suggested_type=guess.account_type,
                is_asset=guess.is_asset,
                is_liability=guess.is_liability,
            )
        )

    # Balance sheet accounts first, then busiest first.
    discovered.sort(key=lambda a: (a.is_income_expense_category, -a.transaction_count))
    return discovered
