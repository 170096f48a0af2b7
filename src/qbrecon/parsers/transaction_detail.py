"""Parser for QuickBooks "Transaction Detail by Account" exports."""

import logging
from typing import Optional

from qbrecon.parsers.base import ParsedTransaction, ParseResult, build_description
from qbrecon.parsers.rules import determine_transaction_type
from qbrecon.parsers.tabular import Row, TableReadError, build_rows, find_header_row, read_table
from qbrecon.utils.amount_parser import parse_amount
from qbrecon.utils.date_parser import parse_qb_date

logger = logging.getLogger(__name__)

DATE_COLUMNS = ("Date", "Trans Date", "Transaction Date", "Txn Date")
AMOUNT_COLUMNS = ("Amount", "Total", "Debit", "Credit")
TYPE_COLUMNS = ("Transaction Type", "Type", "Txn Type")
NAME_COLUMNS = ("Name", "Payee", "Customer", "Vendor")
MEMO_COLUMNS = ("Memo", "Description", "Memo/Description")
NUM_COLUMNS = ("Num", "Number", "Doc Num", "Ref #")
CLASS_COLUMNS = ("Class",)
SPLIT_COLUMNS = ("Split", "Category", "Expense Account")
# QuickBooks may emit this column twice; the later one is the offsetting account.
ACCOUNT_COLUMNS = ("Account full name",)


def parse_transaction_detail(raw: bytes, filename: str, binary: Optional[bool] = None) -> ParseResult:
    """Parse a Transaction Detail export (CSV, XLS or XLSX).

    Title rows above the header are skipped. Rows without a date or
    amount are skipped silently; rows with a bad date or amount are
    skipped with a warning.

    Args:
        raw: File contents
        filename: Original filename (selects CSV or spreadsheet reading)
        binary: Override the reader choice

    Returns:
        ParseResult with transactions and warnings
    """
    result = ParseResult()
    try:
        table = read_table(raw, filename, binary=binary)
    except TableReadError as e:
        result.errors.append(f"Parse error: {e}")
        return result

    if not table:
        return result

    header_index = find_header_row(table)
    logger.debug("Transaction Detail header found at row %d", header_index + 1)

    for row in build_rows(table, header_index):
        if row.is_empty():
            continue
        result.row_count += 1
        transaction = _parse_row(row, result.errors)
        if transaction is None:
            result.skipped_count += 1
        else:
            result.transactions.append(transaction)

    logger.debug(
        "Parsed %d transactions from %s (%d skipped, %d warnings)",
        len(result.transactions),
        filename,
        result.skipped_count,
        len(result.errors),
    )
    return result


def _parse_row(row: Row, errors: list[str]) -> Optional[ParsedTransaction]:
    date_value = row.first(DATE_COLUMNS)
    amount_value = row.first(AMOUNT_COLUMNS)
    if not date_value or not amount_value:
        return None

    transaction_date = parse_qb_date(date_value)
    if transaction_date is None:
        errors.append(f'Row {row.number}: Invalid date format "{date_value}"')
        return None

    try:
        amount = parse_amount(amount_value)
    except ValueError:
        errors.append(f'Row {row.number}: Invalid amount "{amount_value}"')
        return None

    qb_type = row.first(TYPE_COLUMNS)
    name = row.first(NAME_COLUMNS)
    memo = row.first(MEMO_COLUMNS)

    return ParsedTransaction(
        transaction_date=transaction_date,
        description=build_description(name, memo, qb_type),
        amount=amount,
        transaction_type=determine_transaction_type(amount, qb_type),
        memo=memo,
        qb_transaction_type=qb_type,
        qb_num=row.first(NUM_COLUMNS),
        qb_name=name,
        qb_class=row.first(CLASS_COLUMNS),
        qb_split=row.first(SPLIT_COLUMNS),
        qb_account=row.last(ACCOUNT_COLUMNS),
    )
