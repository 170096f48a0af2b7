"""Parser for brokerage holdings (positions) CSV exports."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from qbrecon.parsers.base import InvestmentParseResult, ParsedInvestment
from qbrecon.parsers.tabular import TableReadError, build_rows, read_table
from qbrecon.utils.amount_parser import parse_optional_amount

logger = logging.getLogger(__name__)

SKIPPED_SYMBOLS = ("cash", "total")


def parse_holdings(raw: bytes, as_of: Optional[date] = None) -> InvestmentParseResult:
    """Parse a holdings CSV into investment rows.

    Cash and total rows are skipped, as are rows without a symbol or
    with a zero or missing quantity. A missing price is derived from
    market value and quantity.

    Args:
        raw: CSV contents
        as_of: Snapshot date for every row (defaults to today)

    Returns:
        InvestmentParseResult with holdings and the summed market value
    """
    result = InvestmentParseResult()
    as_of_date = as_of or date.today()

    try:
        table = read_table(raw, "holdings.csv", binary=False)
    except TableReadError as e:
        result.errors.append(f"Parse error: {e}")
        return result

    if not table:
        return result

    for row in build_rows(table, 0):
        if row.is_empty():
            continue
        result.row_count += 1

        symbol = row.first(["Symbol"])
        if not symbol or symbol.lower() in SKIPPED_SYMBOLS or "total" in symbol.lower():
            result.skipped_count += 1
            continue

        quantity = parse_optional_amount(row.first(["Quantity", "Shares"]))
        if not quantity:
            result.skipped_count += 1
            continue

        current_value = parse_optional_amount(row.first(["Market Value", "Current Value", "Value"]))
        current_price = parse_optional_amount(row.first(["Price", "Current Price"]))
        if not current_price and current_value:
            current_price = current_value / quantity

        if current_value:
            result.total_value += current_value

        result.investments.append(
            ParsedInvestment(
                symbol=symbol,
                quantity=quantity,
                as_of_date=as_of_date,
                name=row.first(["Security Name", "Name"]),
                cost_basis=parse_optional_amount(row.first(["Cost Basis", "Cost"])),
                current_price=current_price,
                current_value=current_value,
                asset_class=row.first(["Asset Class", "Asset Type"]),
                sector=row.first(["Sector"]),
            )
        )

    logger.debug("Parsed %d holdings (%d skipped)", len(result.investments), result.skipped_count)
    return result
