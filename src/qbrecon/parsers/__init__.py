"""Parsers for QuickBooks and brokerage exports."""

from qbrecon.parsers.base import ParsedTransaction, ParseResult, DiscoveredAccount
from qbrecon.parsers.general_ledger import parse_general_ledger
from qbrecon.parsers.investments import parse_holdings
from qbrecon.parsers.transaction_detail import parse_transaction_detail

__all__ = [
    "ParsedTransaction",
    "ParseResult",
    "DiscoveredAccount",
    "parse_general_ledger",
    "parse_holdings",
    "parse_transaction_detail",
]
