"""Utility functions for qbrecon."""

from qbrecon.utils.date_parser import parse_date, parse_qb_date
from qbrecon.utils.amount_parser import parse_amount
from qbrecon.utils.similarity import normalize_qb_name, find_similar

__all__ = ["parse_date", "parse_qb_date", "parse_amount", "normalize_qb_name", "find_similar"]
