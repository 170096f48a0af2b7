"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re
from typing import Optional

_STRIP_PATTERN = re.compile(r"[$€£¥,\s]")
_PAREN_PATTERN = re.compile(r"^\((.+)\)$")


def parse_amount(amount_str: Optional[str]) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-$123.45"
    - "1,234.56"
    - "(1,234.56)" (negative in parentheses)
    - "" (zero)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If a non-empty amount string cannot be parsed
    """
    if amount_str is None:
        return Decimal("0")

    cleaned = _STRIP_PATTERN.sub("", str(amount_str))
    if not cleaned:
        return Decimal("0")

    is_negative = False
    paren = _PAREN_PATTERN.match(cleaned)
    if paren:
        is_negative = True
        cleaned = paren.group(1)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    return -amount if is_negative else amount


def parse_optional_amount(amount_str: Optional[str]) -> Optional[Decimal]:
    """Parse an amount, returning None for empty or unparseable values."""
    if amount_str is None or not str(amount_str).strip():
        return None
    try:
        return parse_amount(amount_str)
    except ValueError:
        return None
