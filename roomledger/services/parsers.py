"""Lenient numeric and period parsing for raw form input.

Handles values typed into billing forms:
- Numbers may arrive as int, float, Decimal or text
- Fractions are truncated toward zero, never rounded
- Garbage, blanks and non-finite values degrade to 0
- Periods are calendar months written as YYYY-MM

Example:
    >>> to_int("12.9")
    12

    >>> to_int("abc")
    0

    >>> parse_month("2024-03")
    (2024, 3)
"""

import math
import re
import sys
from decimal import Decimal, InvalidOperation
from typing import Any

_MONTH_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")

# Values beyond double range count as non-finite, like an overflowing float
_FLOAT_MAX = Decimal(sys.float_info.max)


def to_int(value: Any) -> int:
    """
    Coerce an arbitrary input value to an integer, truncating toward zero.

    Args:
        value: int, float, Decimal, numeric string, or anything else

    Returns:
        Truncated integer; 0 for None, blanks, garbage and non-finite values

    Examples:
        >>> to_int(150)
        150
        >>> to_int(-3.7)
        -3
        >>> to_int(" 3500 ")
        3500
        >>> to_int(float("nan"))
        0
        >>> to_int("1,000")
        0
        >>> to_int("1e400")
        0
    """
    if value is None:
        return 0

    if isinstance(value, bool):
        return int(value)

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0

    if isinstance(value, Decimal):
        return _decimal_to_int(value)

    if isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return 0
        try:
            number = Decimal(text)
        except InvalidOperation:
            return 0
        return _decimal_to_int(number)

    return 0


def _decimal_to_int(number: Decimal) -> int:
    if not number.is_finite() or number.copy_abs() > _FLOAT_MAX:
        return 0
    return int(number)


def is_blank(value: Any) -> bool:
    """Return True for None or whitespace-only text (an unfilled form field)."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_month(value: str) -> tuple[int, int]:
    """Parse a "YYYY-MM" month string.

    Args:
        value: Month string, e.g. "2024-03" (a single-digit month is accepted)

    Returns:
        Tuple (year, month)

    Raises:
        ValueError: If the format is invalid or month is outside 1..12

    Examples:
        >>> parse_month("2024-3")
        (2024, 3)
    """
    if not isinstance(value, str):
        raise ValueError(f"Cannot parse month {value!r} (expected YYYY-MM)")

    match = _MONTH_RE.match(value)
    if not match:
        raise ValueError(f"Cannot parse month '{value}' (expected YYYY-MM)")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range in '{value}': {month}")

    return year, month


__all__ = ["to_int", "is_blank", "parse_month"]
