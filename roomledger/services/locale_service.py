"""Locale-aware number formatting for receipts and previews.

Uses babel for thousands separators. The locale comes from settings
(LOCALE env var, default vi_VN); an unknown locale falls back to vi_VN.

Example:
    >>> from roomledger.services.locale_service import format_amount
    >>> format_amount(3775000)
    '3.775.000'
"""

import logging

from babel import Locale, UnknownLocaleError
from babel.numbers import format_decimal as babel_format_decimal

from roomledger.models.period import Period
from roomledger.services.config import get_settings
from roomledger.services.parsers import to_int

logger = logging.getLogger(__name__)

# Fallback locale if the configured one is invalid or missing
DEFAULT_LOCALE = "vi_VN"


def resolve_locale(locale_str: str | None = None) -> str:
    """Validate a locale string, falling back to DEFAULT_LOCALE.

    Args:
        locale_str: Locale (e.g. 'vi_VN'); configured locale when None

    Returns:
        Valid locale string
    """
    if locale_str is None:
        locale_str = get_settings().locale
    try:
        Locale.parse(locale_str)
        return locale_str
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid locale '{locale_str}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        return DEFAULT_LOCALE


def format_amount(amount: int, locale: str | None = None) -> str:
    """Format an integer currency amount with locale thousands separators.

    Args:
        amount: Amount (truncated to an integer first)
        locale: Locale override; configured locale when None

    Returns:
        Formatted amount without currency symbol (e.g., '3.500.000')

    Example:
        >>> format_amount(175000, locale="en_US")
        '175,000'
    """
    return babel_format_decimal(to_int(amount), locale=resolve_locale(locale))


def format_month_caption(period: Period) -> str:
    """Month caption printed under the receipt title (e.g., 'Month 03/2024')."""
    return f"Month {period.month:02d}/{period.year:04d}"


__all__ = ["DEFAULT_LOCALE", "resolve_locale", "format_amount", "format_month_caption"]
