"""
Shared utility functions for the formengine package.
"""

from datetime import date, datetime

from dateutil import parser as dateutil_parser


def parse_date(value: str) -> date | None:
    """Parse a date string into a date object.

    Supports ISO 8601 formats (YYYY-MM-DD) and datetime strings.
    Returns None if the value cannot be parsed.

    Args:
        value: The date string to parse.

    Returns:
        A date object, or None if parsing fails.
    """
    parsed = parse_datetime(value)
    return parsed.date() if parsed is not None else None


def parse_datetime(value: str) -> datetime | None:
    """Parse a date or datetime string, returning None when it is not one."""
    if not value or not isinstance(value, str):
        return None

    try:
        return dateutil_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None


def is_blank(value) -> bool:
    """True for values that count as "not answered": None, blank strings, empty lists."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False
