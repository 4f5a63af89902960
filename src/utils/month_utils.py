"""Billing month helpers.

A billing month is represented as the date of its first day.
"""

import datetime as dt
from typing import Union


def parse_month(value: Union[str, dt.date]) -> dt.date:
    """Parse a billing month.

    Args:
        value: "YYYY-MM", "YYYY-MM-DD" or a date

    Returns:
        First day of the month

    Raises:
        ValueError: If the value is not a recognizable month

    Example:
        >>> parse_month("2026-01")
        datetime.date(2026, 1, 1)
        >>> parse_month("2026-01-17")
        datetime.date(2026, 1, 1)
    """
    if isinstance(value, dt.datetime):
        return value.date().replace(day=1)
    if isinstance(value, dt.date):
        return value.replace(day=1)

    text = str(value).strip()
    if len(text) == 7:
        text = f"{text}-01"
    try:
        return dt.date.fromisoformat(text[:10]).replace(day=1)
    except ValueError:
        raise ValueError(f"Invalid month '{value}'. Expected format: YYYY-MM")


def format_month(month: dt.date) -> str:
    """Format a billing month as YYYY-MM."""
    return month.strftime("%Y-%m")


def add_months(month: dt.date, months: int) -> dt.date:
    """Shift a billing month by a (possibly negative) number of months.

    Example:
        >>> add_months(dt.date(2026, 1, 1), -3)
        datetime.date(2025, 10, 1)
    """
    index = month.year * 12 + (month.month - 1) + months
    return dt.date(index // 12, index % 12 + 1, 1)
