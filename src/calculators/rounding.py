"""Rounding utilities for billing calculations.

This module provides low-level helpers for:
- Rounding task minutes up to the configured increment
- Converting minutes to decimal hours
- Rounding hours and currency to 2 decimal places
- Converting currency to and from integer cents

All hours and money are Decimal. Rounding is ROUND_HALF_UP to 2 decimal
places; no binary floating point is involved at any step.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

TWO_PLACES = Decimal("0.01")
MINUTES_PER_HOUR = Decimal("60")

Number = Union[int, Decimal]


def apply_rounding(minutes: int, increment: int) -> int:
    """Round minutes up to the nearest increment.

    Partial increments always round up; an increment of 0 means actual
    minutes are billed.

    Args:
        minutes: Actual minutes for a task
        increment: Rounding increment in minutes (0 = no rounding)

    Returns:
        Rounded minutes

    Example:
        >>> apply_rounding(16, 15)
        30
        >>> apply_rounding(15, 15)
        15
        >>> apply_rounding(0, 15)
        0
        >>> apply_rounding(7, 0)
        7
    """
    if increment < 0:
        raise ValueError(f"Rounding increment must be non-negative, got {increment}")
    if increment == 0:
        return minutes
    # Ceiling division on integers
    return -(-minutes // increment) * increment


def round_hours(value: Number) -> Decimal:
    """Round hours to 2 decimal places (ROUND_HALF_UP).

    Example:
        >>> round_hours(Decimal("1.955"))
        Decimal('1.96')
    """
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def round_currency(value: Number) -> Decimal:
    """Round a currency amount to 2 decimal places (ROUND_HALF_UP).

    Example:
        >>> round_currency(Decimal("10.005"))
        Decimal('10.01')
    """
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def minutes_to_hours(minutes: int) -> Decimal:
    """Convert minutes to decimal hours with 2 decimal precision.

    Example:
        >>> minutes_to_hours(120)
        Decimal('2.00')
        >>> minutes_to_hours(10)
        Decimal('0.17')
    """
    return round_hours(Decimal(minutes) / MINUTES_PER_HOUR)


def to_cents(amount: Decimal) -> int:
    """Convert a currency amount to integer cents.

    Example:
        >>> to_cents(Decimal("100.25"))
        10025
    """
    return int(round_currency(amount) * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a 2dp currency amount.

    Example:
        >>> from_cents(10025)
        Decimal('100.25')
    """
    return round_currency(Decimal(cents) / 100)


def is_within_tolerance(expected: Decimal, actual: Decimal, tolerance: Decimal) -> bool:
    """Check whether two values differ by no more than the tolerance."""
    return abs(Decimal(expected) - Decimal(actual)) <= tolerance
