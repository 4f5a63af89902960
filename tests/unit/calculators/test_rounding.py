"""Unit tests for rounding utilities."""

from decimal import Decimal

import pytest

from src.calculators.rounding import (
    apply_rounding,
    from_cents,
    is_within_tolerance,
    minutes_to_hours,
    round_currency,
    round_hours,
    to_cents,
)


class TestApplyRounding:
    """Test ceiling rounding to the increment."""

    @pytest.mark.parametrize(
        "minutes,increment,expected",
        [
            (16, 15, 30),
            (15, 15, 15),
            (0, 15, 0),
            (1, 15, 15),
            (117, 15, 120),
            (31, 30, 60),
            (61, 5, 65),
        ],
    )
    def test_rounds_up_to_increment(self, minutes, increment, expected):
        assert apply_rounding(minutes, increment) == expected

    def test_zero_increment_bills_actual_minutes(self):
        assert apply_rounding(7, 0) == 7
        assert apply_rounding(0, 0) == 0

    def test_negative_increment_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            apply_rounding(10, -15)

    @pytest.mark.parametrize("increment", [0, 5, 15, 30])
    def test_monotonic(self, increment):
        """More minutes never round to fewer billed minutes."""
        previous = apply_rounding(0, increment)
        for minutes in range(1, 200):
            current = apply_rounding(minutes, increment)
            assert current >= previous
            assert current >= minutes
            previous = current


class TestHoursAndCurrency:
    """Test Decimal quantization helpers."""

    def test_minutes_to_hours(self):
        assert minutes_to_hours(120) == Decimal("2.00")
        assert minutes_to_hours(10) == Decimal("0.17")
        assert minutes_to_hours(0) == Decimal("0.00")

    def test_round_half_up(self):
        assert round_hours(Decimal("1.955")) == Decimal("1.96")
        assert round_currency(Decimal("10.005")) == Decimal("10.01")
        assert round_currency(Decimal("10.004")) == Decimal("10.00")

    def test_cents_conversion(self):
        assert to_cents(Decimal("100.25")) == 10025
        assert from_cents(10025) == Decimal("100.25")
        assert from_cents(0) == Decimal("0.00")

    def test_tolerance_boundary(self):
        assert is_within_tolerance(Decimal("100.00"), Decimal("100.01"), Decimal("0.01"))
        assert not is_within_tolerance(Decimal("100.00"), Decimal("100.02"), Decimal("0.01"))
