"""Limit and carryover engine.

Applies minimum/maximum billable hours to a project-month and derives
billed hours, revenue and carryover state transitions.

Evaluation order:
1. adjusted = rounded hours + carryover in (0 when carryover is disabled)
2. Active project below the minimum: bill the minimum
3. Otherwise above the maximum: bill the maximum, excess becomes
   carryover out (carryover enabled) or unbillable hours
4. Otherwise bill the adjusted hours
5. revenue = billed hours x rate

The engine only emits the raw carryover out. Expiry and the carryover cap
belong to the configuration store that feeds next month's carryover in.
"""

from decimal import Decimal
from typing import Iterable, Optional

from src.calculators.rounding import apply_rounding, minutes_to_hours, round_currency, round_hours
from src.models.billing_config import BillingConfig
from src.models.billing_result import (
    ZERO,
    AdjustmentType,
    BilledHoursResult,
    BillingAdjustment,
)


def calculate_billed_hours(rounded_hours: Decimal, config: BillingConfig) -> BilledHoursResult:
    """Apply the minimum/maximum policy and carryover to a project-month.

    Args:
        rounded_hours: Sum of task-level rounded hours for the project
        config: Billing configuration for the project-month

    Returns:
        BilledHoursResult with every stage of the calculation

    Example:
        >>> config = BillingConfig(rate=50, minimum_hours=10, is_active=True)
        >>> result = calculate_billed_hours(Decimal("6.00"), config)
        >>> result.billed_hours, result.minimum_padding
        (Decimal('10.00'), Decimal('4.00'))
    """
    rounded_hours = round_hours(rounded_hours)
    carryover_in = round_hours(config.effective_carryover_in)
    adjusted_hours = round_hours(rounded_hours + carryover_in)

    billed_hours = adjusted_hours
    carryover_out = ZERO
    unbillable_hours = ZERO
    carryover_consumed = carryover_in
    minimum_padding = ZERO
    minimum_applied = False
    maximum_applied = False
    adjustment = BillingAdjustment()

    minimum_hours = config.minimum_hours
    maximum_hours = config.maximum_hours

    if config.is_active and minimum_hours is not None and adjusted_hours < minimum_hours:
        billed_hours = round_hours(minimum_hours)
        minimum_padding = round_hours(billed_hours - adjusted_hours)
        minimum_applied = True
        adjustment = BillingAdjustment(
            type=AdjustmentType.MINIMUM_APPLIED,
            limit_hours=billed_hours,
            hours=minimum_padding,
        )
    elif maximum_hours is not None and adjusted_hours > maximum_hours:
        billed_hours = round_hours(maximum_hours)
        excess_hours = round_hours(adjusted_hours - billed_hours)
        maximum_applied = True

        if config.carryover_enabled:
            carryover_out = excess_hours
            adjustment = BillingAdjustment(
                type=AdjustmentType.MAXIMUM_APPLIED,
                limit_hours=billed_hours,
                hours=excess_hours,
            )
        else:
            unbillable_hours = excess_hours
            adjustment = BillingAdjustment(
                type=AdjustmentType.MAXIMUM_APPLIED_UNBILLABLE,
                limit_hours=billed_hours,
                hours=excess_hours,
            )

        # Carryover is consumed before newly worked hours
        if carryover_in > 0:
            carryover_consumed = min(carryover_in, billed_hours)

    revenue = round_currency(billed_hours * config.rate)

    return BilledHoursResult(
        rounded_hours=rounded_hours,
        carryover_in=carryover_in,
        adjusted_hours=adjusted_hours,
        billed_hours=billed_hours,
        carryover_out=carryover_out,
        unbillable_hours=unbillable_hours,
        carryover_consumed=carryover_consumed,
        minimum_padding=minimum_padding,
        minimum_applied=minimum_applied,
        maximum_applied=maximum_applied,
        adjustment=adjustment,
        revenue=revenue,
    )


def calculate_billed_hours_from_tasks(
    task_minutes: Iterable[int], config: BillingConfig
) -> BilledHoursResult:
    """Round each task individually, sum the rounded hours, then apply limits.

    Args:
        task_minutes: Raw minutes per task
        config: Billing configuration for the project-month

    Returns:
        BilledHoursResult for the project
    """
    rounded_hours = sum(
        (
            minutes_to_hours(apply_rounding(minutes, config.rounding_increment_minutes))
            for minutes in task_minutes
        ),
        ZERO,
    )
    return calculate_billed_hours(rounded_hours, config)


def validate_min_max_limits(
    minimum_hours: Optional[Decimal], maximum_hours: Optional[Decimal]
) -> bool:
    """Check that an (inherited) minimum does not exceed the maximum.

    Returns:
        True when either limit is unset or minimum <= maximum
    """
    if minimum_hours is None or maximum_hours is None:
        return True
    return minimum_hours <= maximum_hours


def format_hours(value: Optional[Decimal]) -> str:
    """Format hours for display: integers without decimals, else 2dp."""
    if value is None:
        return "—"
    if value == value.to_integral_value():
        return str(int(value))
    return f"{round_hours(value):.2f}"


def format_billing_adjustment(adjustment: BillingAdjustment) -> str:
    """Format a billing adjustment for display.

    Example:
        >>> format_billing_adjustment(
        ...     BillingAdjustment(AdjustmentType.MINIMUM_APPLIED, Decimal("10"), Decimal("4"))
        ... )
        'Minimum applied (+4h)'
    """
    if adjustment.type == AdjustmentType.MINIMUM_APPLIED:
        return f"Minimum applied (+{format_hours(adjustment.hours)}h)"
    if adjustment.type == AdjustmentType.MAXIMUM_APPLIED:
        return f"Maximum applied ({format_hours(adjustment.hours)}h carried over)"
    if adjustment.type == AdjustmentType.MAXIMUM_APPLIED_UNBILLABLE:
        return f"Maximum applied ({format_hours(adjustment.hours)}h unbillable)"
    return "No adjustment"
