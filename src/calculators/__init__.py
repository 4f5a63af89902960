"""Calculator modules for billing system."""

from src.calculators.billing_calculator import (
    build_company_result,
    build_monthly_result,
    calculate_company_billing,
    calculate_monthly_billing,
    calculate_project_billing,
    calculate_task_billing,
)
from src.calculators.limits_calculator import (
    calculate_billed_hours,
    calculate_billed_hours_from_tasks,
    format_billing_adjustment,
    format_hours,
    validate_min_max_limits,
)
from src.calculators.rounding import (
    apply_rounding,
    from_cents,
    is_within_tolerance,
    minutes_to_hours,
    round_currency,
    round_hours,
    to_cents,
)

__all__ = [
    # billing_calculator
    "build_company_result",
    "build_monthly_result",
    "calculate_company_billing",
    "calculate_monthly_billing",
    "calculate_project_billing",
    "calculate_task_billing",
    # limits_calculator
    "calculate_billed_hours",
    "calculate_billed_hours_from_tasks",
    "format_billing_adjustment",
    "format_hours",
    "validate_min_max_limits",
    # rounding
    "apply_rounding",
    "from_cents",
    "is_within_tolerance",
    "minutes_to_hours",
    "round_currency",
    "round_hours",
    "to_cents",
]
