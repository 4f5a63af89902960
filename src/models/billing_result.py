"""Billing result containers.

These dataclasses hold the output of each tier of the billing calculation:
task, project, company and month. They are derived values, recomputed on
every run; nothing here is persisted mutable state.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterator, List, Optional

ZERO = Decimal("0.00")


class AdjustmentType(str, Enum):
    """Kind of adjustment the limit engine applied to a project."""

    NONE = "none"
    MINIMUM_APPLIED = "minimum_applied"
    MAXIMUM_APPLIED = "maximum_applied"
    MAXIMUM_APPLIED_UNBILLABLE = "maximum_applied_unbillable"


@dataclass(frozen=True)
class BillingAdjustment:
    """Adjustment applied by the minimum/maximum policy.

    Attributes:
        type: Which rule fired
        limit_hours: The minimum or maximum that was applied
        hours: Padding hours (minimum), carried hours or unbillable hours (maximum)
    """

    type: AdjustmentType = AdjustmentType.NONE
    limit_hours: Optional[Decimal] = None
    hours: Decimal = ZERO


@dataclass(frozen=True)
class BilledHoursResult:
    """Output of the limit and carryover engine for one project-month.

    Attributes:
        rounded_hours: Sum of task-level rounded hours
        carryover_in: Carryover hours applied this month
        adjusted_hours: rounded_hours + carryover_in
        billed_hours: Hours invoiced after the minimum/maximum policy
        carryover_out: Excess carried to next month (carryover enabled)
        unbillable_hours: Excess lost to the maximum (carryover disabled)
        carryover_consumed: Portion of carryover_in actually billed
        minimum_padding: Hours added to reach the minimum
        minimum_applied: Whether the minimum rule fired
        maximum_applied: Whether the maximum rule fired
        adjustment: Structured description of the applied rule
        revenue: billed_hours x rate
    """

    rounded_hours: Decimal
    carryover_in: Decimal
    adjusted_hours: Decimal
    billed_hours: Decimal
    carryover_out: Decimal
    unbillable_hours: Decimal
    carryover_consumed: Decimal
    minimum_padding: Decimal
    minimum_applied: bool
    maximum_applied: bool
    adjustment: BillingAdjustment
    revenue: Decimal


@dataclass
class TaskBillingResult:
    """Billing for a single task within a project.

    Attributes:
        task_name: Task name ("No Task" for entries without one)
        actual_minutes: Unrounded sum of entry minutes
        rounded_minutes: Minutes after the rounding increment is applied
        actual_hours: actual_minutes / 60, 2dp
        rounded_hours: rounded_minutes / 60, 2dp
        base_revenue: rounded_hours x rate (before project-level limits)
    """

    task_name: str
    actual_minutes: int
    rounded_minutes: int
    actual_hours: Decimal
    rounded_hours: Decimal
    base_revenue: Decimal


@dataclass
class ProjectBillingResult:
    """Billing for one project in one month, including limits and carryover."""

    project_id: Optional[str]
    project_name: str
    actual_minutes: int
    rounded_minutes: int
    actual_hours: Decimal
    rounded_hours: Decimal
    carryover_in: Decimal
    adjusted_hours: Decimal
    billed_hours: Decimal
    unbillable_hours: Decimal
    carryover_out: Decimal
    minimum_padding: Decimal
    minimum_applied: bool
    maximum_applied: bool
    has_billing_limits: bool
    base_revenue: Decimal
    billed_revenue: Decimal
    rate: Decimal
    rounding_increment: int
    matched_in_system: bool = True
    adjustment: BillingAdjustment = field(default_factory=BillingAdjustment)
    tasks: List[TaskBillingResult] = field(default_factory=list)


@dataclass
class CompanyBillingResult:
    """Billing for one company: exact sums of its projects."""

    company_id: str
    company_name: str
    actual_minutes: int
    rounded_minutes: int
    actual_hours: Decimal
    rounded_hours: Decimal
    adjusted_hours: Decimal
    billed_hours: Decimal
    unbillable_hours: Decimal
    carryover_out: Decimal
    base_revenue: Decimal
    billed_revenue: Decimal
    projects: List[ProjectBillingResult] = field(default_factory=list)


@dataclass
class MonthlyBillingResult:
    """Top-level billing for a month: exact sums of its companies.

    Example:
        >>> result = calculate_monthly_billing(companies)
        >>> result.billed_revenue == sum(c.billed_revenue for c in result.companies)
        True
    """

    actual_minutes: int
    rounded_minutes: int
    actual_hours: Decimal
    rounded_hours: Decimal
    adjusted_hours: Decimal
    billed_hours: Decimal
    unbillable_hours: Decimal
    carryover_out: Decimal
    base_revenue: Decimal
    billed_revenue: Decimal
    companies: List[CompanyBillingResult] = field(default_factory=list)

    def iter_projects(self) -> Iterator[ProjectBillingResult]:
        """Iterate over every project across all companies."""
        for company in self.companies:
            yield from company.projects

    def find_project(self, project_id: str) -> Optional[ProjectBillingResult]:
        """Find a project by its identifier, or None if absent."""
        for project in self.iter_projects():
            if project.project_id == project_id:
                return project
        return None
