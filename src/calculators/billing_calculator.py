"""Billing calculator for tiered revenue calculations.

This module implements the rounding and revenue engine:
- Task billing: per-task ceiling rounding and base revenue
- Project billing: sum of task rounded hours, then limits and carryover
- Company and month roll-ups as exact Decimal sums of the level below

Rounding is applied per task, never per entry, so a project's rounded
hours equal the sum of its tasks' rounded hours.
"""

from decimal import Decimal
from typing import Iterable, List

from src.calculators.limits_calculator import calculate_billed_hours
from src.calculators.rounding import apply_rounding, minutes_to_hours, round_currency
from src.models.billing_result import (
    ZERO,
    CompanyBillingResult,
    MonthlyBillingResult,
    ProjectBillingResult,
    TaskBillingResult,
)
from src.models.entry_group import (
    AggregatedEntries,
    CompanyEntryGroup,
    ProjectEntryGroup,
    TaskAggregate,
)


def calculate_task_billing(
    task: TaskAggregate, increment: int, rate: Decimal
) -> TaskBillingResult:
    """Calculate rounded hours and base revenue for a single task.

    Args:
        task: Aggregated task minutes
        increment: Rounding increment in minutes (0 = no rounding)
        rate: Hourly rate

    Returns:
        TaskBillingResult for the task

    Example:
        >>> task = TaskAggregate(task_name="Development", minutes=117, entry_count=3)
        >>> result = calculate_task_billing(task, 15, Decimal("50"))
        >>> result.rounded_minutes, result.rounded_hours, result.base_revenue
        (120, Decimal('2.00'), Decimal('100.00'))
    """
    rounded_minutes = apply_rounding(task.minutes, increment)
    rounded_hours = minutes_to_hours(rounded_minutes)

    return TaskBillingResult(
        task_name=task.task_name,
        actual_minutes=task.minutes,
        rounded_minutes=rounded_minutes,
        actual_hours=minutes_to_hours(task.minutes),
        rounded_hours=rounded_hours,
        base_revenue=round_currency(rounded_hours * rate),
    )


def calculate_project_billing(project: ProjectEntryGroup) -> ProjectBillingResult:
    """Calculate billing for one project-month including limits and carryover.

    Args:
        project: Project group with its tasks and resolved BillingConfig

    Returns:
        ProjectBillingResult with task results attached
    """
    config = project.config
    increment = config.rounding_increment_minutes

    tasks = [calculate_task_billing(task, increment, config.rate) for task in project.tasks]

    actual_minutes = sum(task.actual_minutes for task in tasks)
    rounded_minutes = sum(task.rounded_minutes for task in tasks)
    rounded_hours = sum((task.rounded_hours for task in tasks), ZERO)
    base_revenue = round_currency(rounded_hours * config.rate)

    billed = calculate_billed_hours(rounded_hours, config)

    return ProjectBillingResult(
        project_id=project.project_id,
        project_name=project.project_name,
        actual_minutes=actual_minutes,
        rounded_minutes=rounded_minutes,
        actual_hours=minutes_to_hours(actual_minutes),
        rounded_hours=billed.rounded_hours,
        carryover_in=billed.carryover_in,
        adjusted_hours=billed.adjusted_hours,
        billed_hours=billed.billed_hours,
        unbillable_hours=billed.unbillable_hours,
        carryover_out=billed.carryover_out,
        minimum_padding=billed.minimum_padding,
        minimum_applied=billed.minimum_applied,
        maximum_applied=billed.maximum_applied,
        has_billing_limits=config.has_billing_limits,
        base_revenue=base_revenue,
        billed_revenue=billed.revenue,
        rate=config.rate,
        rounding_increment=increment,
        matched_in_system=config.matched_in_system,
        adjustment=billed.adjustment,
        tasks=tasks,
    )


def calculate_company_billing(company: CompanyEntryGroup) -> CompanyBillingResult:
    """Calculate billing for a company as exact sums of its projects."""
    projects = [calculate_project_billing(project) for project in company.projects]
    return build_company_result(company.company_id, company.company_name, projects)


def build_company_result(
    company_id: str, company_name: str, projects: List[ProjectBillingResult]
) -> CompanyBillingResult:
    """Roll already-calculated project results up to a company result."""
    return CompanyBillingResult(
        company_id=company_id,
        company_name=company_name,
        actual_minutes=sum(p.actual_minutes for p in projects),
        rounded_minutes=sum(p.rounded_minutes for p in projects),
        actual_hours=sum((p.actual_hours for p in projects), ZERO),
        rounded_hours=sum((p.rounded_hours for p in projects), ZERO),
        adjusted_hours=sum((p.adjusted_hours for p in projects), ZERO),
        billed_hours=sum((p.billed_hours for p in projects), ZERO),
        unbillable_hours=sum((p.unbillable_hours for p in projects), ZERO),
        carryover_out=sum((p.carryover_out for p in projects), ZERO),
        base_revenue=sum((p.base_revenue for p in projects), ZERO),
        billed_revenue=sum((p.billed_revenue for p in projects), ZERO),
        projects=projects,
    )


def calculate_monthly_billing(companies: Iterable[CompanyEntryGroup]) -> MonthlyBillingResult:
    """Calculate billing for a month as exact sums of its companies.

    Args:
        companies: Company groups (or an AggregatedEntries instance)

    Returns:
        MonthlyBillingResult with company results attached
    """
    if isinstance(companies, AggregatedEntries):
        companies = companies.companies

    company_results = [calculate_company_billing(company) for company in companies]
    return build_monthly_result(company_results)


def build_monthly_result(companies: List[CompanyBillingResult]) -> MonthlyBillingResult:
    """Roll already-calculated company results up to a monthly result."""
    return MonthlyBillingResult(
        actual_minutes=sum(c.actual_minutes for c in companies),
        rounded_minutes=sum(c.rounded_minutes for c in companies),
        actual_hours=sum((c.actual_hours for c in companies), ZERO),
        rounded_hours=sum((c.rounded_hours for c in companies), ZERO),
        adjusted_hours=sum((c.adjusted_hours for c in companies), ZERO),
        billed_hours=sum((c.billed_hours for c in companies), ZERO),
        unbillable_hours=sum((c.unbillable_hours for c in companies), ZERO),
        carryover_out=sum((c.carryover_out for c in companies), ZERO),
        base_revenue=sum((c.base_revenue for c in companies), ZERO),
        billed_revenue=sum((c.billed_revenue for c in companies), ZERO),
        companies=companies,
    )
