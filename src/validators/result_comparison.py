"""Comparison of a recomputed monthly result against a persisted one.

Projects are matched by (company id, project id) across both results, the
same key the aggregator groups them by. A project present on one side only
with zero billed hours and revenue is noise (a persisted row created for
every known project, even without entries) and, when suppression is
enabled, does not count as a discrepancy.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from src.models.billing_result import MonthlyBillingResult, ProjectBillingResult

logger = logging.getLogger(__name__)

DEFAULT_COMPARISON_TOLERANCE = Decimal("0.01")

# Compared exactly
EXACT_FIELDS = (
    "actual_minutes",
    "rounded_minutes",
    "rounding_increment",
    "minimum_applied",
    "maximum_applied",
)

# Compared within the tolerance
DECIMAL_FIELDS = (
    "actual_hours",
    "rounded_hours",
    "carryover_in",
    "adjusted_hours",
    "billed_hours",
    "unbillable_hours",
    "carryover_out",
    "minimum_padding",
    "rate",
    "base_revenue",
    "billed_revenue",
)

ProjectKey = Tuple[str, str]


class ComparisonStatus(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    ONLY_RECOMPUTED = "only_recomputed"
    ONLY_PERSISTED = "only_persisted"
    NOISE = "noise"


@dataclass
class ProjectComparison:
    """Side-by-side values of one project.

    Attributes:
        differences: Names of the fields that differ (MISMATCH only)
    """

    company_id: str
    project_id: str
    project_name: str
    status: ComparisonStatus
    recomputed: Optional[ProjectBillingResult] = None
    persisted: Optional[ProjectBillingResult] = None
    differences: List[str] = field(default_factory=list)

    @property
    def is_discrepancy(self) -> bool:
        return self.status in (
            ComparisonStatus.MISMATCH,
            ComparisonStatus.ONLY_RECOMPUTED,
            ComparisonStatus.ONLY_PERSISTED,
        )

    @property
    def billed_revenue_difference(self) -> Decimal:
        recomputed = self.recomputed.billed_revenue if self.recomputed else Decimal("0")
        persisted = self.persisted.billed_revenue if self.persisted else Decimal("0")
        return recomputed - persisted


@dataclass
class ResultComparison:
    projects: List[ProjectComparison] = field(default_factory=list)

    @property
    def discrepancy_count(self) -> int:
        return sum(1 for project in self.projects if project.is_discrepancy)

    @property
    def discrepancies(self) -> List[ProjectComparison]:
        return [project for project in self.projects if project.is_discrepancy]

    @property
    def is_match(self) -> bool:
        return self.discrepancy_count == 0

    def count(self, status: ComparisonStatus) -> int:
        return sum(1 for project in self.projects if project.status == status)


def _index_projects(result: MonthlyBillingResult) -> Dict[ProjectKey, ProjectBillingResult]:
    return {
        (company.company_id, project.project_id): project
        for company in result.companies
        for project in company.projects
        if project.project_id
    }


def _is_noise(project: ProjectBillingResult, threshold: Decimal) -> bool:
    return project.billed_hours <= threshold and project.billed_revenue <= threshold


def find_differences(
    recomputed: ProjectBillingResult,
    persisted: ProjectBillingResult,
    tolerance: Decimal = DEFAULT_COMPARISON_TOLERANCE,
) -> List[str]:
    """Return the names of the fields on which two project results disagree.

    Minutes, the rounding increment and the limit flags must be equal; hours,
    rate and revenue may differ by up to the tolerance.
    """
    differences = [
        name
        for name in EXACT_FIELDS
        if getattr(recomputed, name) != getattr(persisted, name)
    ]
    differences.extend(
        name
        for name in DECIMAL_FIELDS
        if abs(getattr(recomputed, name) - getattr(persisted, name)) > tolerance
    )
    return differences


def compare_projects(
    recomputed: ProjectBillingResult,
    persisted: ProjectBillingResult,
    tolerance: Decimal = DEFAULT_COMPARISON_TOLERANCE,
) -> ComparisonStatus:
    """MISMATCH if any compared field differs, else MATCH."""
    if find_differences(recomputed, persisted, tolerance):
        return ComparisonStatus.MISMATCH
    return ComparisonStatus.MATCH


def compare_billing_results(
    recomputed: MonthlyBillingResult,
    persisted: MonthlyBillingResult,
    tolerance: Decimal = DEFAULT_COMPARISON_TOLERANCE,
    noise_threshold: Decimal = Decimal("0"),
    suppress_zero_value_noise: bool = True,
) -> ResultComparison:
    """Compare two monthly results project by project.

    Args:
        recomputed: Result recomputed from source entries
        persisted: Result loaded from storage
        tolerance: Allowed difference for hours, rate and revenue
        noise_threshold: One-sided projects at or below this value are noise
        suppress_zero_value_noise: Whether noise is excluded from discrepancies

    Returns:
        ResultComparison with one entry per (company id, project id), sorted
    """
    tolerance = Decimal(tolerance)
    recomputed_projects = _index_projects(recomputed)
    persisted_projects = _index_projects(persisted)

    comparisons = []
    for key in sorted(set(recomputed_projects) | set(persisted_projects)):
        ours = recomputed_projects.get(key)
        theirs = persisted_projects.get(key)
        one_side = ours or theirs
        differences: List[str] = []

        if ours is not None and theirs is not None:
            differences = find_differences(ours, theirs, tolerance)
            status = ComparisonStatus.MISMATCH if differences else ComparisonStatus.MATCH
        elif suppress_zero_value_noise and _is_noise(one_side, noise_threshold):
            status = ComparisonStatus.NOISE
        elif ours is not None:
            status = ComparisonStatus.ONLY_RECOMPUTED
        else:
            status = ComparisonStatus.ONLY_PERSISTED

        company_id, project_id = key
        comparisons.append(
            ProjectComparison(
                company_id=company_id,
                project_id=project_id,
                project_name=one_side.project_name,
                status=status,
                recomputed=ours,
                persisted=theirs,
                differences=differences,
            )
        )

    comparison = ResultComparison(projects=comparisons)
    logger.info(
        f"Compared {len(comparisons)} projects: {comparison.discrepancy_count} discrepancies, "
        f"{comparison.count(ComparisonStatus.NOISE)} noise"
    )
    return comparison
