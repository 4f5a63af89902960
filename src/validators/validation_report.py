"""Validation report for billing reconciliation results."""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from src.calculators.rounding import round_currency

CHECK_NAMES = ("rounded_hours", "base_revenue", "billed_revenue")

CHECK_LABELS = {
    "rounded_hours": "Rounded Hours",
    "base_revenue": "Base Revenue",
    "billed_revenue": "Billed Revenue",
}

# Failures within this multiple of the tolerance are flagged as likely rounding drift
WARNING_FACTOR = 10


class ValidationStatus(str, Enum):
    """Outcome of a single reconciliation check."""

    PASS = "pass"
    FAIL = "fail"


@dataclass
class ValidationCheck:
    """Comparison of one expected value against the recomputed value.

    Attributes:
        label: Display label of the check
        expected: Value from the primary path (or the recomputed value for self-checks)
        actual: Value recomputed from the raw source
        status: PASS when |expected - actual| <= tolerance
        tolerance: Allowed absolute difference
    """

    label: str
    expected: Decimal
    actual: Decimal
    status: ValidationStatus
    tolerance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected

    @property
    def passed(self) -> bool:
        return self.status == ValidationStatus.PASS

    @property
    def near_miss(self) -> bool:
        """Failed, but by no more than WARNING_FACTOR x tolerance."""
        return not self.passed and abs(self.difference) <= self.tolerance * WARNING_FACTOR

    def __str__(self) -> str:
        """Return string representation of the check.

        Returns:
            Formatted string with status, label and values
        """
        return format_validation_check(self)


def format_validation_check(check: ValidationCheck) -> str:
    """Format a check for display.

    Example:
        >>> format_validation_check(check)
        '[PASS] Billed Revenue: expected 100.00, actual 100.00'
    """
    text = (
        f"[{check.status.name}] {check.label}: "
        f"expected {check.expected}, actual {check.actual}"
    )
    if not check.passed:
        text += f" (diff {check.difference:+}, tolerance {check.tolerance})"
    if check.near_miss:
        text += " [likely rounding]"
    return text


@dataclass
class ProjectValidationResult:
    """Recomputed billing for one (source, client, project) group and its checks."""

    client_name: str
    project_name: str
    source: str
    source_project_id: Optional[str]
    source_client_id: Optional[str]
    matched_in_system: bool
    matched_project_name: Optional[str]
    raw_minutes: int
    actual_hours: Decimal
    rounding: int
    rate: Decimal
    minimum_hours: Optional[Decimal]
    maximum_hours: Optional[Decimal]
    carryover_enabled: bool
    carryover_in: Decimal
    is_active: bool
    rounded_hours: Decimal
    adjusted_hours: Decimal
    base_revenue: Decimal
    billed_hours: Decimal
    billed_revenue: Decimal
    checks: Dict[str, ValidationCheck] = field(default_factory=dict)

    @property
    def all_passed(self) -> bool:
        return all(check.passed for check in self.checks.values())

    @property
    def near_misses(self) -> List[ValidationCheck]:
        return [check for check in self.checks.values() if check.near_miss]


@dataclass
class ValidationSummary:
    """Aggregate counts over all validated projects."""

    total_projects: int = 0
    projects_by_source: Dict[str, int] = field(default_factory=dict)
    rounded_hours_passed: int = 0
    base_revenue_passed: int = 0
    billed_revenue_passed: int = 0
    unmatched_projects: int = 0
    total_billed_revenue: Decimal = Decimal("0.00")
    all_passed: bool = True

    @classmethod
    def from_projects(cls, projects: List[ProjectValidationResult]) -> "ValidationSummary":
        """Calculate the summary from project results."""
        by_source: Dict[str, int] = {}
        for project in projects:
            by_source[project.source] = by_source.get(project.source, 0) + 1

        def passed(name: str) -> int:
            return sum(1 for p in projects if name in p.checks and p.checks[name].passed)

        rounded_hours_passed = passed("rounded_hours")
        base_revenue_passed = passed("base_revenue")
        billed_revenue_passed = passed("billed_revenue")
        total = len(projects)

        return cls(
            total_projects=total,
            projects_by_source=dict(sorted(by_source.items())),
            rounded_hours_passed=rounded_hours_passed,
            base_revenue_passed=base_revenue_passed,
            billed_revenue_passed=billed_revenue_passed,
            unmatched_projects=sum(1 for p in projects if not p.matched_in_system),
            total_billed_revenue=round_currency(
                sum((p.billed_revenue for p in projects), Decimal("0"))
            ),
            all_passed=(
                rounded_hours_passed == total
                and base_revenue_passed == total
                and billed_revenue_passed == total
            ),
        )


class ValidationReport:
    """Result of a reconciliation run.

    Example:
        >>> report = engine.run(entries, expected)
        >>> if not report.is_valid():
        ...     print(report.format())
    """

    def __init__(
        self,
        projects: List[ProjectValidationResult],
        generated_at: Optional[dt.datetime] = None,
    ) -> None:
        self.projects = projects
        self.generated_at = generated_at or dt.datetime.now(dt.timezone.utc)
        self.summary = ValidationSummary.from_projects(projects)

    def is_valid(self) -> bool:
        """Check if every check of every project passed."""
        return self.summary.all_passed

    @property
    def failed_projects(self) -> List[ProjectValidationResult]:
        return [project for project in self.projects if not project.all_passed]

    @property
    def unmatched_projects(self) -> List[ProjectValidationResult]:
        return [project for project in self.projects if not project.matched_in_system]

    def summary_line(self) -> str:
        """Get a one-line summary of the report."""
        summary = self.summary
        if summary.total_projects == 0:
            return "No projects to validate"
        return (
            f"{summary.total_projects} project(s): "
            f"rounded hours {summary.rounded_hours_passed}/{summary.total_projects}, "
            f"base revenue {summary.base_revenue_passed}/{summary.total_projects}, "
            f"billed revenue {summary.billed_revenue_passed}/{summary.total_projects} passed"
        )

    def format(self) -> str:
        """Format the validation report for display.

        Returns:
            Formatted string with the summary and failed checks; near misses
            are marked with "!" and counted separately
        """
        lines = [
            f"Reconciliation Report - {self.summary_line()}",
            f"Generated at {self.generated_at.isoformat()}",
            "=" * 60,
        ]

        if self.summary.projects_by_source:
            sources = ", ".join(
                f"{source}: {count}" for source, count in self.summary.projects_by_source.items()
            )
            lines.append(f"Projects by source: {sources}")
        lines.append(f"Total billed revenue: {self.summary.total_billed_revenue}")

        if self.unmatched_projects:
            lines.append("\nUNMATCHED (default config used):")
            for project in self.unmatched_projects:
                lines.append(f"  - {project.client_name} / {project.project_name}")

        failed = self.failed_projects
        if failed:
            near_misses = sum(len(project.near_misses) for project in failed)
            if near_misses:
                lines.append(
                    f"\n{near_misses} failed check(s) within {WARNING_FACTOR}x tolerance "
                    f"(likely rounding)"
                )
            lines.append("\nFAILED:")
            for project in failed:
                lines.append(f"  {project.client_name} / {project.project_name} ({project.source})")
                for check in project.checks.values():
                    if not check.passed:
                        marker = "!" if check.near_miss else "-"
                        lines.append(f"    {marker} {check}")
        elif self.projects:
            lines.append("\nAll checks passed")

        return "\n".join(lines)
