"""Reconciliation engine.

Re-derives project billing from raw source exports, through the same
aggregation, rounding and limit functions as the primary billing path,
and compares the result against expected values within a tolerance.

The engine is read-only: it never mutates entries, configs or the
expected values it is given.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from src.aggregators.entry_aggregator import aggregate_entries, project_group_key
from src.calculators.billing_calculator import calculate_project_billing
from src.calculators.rounding import is_within_tolerance
from src.models.billing_config import DEFAULT_BILLING_CONFIG, BillingConfig
from src.models.billing_result import MonthlyBillingResult, ProjectBillingResult
from src.models.entry import CanonicalEntry
from src.utils.logging_utils import log_function_call
from src.validators.validation_report import (
    CHECK_LABELS,
    ProjectValidationResult,
    ValidationCheck,
    ValidationReport,
    ValidationStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")
UNKNOWN_COMPANY = "Unknown"

BillingConfigLookup = Callable[[str], Optional[BillingConfig]]
CompanyNameLookup = Callable[[Optional[str]], Optional[str]]

# (company id, project id), a bare project id, or "client name:project name"
ExpectedKey = Union[Tuple[str, str], str]


@dataclass(frozen=True)
class ExpectedValues:
    """Values the primary billing path produced for one project."""

    rounded_hours: Decimal
    base_revenue: Decimal
    billed_revenue: Decimal


@dataclass
class SourceProjectGroup:
    """Raw entries of one (source, client, project) combination."""

    source: str
    client_id: Optional[str]
    client_name: str
    project_id: Optional[str]
    project_name: str
    entries: List[CanonicalEntry] = field(default_factory=list)

    @property
    def total_minutes(self) -> int:
        return sum(entry.minutes for entry in self.entries)


def compare_with_tolerance(
    expected: Decimal, actual: Decimal, tolerance: Decimal = DEFAULT_TOLERANCE
) -> ValidationStatus:
    """PASS when the values differ by no more than the tolerance, else FAIL."""
    if is_within_tolerance(expected, actual, tolerance):
        return ValidationStatus.PASS
    return ValidationStatus.FAIL


def create_check(
    label: str, expected: Decimal, actual: Decimal, tolerance: Decimal = DEFAULT_TOLERANCE
) -> ValidationCheck:
    """Create a validation check result."""
    return ValidationCheck(
        label=label,
        expected=expected,
        actual=actual,
        status=compare_with_tolerance(expected, actual, tolerance),
        tolerance=tolerance,
    )


def group_entries_by_project(entries: Iterable[CanonicalEntry]) -> List[SourceProjectGroup]:
    """Group entries by (source, client id, project id).

    Groups are sorted by client name, project name, then identifiers.
    """
    groups: Dict[Tuple[str, Optional[str], Optional[str]], SourceProjectGroup] = {}

    for entry in entries:
        key = (entry.source_system.value, entry.client_id, entry.project_id)
        group = groups.get(key)
        if group is None:
            group = SourceProjectGroup(
                source=entry.source_system.value,
                client_id=entry.client_id,
                client_name=entry.client_name,
                project_id=entry.project_id,
                project_name=entry.project_name,
            )
            groups[key] = group
        group.entries.append(entry)

    return sorted(
        groups.values(),
        key=lambda g: (
            g.client_name,
            g.project_name,
            g.source,
            g.client_id or "",
            g.project_id or "",
        ),
    )


def expected_key(client_name: str, project_name: str) -> str:
    """Name-based key for expected values ("client name:project name")."""
    return f"{client_name}:{project_name}"


def expected_from_result(result: MonthlyBillingResult) -> Dict[ExpectedKey, ExpectedValues]:
    """Build the expected-values mapping from a persisted monthly result.

    Each project is keyed by (company id, project id), the key the
    aggregator groups by, and by "company name:project name". A project id
    reused under another company therefore keeps its own expectations.
    """
    expected: Dict[ExpectedKey, ExpectedValues] = {}
    for company in result.companies:
        for project in company.projects:
            values = ExpectedValues(
                rounded_hours=project.rounded_hours,
                base_revenue=project.base_revenue,
                billed_revenue=project.billed_revenue,
            )
            if project.project_id:
                expected[(company.company_id, project.project_id)] = values
            expected[expected_key(company.company_name, project.project_name)] = values
    return expected


class ReconciliationEngine:
    """Recomputes billing from raw entries and checks it against expectations.

    Attributes:
        get_billing_config: Lookup project_id -> BillingConfig | None
        get_company_name: Lookup client_id -> company name | None
        tolerance: Allowed absolute difference per check

    Example:
        >>> engine = ReconciliationEngine(store.reconciliation_lookup(month))
        >>> report = engine.run(entries, expected_from_result(persisted))
        >>> report.summary.all_passed
        True
    """

    def __init__(
        self,
        get_billing_config: BillingConfigLookup,
        get_company_name: Optional[CompanyNameLookup] = None,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        default_config: BillingConfig = DEFAULT_BILLING_CONFIG,
    ):
        self.get_billing_config = get_billing_config
        self.get_company_name = get_company_name
        self.tolerance = Decimal(tolerance)
        self.default_config = default_config

    @log_function_call
    def run(
        self,
        entries: Iterable[CanonicalEntry],
        expected: Optional[Mapping[ExpectedKey, ExpectedValues]] = None,
        generated_at: Optional[dt.datetime] = None,
    ) -> ValidationReport:
        """Validate every project group found in the entries.

        Args:
            entries: Canonical entries from one or more raw exports
            expected: Expected values keyed by (company id, project id),
                project id or "client:project";
                projects without expectations are self-checked
            generated_at: Report timestamp (defaults to now)

        Returns:
            ValidationReport with per-project results and a summary
        """
        groups = group_entries_by_project(entries)
        logger.info(f"Reconciling {len(groups)} project groups")

        results = []
        for group in groups:
            result = self.validate_project(group, expected or {})
            if result is not None:
                results.append(result)

        report = ValidationReport(results, generated_at=generated_at)
        logger.info(report.summary_line())
        return report

    def _resolve_config(self, group: SourceProjectGroup) -> BillingConfig:
        config = None
        if group.project_id is not None:
            config = self.get_billing_config(group.project_id)

        if config is None:
            logger.warning(
                f"ConfigMissing: no billing config for {group.source} project "
                f"'{group.project_name}' ({group.project_id}); using default"
            )
            return self.default_config
        return config

    def _resolve_company_name(self, group: SourceProjectGroup) -> str:
        name = None
        if self.get_company_name is not None and group.client_id is not None:
            name = self.get_company_name(group.client_id)
        return name or group.client_name or UNKNOWN_COMPANY

    def _recompute(
        self, group: SourceProjectGroup, config: BillingConfig
    ) -> Optional[ProjectBillingResult]:
        aggregated = aggregate_entries(
            group.entries, lambda project_id, client_id: config, default_config=config
        )
        if aggregated.is_empty:
            return None
        return calculate_project_billing(aggregated.companies[0].projects[0])

    def validate_project(
        self, group: SourceProjectGroup, expected: Mapping[ExpectedKey, ExpectedValues]
    ) -> Optional[ProjectValidationResult]:
        """Validate a single project group.

        Returns:
            ProjectValidationResult, or None if every entry was rejected
        """
        config = self._resolve_config(group)
        client_name = self._resolve_company_name(group)

        billing = self._recompute(group, config)
        if billing is None:
            logger.warning(
                f"Skipping {group.source} project '{group.project_name}': no valid entries"
            )
            return None

        values = None
        if group.project_id is not None:
            values = expected.get(project_group_key(group.client_id, group.project_id))
            if values is None:
                values = expected.get(group.project_id)
        if values is None:
            values = expected.get(expected_key(client_name, group.project_name))
        if values is None:
            values = ExpectedValues(
                rounded_hours=billing.rounded_hours,
                base_revenue=billing.base_revenue,
                billed_revenue=billing.billed_revenue,
            )

        checks = {
            "rounded_hours": create_check(
                CHECK_LABELS["rounded_hours"],
                values.rounded_hours,
                billing.rounded_hours,
                self.tolerance,
            ),
            "base_revenue": create_check(
                CHECK_LABELS["base_revenue"],
                values.base_revenue,
                billing.base_revenue,
                self.tolerance,
            ),
            "billed_revenue": create_check(
                CHECK_LABELS["billed_revenue"],
                values.billed_revenue,
                billing.billed_revenue,
                self.tolerance,
            ),
        }

        return ProjectValidationResult(
            client_name=client_name,
            project_name=group.project_name,
            source=group.source,
            source_project_id=group.project_id,
            source_client_id=group.client_id,
            matched_in_system=config.matched_in_system,
            matched_project_name=config.matched_project_name,
            raw_minutes=billing.actual_minutes,
            actual_hours=billing.actual_hours,
            rounding=config.rounding_increment_minutes,
            rate=config.rate,
            minimum_hours=config.minimum_hours,
            maximum_hours=config.maximum_hours,
            carryover_enabled=config.carryover_enabled,
            carryover_in=billing.carryover_in,
            is_active=config.is_active,
            rounded_hours=billing.rounded_hours,
            adjusted_hours=billing.adjusted_hours,
            base_revenue=billing.base_revenue,
            billed_hours=billing.billed_hours,
            billed_revenue=billing.billed_revenue,
            checks=checks,
        )
