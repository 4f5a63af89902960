"""In-memory billing configuration store.

This module supplies per (project, billing month) billing configuration to
the primary billing path and to reconciliation, and owns the carryover
ledger that links consecutive months:
- Config records are versioned by effective month and inherited forward
- Months before a project's first record use that first record (backfill)
- Carryover rows are keyed by (project, carryover month, source month)
- Expiry and the carryover cap are applied when carryover is read back
"""

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from src.calculators.rounding import round_hours
from src.models.base import FrozenDataModel, to_decimal
from src.models.billing_config import DEFAULT_ROUNDING_INCREMENT, BillingConfig
from src.models.billing_result import MonthlyBillingResult
from src.models.fixed_billing import FixedBilling, MonthlyFixedBillings, resolve_fixed_billings
from src.utils.month_utils import add_months, format_month, parse_month

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY = "Unknown"


class BillingConfigRecord(FrozenDataModel):
    """One version of a project's billing configuration.

    The record applies from effective_month until a later record replaces it.

    Example:
        >>> record = BillingConfigRecord(
        ...     project_id="p-1", effective_month="2026-01", rate="50", maximum_hours=20
        ... )
        >>> record.effective_month
        datetime.date(2026, 1, 1)
    """

    project_id: str = Field(..., min_length=1)
    project_name: Optional[str] = None
    client_id: Optional[str] = None
    effective_month: dt.date
    rate: Decimal = Field(default=Decimal("0"), ge=0)
    rounding_increment_minutes: int = Field(default=DEFAULT_ROUNDING_INCREMENT, ge=0)
    minimum_hours: Optional[Decimal] = Field(default=None, ge=0)
    maximum_hours: Optional[Decimal] = Field(default=None, ge=0)
    is_active: bool = True
    carryover_enabled: bool = False
    carryover_max_hours: Optional[Decimal] = Field(default=None, ge=0)
    carryover_expiry_months: Optional[int] = Field(default=None, gt=0)

    @field_validator("effective_month", mode="before")
    @classmethod
    def parse_effective_month(cls, v: Any) -> dt.date:
        """Accept YYYY-MM strings and normalize to the first of the month."""
        return parse_month(v)

    @field_validator(
        "rate", "minimum_hours", "maximum_hours", "carryover_max_hours", mode="before"
    )
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Optional[Decimal]:
        """Convert numeric values to Decimal for precision."""
        return to_decimal(v)

    @model_validator(mode="after")
    def validate_limits(self) -> "BillingConfigRecord":
        """Validate that the minimum does not exceed the maximum."""
        if (
            self.minimum_hours is not None
            and self.maximum_hours is not None
            and self.minimum_hours > self.maximum_hours
        ):
            raise ValueError(
                f"minimum_hours ({self.minimum_hours}) must not exceed "
                f"maximum_hours ({self.maximum_hours}) for project '{self.project_id}'"
            )
        return self

    def to_billing_config(self, carryover_hours_in: Decimal = Decimal("0")) -> BillingConfig:
        """Build the engine-facing BillingConfig for one month."""
        return BillingConfig(
            rate=self.rate,
            rounding_increment_minutes=self.rounding_increment_minutes,
            minimum_hours=self.minimum_hours,
            maximum_hours=self.maximum_hours,
            is_active=self.is_active,
            carryover_enabled=self.carryover_enabled,
            carryover_hours_in=carryover_hours_in,
            carryover_max_hours=self.carryover_max_hours,
            carryover_expiry_months=self.carryover_expiry_months,
            matched_in_system=True,
            matched_project_name=self.project_name,
        )


@dataclass(frozen=True)
class CarryoverRecord:
    """Hours carried from source_month into carryover_month for a project."""

    project_id: str
    source_month: dt.date
    carryover_month: dt.date
    hours: Decimal
    actual_hours_worked: Optional[Decimal] = None
    maximum_applied: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "source_month": format_month(self.source_month),
            "carryover_month": format_month(self.carryover_month),
            "hours": str(self.hours),
            "actual_hours_worked": (
                None if self.actual_hours_worked is None else str(self.actual_hours_worked)
            ),
            "maximum_applied": (
                None if self.maximum_applied is None else str(self.maximum_applied)
            ),
        }


class CarryoverLedger:
    """Cross-month carryover state, keyed by (project, carryover month, source month).

    Example:
        >>> ledger = CarryoverLedger()
        >>> ledger.record("p-1", dt.date(2026, 1, 1), Decimal("5"))
        >>> ledger.available("p-1", dt.date(2026, 2, 1))
        Decimal('5.00')
    """

    def __init__(self, records: Optional[Iterable[CarryoverRecord]] = None):
        self._rows: Dict[Tuple[str, dt.date, dt.date], CarryoverRecord] = {}
        for record in records or []:
            self._rows[(record.project_id, record.carryover_month, record.source_month)] = record

    def __len__(self) -> int:
        return len(self._rows)

    def record(
        self,
        project_id: str,
        source_month: dt.date,
        hours: Decimal,
        actual_hours_worked: Optional[Decimal] = None,
        maximum_applied: Optional[Decimal] = None,
    ) -> None:
        """Persist or clear the carryover produced in source_month.

        Positive hours are upserted into the following month; zero clears a
        stale row (e.g. after time corrections reduced the month).
        """
        source_month = parse_month(source_month)
        carryover_month = add_months(source_month, 1)
        key = (project_id, carryover_month, source_month)

        if hours > 0:
            self._rows[key] = CarryoverRecord(
                project_id=project_id,
                source_month=source_month,
                carryover_month=carryover_month,
                hours=round_hours(hours),
                actual_hours_worked=actual_hours_worked,
                maximum_applied=maximum_applied,
            )
            logger.debug(
                f"Carryover {hours}h from {format_month(source_month)} to "
                f"{format_month(carryover_month)} for project '{project_id}'"
            )
        elif self._rows.pop(key, None) is not None:
            logger.debug(
                f"Cleared carryover from {format_month(source_month)} "
                f"for project '{project_id}'"
            )

    def available(
        self,
        project_id: str,
        month: dt.date,
        max_hours: Optional[Decimal] = None,
        expiry_months: Optional[int] = None,
    ) -> Decimal:
        """Carryover hours usable by a project in a month.

        Rows whose source month is older than expiry_months are ignored and
        the total is capped at max_hours.
        """
        month = parse_month(month)
        oldest_source = add_months(month, -expiry_months) if expiry_months else None

        total = Decimal("0")
        for record in self._rows.values():
            if record.project_id != project_id or record.carryover_month != month:
                continue
            if oldest_source is not None and record.source_month < oldest_source:
                continue
            total += record.hours

        if max_hours is not None and total > max_hours:
            logger.debug(
                f"Carryover for project '{project_id}' capped at {max_hours}h (was {total}h)"
            )
            total = max_hours

        return round_hours(total)

    def rows(self, project_id: Optional[str] = None) -> List[CarryoverRecord]:
        """Ledger rows sorted by project, carryover month and source month."""
        return [
            self._rows[key]
            for key in sorted(self._rows)
            if project_id is None or key[0] == project_id
        ]


class BillingConfigStore:
    """In-memory configuration store consumed through explicit lookups.

    Attributes:
        ledger: Carryover ledger feeding carryover_hours_in
        fixed_billings: Company-level fixed billings and milestones

    Example:
        >>> store = BillingConfigStore(records, companies={"c-1": "Acme"})
        >>> resolver = store.resolver_for_month(dt.date(2026, 1, 1))
        >>> aggregated = aggregate_entries(entries, resolver)
    """

    def __init__(
        self,
        records: Optional[Iterable[BillingConfigRecord]] = None,
        companies: Optional[Dict[str, str]] = None,
        ledger: Optional[CarryoverLedger] = None,
        fixed_billings: Optional[Iterable[FixedBilling]] = None,
    ):
        self._records: Dict[str, List[BillingConfigRecord]] = {}
        self._companies: Dict[str, str] = dict(companies or {})
        self.ledger = ledger or CarryoverLedger()
        self.fixed_billings: List[FixedBilling] = list(fixed_billings or [])

        for record in records or []:
            self.add_record(record)

    @property
    def project_ids(self) -> List[str]:
        return sorted(self._records)

    def add_record(self, record: BillingConfigRecord) -> None:
        """Add a config version, replacing one with the same effective month."""
        versions = [
            r for r in self._records.get(record.project_id, [])
            if r.effective_month != record.effective_month
        ]
        versions.append(record)
        versions.sort(key=lambda r: r.effective_month)
        self._records[record.project_id] = versions

    def get_record(self, project_id: str, month: dt.date) -> Optional[BillingConfigRecord]:
        """Return the config version in effect for a month.

        Months before the first version inherit the first version.
        """
        versions = self._records.get(project_id)
        if not versions:
            return None

        month = parse_month(month)
        target = max(month, versions[0].effective_month)

        selected = versions[0]
        for version in versions:
            if version.effective_month <= target:
                selected = version
            else:
                break
        return selected

    def get_config(self, project_id: str, month: dt.date) -> Optional[BillingConfig]:
        """Resolve the BillingConfig for a project-month, or None if unknown."""
        record = self.get_record(project_id, month)
        if record is None:
            return None

        carryover_in = Decimal("0")
        if record.carryover_enabled:
            carryover_in = self.ledger.available(
                project_id,
                month,
                max_hours=record.carryover_max_hours,
                expiry_months=record.carryover_expiry_months,
            )
        return record.to_billing_config(carryover_in)

    def resolver_for_month(
        self, month: dt.date
    ) -> Callable[[Optional[str], Optional[str]], Optional[BillingConfig]]:
        """Primary-path resolver: (project_id, client_id) -> BillingConfig | None."""
        month = parse_month(month)

        def resolve(
            project_id: Optional[str], client_id: Optional[str]
        ) -> Optional[BillingConfig]:
            if project_id is None:
                return None
            return self.get_config(project_id, month)

        return resolve

    def reconciliation_lookup(
        self, month: dt.date
    ) -> Callable[[str], Optional[BillingConfig]]:
        """Reconciliation lookup: project_id -> BillingConfig | None."""
        month = parse_month(month)
        return lambda project_id: self.get_config(project_id, month)

    def get_company_name(
        self, client_id: Optional[str], default: Optional[str] = UNKNOWN_COMPANY
    ) -> Optional[str]:
        """Company display name for a client id, or the default."""
        if client_id is None:
            return default
        return self._companies.get(client_id, default)

    def fixed_billings_for_month(
        self, month: dt.date, result: MonthlyBillingResult
    ) -> MonthlyFixedBillings:
        """Fixed billing lines and milestone overrides for a month's result."""
        return resolve_fixed_billings(self.fixed_billings, month, result, self._companies)

    def sync_carryover(self, result: MonthlyBillingResult, month: dt.date) -> int:
        """Record each carryover-enabled project's carryover out for next month.

        Only projects with carryover enabled and a maximum set are synced;
        a zero carryover clears any stale row.

        Returns:
            Number of projects synced
        """
        month = parse_month(month)
        synced = 0

        for project in result.iter_projects():
            record = self.get_record(project.project_id, month)
            if record is None or not record.carryover_enabled or record.maximum_hours is None:
                continue

            self.ledger.record(
                project.project_id,
                month,
                project.carryover_out,
                actual_hours_worked=project.rounded_hours,
                maximum_applied=record.maximum_hours,
            )
            synced += 1

        logger.info(f"Synced carryover for {synced} projects from {format_month(month)}")
        return synced
