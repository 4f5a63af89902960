"""Primary billing path for one billing month.

Scopes entries to the month, folds them into companies, projects and
tasks, and runs the rounding, revenue and limit engines over the result.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from src.aggregators.entry_aggregator import (
    CompanyNameResolver,
    ConfigResolver,
    aggregate_entries,
)
from src.calculators.billing_calculator import calculate_monthly_billing
from src.errors import NoSourceDataError
from src.models.billing_config import DEFAULT_BILLING_CONFIG, BillingConfig
from src.models.billing_result import MonthlyBillingResult
from src.models.entry import CanonicalEntry
from src.models.entry_group import RejectedEntry
from src.readers.export_parser import filter_entries_by_month
from src.services.billing_config_store import BillingConfigStore
from src.utils.logging_utils import LogContext, generate_correlation_id, log_function_call
from src.utils.month_utils import format_month, parse_month

logger = logging.getLogger(__name__)


@dataclass
class BillingRun:
    """Outcome of one pipeline run.

    Attributes:
        month: Billing month (first day)
        result: Calculated monthly billing
        entry_count: Entries billed this month
        rejected_entries: Entries refused by the aggregator
        run_id: Correlation id attached to the run's log records
    """

    month: dt.date
    result: MonthlyBillingResult
    entry_count: int
    rejected_entries: List[RejectedEntry] = field(default_factory=list)
    run_id: str = ""

    @property
    def unmatched_project_ids(self) -> List[str]:
        return [p.project_id for p in self.result.iter_projects() if not p.matched_in_system]


class BillingPipeline:
    """Runs the primary billing path.

    Example:
        >>> pipeline = BillingPipeline()
        >>> run = pipeline.run_with_store(entries, dt.date(2026, 1, 1), store)
        >>> run.result.billed_revenue
        Decimal('100.00')
    """

    def __init__(self, default_config: BillingConfig = DEFAULT_BILLING_CONFIG):
        """Initialize the pipeline.

        Args:
            default_config: Config for projects without a configuration
        """
        self.default_config = default_config

    @log_function_call
    def run(
        self,
        entries: Iterable[CanonicalEntry],
        month: dt.date,
        config_resolver: Optional[ConfigResolver] = None,
        company_name_resolver: Optional[CompanyNameResolver] = None,
    ) -> BillingRun:
        """Calculate billing for one month.

        Args:
            entries: Canonical entries (entries outside the month are ignored)
            month: Any date within the billing month
            config_resolver: Callable (project_id, client_id) -> BillingConfig | None
            company_name_resolver: Optional callable client_id -> company name

        Returns:
            BillingRun with the monthly result

        Raises:
            NoSourceDataError: If no entries fall within the month
        """
        month = parse_month(month)
        run_id = generate_correlation_id()

        with LogContext(billing_month=format_month(month), correlation_id=run_id):
            scoped = filter_entries_by_month(entries, month)
            if not scoped:
                raise NoSourceDataError(f"No time entries found for {format_month(month)}")

            logger.info(f"Calculating billing for {len(scoped)} entries")

            aggregated = aggregate_entries(
                scoped,
                config_resolver,
                company_name_resolver,
                default_config=self.default_config,
            )
            if aggregated.rejected_entries:
                logger.warning(f"Rejected {len(aggregated.rejected_entries)} entries")

            result = calculate_monthly_billing(aggregated)

            logger.info(
                f"Billed {result.billed_hours}h / {result.billed_revenue} across "
                f"{len(result.companies)} companies"
            )

        return BillingRun(
            month=month,
            result=result,
            entry_count=aggregated.entry_count,
            rejected_entries=aggregated.rejected_entries,
            run_id=run_id,
        )

    def run_with_store(
        self,
        entries: Iterable[CanonicalEntry],
        month: dt.date,
        store: BillingConfigStore,
        sync_carryover: bool = False,
    ) -> BillingRun:
        """Calculate billing with lookups from a config store.

        Args:
            entries: Canonical entries
            month: Any date within the billing month
            store: Configuration store supplying configs and company names
            sync_carryover: Record each project's carryover out in the store

        Returns:
            BillingRun with the monthly result
        """
        month = parse_month(month)
        run = self.run(
            entries,
            month,
            store.resolver_for_month(month),
            lambda client_id: store.get_company_name(client_id, default=None),
        )
        if sync_carryover:
            store.sync_carryover(run.result, month)
        return run
