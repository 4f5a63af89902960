"""Reconcile billing command."""

import datetime as dt
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

import click

from src.aggregators.billing_pipeline import BillingPipeline
from src.cli.commands.inputs import (
    ExistingFile,
    load_entries,
    load_store,
    parse_month_option,
    resolve_config_path,
)
from src.cli.error_handlers import ConfigurationError, DataValidationError, with_error_handling
from src.cli.utils.formatters import (
    format_comparison_table,
    format_info,
    format_success,
    format_warning,
)
from src.config.logging_config import setup_cli_logging
from src.config.settings import get_config
from src.errors import NoSourceDataError
from src.models.entry import CanonicalEntry
from src.readers.export_parser import filter_entries_by_month, get_unique_months
from src.utils.logging_utils import LogContext
from src.utils.month_utils import format_month
from src.validators.reconciliation import ReconciliationEngine, expected_from_result
from src.validators.result_comparison import ComparisonStatus, compare_billing_results
from src.writers.result_serializer import ResultSerializer


def _parse_tolerance(value: Optional[str], default: Decimal) -> Decimal:
    if value is None:
        return default
    try:
        tolerance = Decimal(value)
    except InvalidOperation:
        raise ConfigurationError(f"Invalid tolerance: {value}", "Use a number such as 0.01")
    if not tolerance.is_finite():
        raise ConfigurationError(f"Invalid tolerance: {value}", "Use a number such as 0.01")
    if tolerance < 0:
        raise ConfigurationError(f"Tolerance must not be negative: {value}")
    return tolerance


def _scope_month(
    entries: List[CanonicalEntry], month: Optional[dt.date]
) -> dt.date:
    """Use --month, or the single month the entries cover."""
    if month is not None:
        return month

    months = get_unique_months(entries)
    if not months:
        raise NoSourceDataError("The input files contain no time entries")
    if len(months) > 1:
        raise ConfigurationError(
            f"Entries span {len(months)} months "
            f"({format_month(months[0])} to {format_month(months[-1])})",
            "Pass --month to pick one",
        )
    return months[0]


@click.command(name="reconcile")
@click.option(
    "--config",
    "config_file",
    type=ExistingFile,
    default=None,
    help="Billing config JSON (defaults to BILLING_CONFIG_FILE)",
)
@click.option("--month", type=str, default=None, help="Billing month (YYYY-MM format)")
@click.option("--clockify", type=ExistingFile, default=None, help="Clockify JSON export")
@click.option("--clickup", type=ExistingFile, default=None, help="ClickUp JSON export")
@click.option(
    "--persisted",
    type=ExistingFile,
    default=None,
    help="Persisted billing result JSON to check against",
)
@click.option(
    "--tolerance",
    type=str,
    default=None,
    help="Allowed absolute difference per check (defaults to RECONCILIATION_TOLERANCE)",
)
@click.option("--verbose", is_flag=True, help="Log at DEBUG level")
@click.option("--debug", is_flag=True, help="Show full stack traces on error")
def reconcile(
    config_file: Optional[Path],
    month: Optional[str],
    clockify: Optional[Path],
    clickup: Optional[Path],
    persisted: Optional[Path],
    tolerance: Optional[str],
    verbose: bool,
    debug: bool,
):
    """Recompute billing from raw exports and check it.

    Each project found in the exports is recomputed with its billing config
    and its rounded hours, base revenue and billed revenue are checked
    against the persisted result (or against themselves when no result is
    given). With --persisted, the full recomputed result is also compared
    project by project.

    Returns non-zero exit code if any check fails.

    Example:
        billing-cli reconcile --config billing.json --clockify clockify.json
        billing-cli reconcile --month 2026-01 --clickup clickup.json --persisted billing.json
    """
    setup_cli_logging(verbose)

    with with_error_handling(debug):
        settings = get_config()
        month_date = parse_month_option(month)
        check_tolerance = _parse_tolerance(tolerance, settings.reconciliation_tolerance)
        config_path = resolve_config_path(config_file, settings)

        click.echo(format_info("Reconciling billing..."))

        store = load_store(config_path)
        entries = load_entries(clockify, clickup)
        month_date = _scope_month(entries, month_date)
        entries = filter_entries_by_month(entries, month_date)
        if not entries:
            raise NoSourceDataError(f"No time entries found for {format_month(month_date)}")

        click.echo(format_info(f"  Month: {format_month(month_date)}"))
        click.echo(format_info(f"  Entries: {len(entries)}"))
        click.echo()

        persisted_result = ResultSerializer().load(persisted) if persisted else None
        default_config = settings.get_default_billing_config()

        engine = ReconciliationEngine(
            store.reconciliation_lookup(month_date),
            lambda client_id: store.get_company_name(client_id, default=None),
            tolerance=check_tolerance,
            default_config=default_config,
        )
        with LogContext(billing_month=format_month(month_date)):
            expected = expected_from_result(persisted_result) if persisted_result else None
            report = engine.run(entries, expected)

        click.echo(report.format())
        failures = len(report.failed_projects)

        if persisted_result is not None:
            run = BillingPipeline(default_config).run_with_store(entries, month_date, store)
            comparison = compare_billing_results(
                run.result,
                persisted_result,
                tolerance=check_tolerance,
                noise_threshold=settings.zero_value_noise_threshold,
                suppress_zero_value_noise=settings.suppress_zero_value_noise,
            )
            click.echo()
            if comparison.is_match:
                click.echo(format_success("Recomputed result matches the persisted result"))
            else:
                click.echo(format_comparison_table(comparison))
            noise = comparison.count(ComparisonStatus.NOISE)
            if noise:
                click.echo(format_warning(f"{noise} zero-value project(s) ignored as noise"))
            failures += comparison.discrepancy_count

        click.echo()
        if failures:
            raise DataValidationError(
                f"{failures} discrepancies found",
                "Review the failed checks above",
            )

        click.echo(format_success("All checks passed!"))
