"""Calculate billing command."""

import time
from pathlib import Path
from typing import Optional

import click

from src.aggregators.billing_pipeline import BillingPipeline
from src.cli.commands.inputs import (
    ExistingFile,
    OutputFile,
    load_entries,
    load_store,
    parse_month_option,
    resolve_config_path,
)
from src.cli.error_handlers import with_error_handling
from src.cli.utils.formatters import (
    format_billing_table,
    format_info,
    format_success,
    format_warning,
)
from src.cli.utils.progress import ProgressTracker
from src.config.logging_config import setup_cli_logging
from src.config.settings import get_config
from src.errors import ConfigMissingError
from src.readers.billing_config_reader import BillingConfigReader
from src.utils.month_utils import format_month
from src.writers.result_serializer import ResultSerializer
from src.writers.revenue_report_writer import RevenueReportWriter, format_currency


@click.command(name="calculate")
@click.option("--month", required=True, type=str, help="Billing month (YYYY-MM format)")
@click.option(
    "--config",
    "config_file",
    type=ExistingFile,
    default=None,
    help="Billing config JSON (defaults to BILLING_CONFIG_FILE)",
)
@click.option("--clockify", type=ExistingFile, default=None, help="Clockify JSON export")
@click.option("--clickup", type=ExistingFile, default=None, help="ClickUp JSON export")
@click.option("--timesheet", type=ExistingFile, default=None, help="Timesheet rollup CSV")
@click.option("--csv-output", type=OutputFile, default=None, help="Write the revenue report CSV")
@click.option(
    "--json-output", type=OutputFile, default=None, help="Persist the billing result as JSON"
)
@click.option(
    "--carryover-output",
    type=OutputFile,
    default=None,
    help="Sync carryover for next month and write the ledger as JSON",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail if any project has no billing configuration",
)
@click.option("--verbose", is_flag=True, help="Log at DEBUG level")
@click.option("--debug", is_flag=True, help="Show full stack traces on error")
def calculate(
    month: str,
    config_file: Optional[Path],
    clockify: Optional[Path],
    clickup: Optional[Path],
    timesheet: Optional[Path],
    csv_output: Optional[Path],
    json_output: Optional[Path],
    carryover_output: Optional[Path],
    strict: bool,
    verbose: bool,
    debug: bool,
):
    """Calculate billing for one month.

    This command runs the primary billing path:
    1. Read the billing config and the time entry files
    2. Aggregate entries into companies, projects and tasks
    3. Round, apply limits and carryover, and compute revenue
    4. Write the requested outputs

    Example:
        billing-cli calculate --month 2026-01 --config billing.json --clockify clockify.json
        billing-cli calculate --month 2026-01 --timesheet rollup.csv --csv-output revenue.csv
    """
    setup_cli_logging(verbose)
    start_time = time.time()

    with with_error_handling(debug):
        settings = get_config()
        month_date = parse_month_option(month)
        config_path = resolve_config_path(config_file, settings)

        click.echo(format_info(f"Calculating billing for {format_month(month_date)}..."))
        click.echo()

        tracker = ProgressTracker(
            ["Reading inputs", "Calculating billing", "Writing outputs", "Complete"]
        )
        tracker.start()

        store = load_store(config_path)
        entries = load_entries(clockify, clickup, timesheet)
        tracker.advance(f"Read {len(entries)} entries")

        pipeline = BillingPipeline(default_config=settings.get_default_billing_config())
        run = pipeline.run_with_store(
            entries, month_date, store, sync_carryover=carryover_output is not None
        )
        result = run.result

        if strict and run.unmatched_project_ids:
            raise ConfigMissingError(run.unmatched_project_ids[0])

        tracker.advance(
            f"Billed {len(list(result.iter_projects()))} projects "
            f"across {len(result.companies)} companies"
        )

        if csv_output:
            RevenueReportWriter(
                result,
                month_date,
                settings.currency,
                fixed_billings=store.fixed_billings_for_month(month_date, result),
            ).write_csv(csv_output)
            click.echo(f"  Revenue report: {csv_output}")
        if json_output:
            ResultSerializer().save(result, json_output, month=month_date)
            click.echo(f"  Billing result: {json_output}")
        if carryover_output:
            BillingConfigReader().write_carryover(store, carryover_output)
            click.echo(f"  Carryover ledger: {carryover_output}")
        tracker.advance()

        click.echo()
        click.echo(format_billing_table(result, settings.currency))

        if run.rejected_entries:
            click.echo(format_warning(f"{len(run.rejected_entries)} entries were rejected"))
        if run.unmatched_project_ids:
            click.echo(
                format_warning(
                    f"{len(run.unmatched_project_ids)} projects (*) used the default config"
                )
            )

        duration = time.time() - start_time
        click.echo()
        click.echo(format_success("Billing calculated successfully!"))
        click.echo()
        click.echo("Summary:")
        click.echo(f"  Entries billed:   {run.entry_count}")
        click.echo(f"  Billed hours:     {result.billed_hours:.2f}")
        click.echo(f"  Billed revenue:   {format_currency(result.billed_revenue, settings.currency)}")
        click.echo(f"  Duration:         {duration:.2f}s")
