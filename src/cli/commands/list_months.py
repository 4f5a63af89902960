"""List months command."""

from collections import Counter, defaultdict
from pathlib import Path
from typing import Dict, Optional, Set

import click

from src.calculators.rounding import minutes_to_hours
from src.cli.commands.inputs import ExistingFile, load_entries
from src.cli.error_handlers import with_error_handling
from src.cli.utils.formatters import format_info, format_success, format_table
from src.config.logging_config import setup_cli_logging
from src.readers.export_parser import get_unique_months
from src.utils.month_utils import format_month


@click.command(name="list-months")
@click.option("--clockify", type=ExistingFile, default=None, help="Clockify JSON export")
@click.option("--clickup", type=ExistingFile, default=None, help="ClickUp JSON export")
@click.option("--timesheet", type=ExistingFile, default=None, help="Timesheet rollup CSV")
@click.option("--verbose", is_flag=True, help="Log at DEBUG level")
@click.option("--debug", is_flag=True, help="Show full stack traces on error")
def list_months(
    clockify: Optional[Path],
    clickup: Optional[Path],
    timesheet: Optional[Path],
    verbose: bool,
    debug: bool,
):
    """List the billing months present in export files.

    Displays a table with:
    - Month
    - Entry count
    - Actual hours
    - Source systems

    Example:
        billing-cli list-months --clockify clockify.json --clickup clickup.json
    """
    setup_cli_logging(verbose)

    with with_error_handling(debug):
        entries = load_entries(clockify, clickup, timesheet)

        if not entries:
            click.echo()
            click.echo(format_info("No time entries found in the given files."))
            return

        counts: Counter = Counter()
        minutes: Counter = Counter()
        sources: Dict[str, Set[str]] = defaultdict(set)
        for entry in entries:
            key = format_month(entry.month)
            counts[key] += 1
            minutes[key] += entry.minutes
            sources[key].add(entry.source_system.value)

        months = get_unique_months(entries)
        rows = []
        for month in months:
            key = format_month(month)
            rows.append(
                [
                    key,
                    str(counts[key]),
                    f"{minutes_to_hours(minutes[key]):.2f}",
                    ", ".join(sorted(sources[key])),
                ]
            )

        click.echo()
        click.echo(format_table(["Month", "Entries", "Hours", "Sources"], rows))
        click.echo()
        click.echo(format_success(f"Found {len(months)} month(s)"))
