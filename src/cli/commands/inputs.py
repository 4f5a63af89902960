"""Shared input loading for CLI commands."""

import datetime as dt
import logging
from pathlib import Path
from typing import Dict, List, Optional

import click

from src.cli.error_handlers import ConfigurationError
from src.cli.utils.progress import create_progress_bar
from src.config.settings import BillingEngineConfig
from src.models.entry import CanonicalEntry, SourceSystem
from src.readers.billing_config_reader import BillingConfigReader
from src.readers.export_parser import ExportReader
from src.readers.timesheet_reader import TimesheetReader
from src.services.billing_config_store import BillingConfigStore
from src.utils.month_utils import parse_month

logger = logging.getLogger(__name__)

ExistingFile = click.Path(exists=True, dir_okay=False, path_type=Path)
OutputFile = click.Path(dir_okay=False, writable=True, path_type=Path)


def parse_month_option(value: Optional[str]) -> Optional[dt.date]:
    """Parse a --month value (YYYY-MM)."""
    if value is None:
        return None
    try:
        return parse_month(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid month format: {value}", "Use YYYY-MM, for example 2026-01"
        )


def resolve_config_path(
    config_file: Optional[Path], settings: BillingEngineConfig
) -> Optional[Path]:
    """Pick --config, falling back to BILLING_CONFIG_FILE."""
    if config_file is not None:
        return config_file
    if settings.billing_config_file:
        path = Path(settings.billing_config_file)
        if not path.is_file():
            raise ConfigurationError(
                f"BILLING_CONFIG_FILE does not exist: {path}",
                "Fix the path in your .env file or pass --config",
            )
        return path
    return None


def load_store(config_path: Optional[Path]) -> BillingConfigStore:
    """Load the config store, or an empty one when no file is configured."""
    if config_path is None:
        logger.warning("No billing config file; every project uses the default config")
        return BillingConfigStore()
    return BillingConfigReader().read_file(config_path)


def load_entries(
    clockify: Optional[Path] = None,
    clickup: Optional[Path] = None,
    timesheet: Optional[Path] = None,
) -> List[CanonicalEntry]:
    """Read every given input file into one list of canonical entries.

    Raises:
        ConfigurationError: If no input file was given
    """
    sources: Dict[Path, SourceSystem] = {}
    if clockify:
        sources[clockify] = SourceSystem.CLOCKIFY
    if clickup:
        sources[clickup] = SourceSystem.CLICKUP
    if timesheet:
        sources[timesheet] = SourceSystem.TIMESHEET

    if not sources:
        raise ConfigurationError(
            "No input files given", "Pass at least one of --clockify, --clickup or --timesheet"
        )

    export_reader = ExportReader()
    timesheet_reader = TimesheetReader()
    entries: List[CanonicalEntry] = []

    with create_progress_bar(list(sources)) as paths:
        for path in paths:
            source = sources[path]
            if source == SourceSystem.TIMESHEET:
                entries.extend(timesheet_reader.read_csv(path))
            else:
                entries.extend(export_reader.read_file(path, source))

    logger.info(f"Read {len(entries)} entries from {len(sources)} files")
    return entries
