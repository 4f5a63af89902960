"""
Data readers for time-tracking exports, timesheet rollups and billing config.
"""

from .billing_config_reader import BillingConfigReader
from .export_parser import (
    PARSERS,
    ExportReader,
    detect_source,
    filter_entries_by_date_range,
    filter_entries_by_month,
    get_unique_months,
    parse_clickup,
    parse_clockify,
    parse_export,
)
from .timesheet_reader import TimesheetReader

__all__ = [
    "BillingConfigReader",
    "ExportReader",
    "PARSERS",
    "TimesheetReader",
    "detect_source",
    "filter_entries_by_date_range",
    "filter_entries_by_month",
    "get_unique_months",
    "parse_clickup",
    "parse_clockify",
    "parse_export",
]
