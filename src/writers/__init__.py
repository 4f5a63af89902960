"""Writers module for generating output files and reports.

This module provides functionality to write the monthly revenue report as
CSV and to persist billing results as JSON.
"""

from src.writers.result_serializer import (
    ResultSerializer,
    result_from_dict,
    result_to_dict,
)
from src.writers.revenue_report_writer import RevenueReportWriter, format_currency

__all__ = [
    "ResultSerializer",
    "RevenueReportWriter",
    "format_currency",
    "result_from_dict",
    "result_to_dict",
]
