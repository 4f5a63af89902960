"""CLI utility functions."""

from src.cli.utils.formatters import (
    format_billing_table,
    format_comparison_table,
    format_error,
    format_info,
    format_success,
    format_table,
    format_warning,
)
from src.cli.utils.progress import ProgressTracker, create_progress_bar

__all__ = [
    "format_billing_table",
    "format_comparison_table",
    "format_error",
    "format_info",
    "format_success",
    "format_table",
    "format_warning",
    "ProgressTracker",
    "create_progress_bar",
]
