"""Output formatting utilities for CLI."""

from typing import List

import click

from src.calculators.limits_calculator import format_billing_adjustment, format_hours
from src.models.billing_result import MonthlyBillingResult
from src.validators.result_comparison import ResultComparison
from src.writers.revenue_report_writer import format_currency


def format_success(message: str) -> str:
    """Format a success message with green color.

    Args:
        message: The success message to format

    Returns:
        Formatted success message with color
    """
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    """Format an error message with red color."""
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    """Format a warning message with yellow color."""
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    return click.style(f"ℹ {message}", fg="blue")


def format_table(headers: List[str], rows: List[List[str]], max_width: int = 80) -> str:
    """Format data as a table.

    Args:
        headers: List of column headers
        rows: List of data rows (each row is a list of cell values)
        max_width: Maximum width for each column (default: 80)

    Returns:
        Formatted table as a string
    """
    if not headers:
        return ""

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(col_widths):
                col_widths[i] = max(col_widths[i], len(str(cell)))

    col_widths = [min(w, max_width) for w in col_widths]

    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"

    header_row = "|" + "|".join(f" {h:<{col_widths[i]}} " for i, h in enumerate(headers)) + "|"

    data_rows = []
    for row in rows:
        formatted_cells = []
        for i, cell in enumerate(row[: len(col_widths)]):
            cell_str = str(cell)[: col_widths[i]]  # Truncate if needed
            formatted_cells.append(f" {cell_str:<{col_widths[i]}} ")
        data_rows.append("|" + "|".join(formatted_cells) + "|")

    table_lines = [separator, header_row, separator]
    if rows:
        table_lines.extend(data_rows)
        table_lines.append(separator)

    return "\n".join(table_lines)


def format_billing_table(result: MonthlyBillingResult, currency: str = "USD") -> str:
    """Render one row per project plus a TOTAL row.

    Args:
        result: Monthly billing result
        currency: ISO currency code for amounts

    Returns:
        Formatted table as a string
    """
    headers = ["Company", "Project", "Actual", "Rounded", "Billed", "Revenue", "Adjustment"]
    rows = []
    for company in result.companies:
        for project in company.projects:
            name = project.project_name
            if not project.matched_in_system:
                name = f"{name} *"
            rows.append(
                [
                    company.company_name,
                    name,
                    format_hours(project.actual_hours),
                    format_hours(project.rounded_hours),
                    format_hours(project.billed_hours),
                    format_currency(project.billed_revenue, currency),
                    format_billing_adjustment(project.adjustment),
                ]
            )
    rows.append(
        [
            "TOTAL",
            "",
            format_hours(result.actual_hours),
            format_hours(result.rounded_hours),
            format_hours(result.billed_hours),
            format_currency(result.billed_revenue, currency),
            "",
        ]
    )
    return format_table(headers, rows)


def format_comparison_table(comparison: ResultComparison) -> str:
    """Render the discrepancies of a result comparison."""
    headers = ["Project", "Status", "Recomputed", "Persisted", "Difference", "Fields"]
    rows = []
    for item in comparison.discrepancies:
        recomputed = item.recomputed.billed_revenue if item.recomputed else None
        persisted = item.persisted.billed_revenue if item.persisted else None
        rows.append(
            [
                item.project_name,
                item.status.value,
                "—" if recomputed is None else f"{recomputed:.2f}",
                "—" if persisted is None else f"{persisted:.2f}",
                f"{item.billed_revenue_difference:.2f}",
                ", ".join(item.differences),
            ]
        )
    return format_table(headers, rows)
