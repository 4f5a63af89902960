"""Revenue report writer for monthly billing results.

This module turns a MonthlyBillingResult into the revenue report
DataFrame (company, project and task rows plus a TOTAL row) and writes it
as CSV. Fixed billings, when given, add their own rows and override the
revenue of projects with a linked milestone.

Layout:
- Company summary row: company name and company revenue
- Project summary row: company, project and project revenue
- Task rows: hours, rounding, rate and task revenue
- Fixed billing rows after a company's projects: billing name, type label
  in the Rate column and month total; one row per transaction below it
- Extended columns (carryover in, adjusted, billed, unbillable) are added
  when any project has billing limits; project-level values are shown on
  the project's first task row only
"""

import csv
import datetime as dt
import logging
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from src.calculators.limits_calculator import format_hours
from src.models.billing_result import (
    CompanyBillingResult,
    MonthlyBillingResult,
    ProjectBillingResult,
)
from src.models.fixed_billing import FixedBillingLine, MonthlyFixedBillings, cents_to_amount

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_currency(amount: Decimal, currency: str = "USD") -> str:
    """Format an amount for display.

    Example:
        >>> format_currency(Decimal("1234.5"))
        '$1,234.50'
        >>> format_currency(Decimal("-12"), "CHF")
        '-CHF 12.00'
    """
    sign = "-" if amount < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    number = f"{abs(amount):,.2f}"
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{currency.upper()} {number}"


class RevenueReportWriter:
    """Generate and write the monthly revenue report.

    Example:
        >>> writer = RevenueReportWriter(result, dt.date(2026, 1, 1))
        >>> df = writer.generate()
        >>> df.iloc[-1]["Company"]
        'TOTAL'
        >>> writer.write_csv("output/revenue_2026-01.csv")
    """

    STANDARD_COLUMNS = [
        "Company",
        "Project",
        "Task",
        "Actual",
        "Hours",
        "Rounding",
        "Rate",
        "Task Revenue",
        "Project Revenue",
        "Company Revenue",
    ]

    EXTENDED_COLUMNS = [
        "Company",
        "Project",
        "Task",
        "Actual",
        "Rounded",
        "Carryover In",
        "Adjusted",
        "Billed",
        "Unbillable",
        "Rounding",
        "Rate",
        "Task Revenue",
        "Project Revenue",
        "Company Revenue",
    ]

    def __init__(
        self,
        result: MonthlyBillingResult,
        month: Optional[dt.date] = None,
        currency: str = "USD",
        fixed_billings: Optional[MonthlyFixedBillings] = None,
    ):
        """Initialize with a calculated monthly result.

        Args:
            result: Monthly billing result to report
            month: Billing month shown in the title line
            currency: ISO currency code for amounts
            fixed_billings: Fixed billing lines and milestone overrides for the month
        """
        self.result = result
        self.month = month
        self.currency = currency
        self.fixed_billings = fixed_billings or MonthlyFixedBillings()

    @property
    def has_billing_limits(self) -> bool:
        return any(project.has_billing_limits for project in self.result.iter_projects())

    @property
    def columns(self) -> List[str]:
        return self.EXTENDED_COLUMNS if self.has_billing_limits else self.STANDARD_COLUMNS

    @property
    def total_revenue(self) -> Decimal:
        """Timesheet revenue plus fixed billings and milestone adjustments."""
        fixed = self.fixed_billings
        return (
            self.result.billed_revenue
            + cents_to_amount(fixed.total_cents)
            + fixed.total_milestone_adjustment(self.result)
        )

    def title(self) -> str:
        if self.month is None:
            return "Revenue report"
        return f"Revenue for the month of {self.month.strftime('%B %Y')}"

    def generate(self) -> pd.DataFrame:
        """Generate the report DataFrame.

        Returns:
            DataFrame with one row per company, project and task plus TOTAL
        """
        rows: List[Dict[str, str]] = []

        for company_id, company_name, company in self._companies():
            rows.append(self._company_row(company_id, company_name, company))
            if company is not None:
                for project in sorted(company.projects, key=lambda p: p.project_name):
                    rows.append(self._project_row(company, project))
                    rows.extend(self._task_rows(company, project))
            for line in self.fixed_billings.lines.get(company_id, []):
                rows.extend(self._fixed_billing_rows(company_name, line))

        rows.append(self._total_row())

        return pd.DataFrame(rows, columns=self.columns).fillna("")

    def write_csv(self, path: Union[str, Path]) -> Path:
        """Write the report as CSV with a title line.

        Args:
            path: Output file path (parent directories are created)

        Returns:
            The path written to
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        df = self.generate()
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(f'"{self.title()}"\n')
            df.to_csv(f, index=False, quoting=csv.QUOTE_ALL)

        logger.info(f"Wrote revenue report with {len(df)} rows to {path}")
        return path

    def _money(self, amount: Decimal) -> str:
        return format_currency(amount, self.currency)

    def _companies(self) -> List[Tuple[str, str, Optional[CompanyBillingResult]]]:
        """Billed companies plus companies that only have fixed billings, by name."""
        companies: List[Tuple[str, str, Optional[CompanyBillingResult]]] = [
            (company.company_id, company.company_name, company)
            for company in self.result.companies
        ]
        billed_ids = {company.company_id for company in self.result.companies}
        for company_id, name in self.fixed_billings.company_names.items():
            if company_id not in billed_ids:
                companies.append((company_id, name, None))
        return sorted(companies, key=lambda c: (c[1], c[0]))

    def _company_row(
        self, company_id: str, company_name: str, company: Optional[CompanyBillingResult]
    ) -> Dict[str, str]:
        fixed = self.fixed_billings
        revenue = cents_to_amount(fixed.company_cents(company_id))
        if company is not None:
            revenue += company.billed_revenue + fixed.milestone_adjustment(self.result, company_id)
        return {
            "Company": company_name,
            "Company Revenue": self._money(revenue),
        }

    def _project_row(
        self, company: CompanyBillingResult, project: ProjectBillingResult
    ) -> Dict[str, str]:
        revenue = project.billed_revenue
        milestone = self.fixed_billings.milestone_for(company.company_id, project.project_id)
        if milestone is not None:
            revenue = cents_to_amount(milestone)
        return {
            "Company": company.company_name,
            "Project": project.project_name,
            "Project Revenue": self._money(revenue),
        }

    def _task_rows(
        self, company: CompanyBillingResult, project: ProjectBillingResult
    ) -> List[Dict[str, str]]:
        rounding = "—" if project.rounding_increment == 0 else f"{project.rounding_increment}m"
        # Largest tasks first; name breaks ties so output is stable
        tasks = sorted(project.tasks, key=lambda t: (-t.actual_minutes, t.task_name))

        rows = []
        for index, task in enumerate(tasks):
            row = {
                "Company": company.company_name,
                "Project": project.project_name,
                "Task": task.task_name,
                "Actual": f"{task.actual_hours:.2f}",
                "Rounding": rounding,
                "Rate": f"{project.rate:.2f}",
                "Task Revenue": self._money(task.base_revenue),
            }
            if self.has_billing_limits:
                row["Rounded"] = f"{task.rounded_hours:.2f}"
                if index == 0:
                    row["Carryover In"] = format_hours(project.carryover_in)
                    row["Adjusted"] = format_hours(project.adjusted_hours)
                    row["Billed"] = format_hours(project.billed_hours)
                    if project.unbillable_hours > 0:
                        row["Unbillable"] = format_hours(project.unbillable_hours)
            else:
                row["Hours"] = f"{task.rounded_hours:.2f}"
            rows.append(row)
        return rows

    def _fixed_billing_rows(
        self, company_name: str, line: FixedBillingLine
    ) -> List[Dict[str, str]]:
        rows = [
            {
                "Company": company_name,
                "Project": line.billing.name,
                "Rate": line.billing.type.label,
                "Project Revenue": self._money(cents_to_amount(line.total_cents)),
            }
        ]
        for transaction in line.transactions:
            rows.append(
                {
                    "Company": company_name,
                    "Project": line.billing.name,
                    "Task": transaction.description,
                    "Task Revenue": self._money(cents_to_amount(transaction.amount_cents)),
                }
            )
        return rows

    def _total_row(self) -> Dict[str, str]:
        result = self.result
        row = {
            "Company": "TOTAL",
            "Actual": format_hours(result.actual_hours),
            "Company Revenue": self._money(self.total_revenue),
        }
        if self.has_billing_limits:
            row["Rounded"] = format_hours(result.rounded_hours)
            row["Adjusted"] = format_hours(result.adjusted_hours)
            row["Billed"] = format_hours(result.billed_hours)
            if result.unbillable_hours > 0:
                row["Unbillable"] = format_hours(result.unbillable_hours)
        else:
            row["Hours"] = format_hours(result.rounded_hours)
        return row
