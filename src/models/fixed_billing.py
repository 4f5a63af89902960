"""Fixed billings: amounts invoiced to a company outside timesheet hours.

A fixed billing (hosting subscription, license, service fee) belongs to a
company and holds monthly transactions in integer cents. A revenue
milestone may be linked to one of the company's projects; in a month
where that project was billed, the milestone amount replaces the
project's timesheet revenue instead of being listed as a fixed billing.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from src.models.base import FrozenDataModel
from src.models.billing_result import MonthlyBillingResult
from src.utils.month_utils import parse_month


class TransactionType(str, Enum):
    """Classification of a fixed billing."""

    REVENUE_MILESTONE = "revenue_milestone"
    SERVICE_FEE = "service_fee"
    SUBSCRIPTION = "subscription"
    LICENSE = "license"
    REIMBURSEMENT = "reimbursement"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


def cents_to_amount(cents: int) -> Decimal:
    """Convert integer cents to a 2dp amount.

    Example:
        >>> cents_to_amount(123456)
        Decimal('1234.56')
    """
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


class BillingTransaction(FrozenDataModel):
    month: dt.date
    amount_cents: int = Field(..., ge=0)
    description: str = ""

    @field_validator("month", mode="before")
    @classmethod
    def parse_transaction_month(cls, v: Any) -> dt.date:
        return parse_month(v)


class FixedBilling(FrozenDataModel):
    """A named fixed billing for one company.

    Example:
        >>> billing = FixedBilling(
        ...     company_id="c-1",
        ...     name="Hosting",
        ...     type="subscription",
        ...     transactions=[{"month": "2026-01", "amount_cents": 12000}],
        ... )
        >>> billing.total_cents(dt.date(2026, 1, 1))
        12000
    """

    company_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: TransactionType = TransactionType.SERVICE_FEE
    linked_project_id: Optional[str] = None
    transactions: List[BillingTransaction] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_link(self) -> "FixedBilling":
        """Only revenue milestones may be linked to a project."""
        if self.linked_project_id and self.type != TransactionType.REVENUE_MILESTONE:
            raise ValueError(
                f"Only revenue_milestone billings can link a project, "
                f"'{self.name}' is {self.type.value}"
            )
        return self

    def transactions_for(self, month: dt.date) -> List[BillingTransaction]:
        month = parse_month(month)
        return [t for t in self.transactions if t.month == month]

    def total_cents(self, month: dt.date) -> int:
        return sum(t.amount_cents for t in self.transactions_for(month))


@dataclass
class FixedBillingLine:
    """One fixed billing with the transactions that fall in the report month."""

    billing: FixedBilling
    transactions: List[BillingTransaction]

    @property
    def total_cents(self) -> int:
        return sum(t.amount_cents for t in self.transactions)


@dataclass
class MonthlyFixedBillings:
    """Fixed billings resolved against one month's billing result.

    Attributes:
        lines: Fixed billing lines per company id, sorted by billing name
        milestones: Milestone cents per (company id, project id) for
            projects billed this month
        company_names: Display names for company ids with fixed billings
    """

    lines: Dict[str, List[FixedBillingLine]] = field(default_factory=dict)
    milestones: Dict[Tuple[str, str], int] = field(default_factory=dict)
    company_names: Dict[str, str] = field(default_factory=dict)

    @property
    def total_cents(self) -> int:
        return sum(line.total_cents for lines in self.lines.values() for line in lines)

    def company_cents(self, company_id: str) -> int:
        return sum(line.total_cents for line in self.lines.get(company_id, []))

    def milestone_for(self, company_id: str, project_id: Optional[str]) -> Optional[int]:
        if project_id is None:
            return None
        return self.milestones.get((company_id, project_id))

    def milestone_adjustment(self, result: MonthlyBillingResult, company_id: str) -> Decimal:
        """Milestone amount minus timesheet revenue over a company's overridden projects."""
        adjustment = Decimal("0")
        for company in result.companies:
            if company.company_id != company_id:
                continue
            for project in company.projects:
                cents = self.milestone_for(company_id, project.project_id)
                if cents is not None:
                    adjustment += cents_to_amount(cents) - project.billed_revenue
        return adjustment

    def total_milestone_adjustment(self, result: MonthlyBillingResult) -> Decimal:
        return sum(
            (self.milestone_adjustment(result, c.company_id) for c in result.companies),
            Decimal("0"),
        )


def resolve_fixed_billings(
    billings: Iterable[FixedBilling],
    month: dt.date,
    result: MonthlyBillingResult,
    company_names: Optional[Dict[str, str]] = None,
) -> MonthlyFixedBillings:
    """Split a month's fixed billings into report lines and milestone overrides.

    A revenue milestone counts as an override only when its linked project
    was billed for the same company this month; otherwise it is listed
    like any other fixed billing. Billings without transactions in the
    month are dropped.
    """
    month = parse_month(month)
    billed = {
        (company.company_id, project.project_id)
        for company in result.companies
        for project in company.projects
        if project.project_id is not None
    }

    resolved = MonthlyFixedBillings()
    for billing in sorted(billings, key=lambda b: (b.company_id, b.name)):
        transactions = billing.transactions_for(month)
        if not transactions:
            continue

        key = (billing.company_id, billing.linked_project_id)
        if billing.type == TransactionType.REVENUE_MILESTONE and key in billed:
            resolved.milestones[key] = resolved.milestones.get(key, 0) + sum(
                t.amount_cents for t in transactions
            )
            continue

        resolved.lines.setdefault(billing.company_id, []).append(
            FixedBillingLine(billing, transactions)
        )

    names = company_names or {}
    resolved.company_names = {
        company_id: names.get(company_id, company_id) for company_id in resolved.lines
    }
    return resolved
