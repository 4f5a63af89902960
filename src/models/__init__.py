"""Data models for the billing engine.

This package contains the models for all billing entities:
- BaseDataModel: Base class with common configuration
- CanonicalEntry: Normalized time entry
- BillingConfig: Per project-month billing configuration
- Entry groups: Company -> Project -> Task aggregation
- Billing results: Task, project, company and monthly billing
- Fixed billings: Company-level amounts and project milestones
"""

from src.models.base import BaseDataModel, FrozenDataModel
from src.models.billing_config import DEFAULT_BILLING_CONFIG, BillingConfig
from src.models.billing_result import (
    AdjustmentType,
    BilledHoursResult,
    BillingAdjustment,
    CompanyBillingResult,
    MonthlyBillingResult,
    ProjectBillingResult,
    TaskBillingResult,
)
from src.models.entry import CanonicalEntry, SourceSystem
from src.models.fixed_billing import (
    BillingTransaction,
    FixedBilling,
    MonthlyFixedBillings,
    TransactionType,
    resolve_fixed_billings,
)
from src.models.entry_group import (
    AggregatedEntries,
    CompanyEntryGroup,
    ProjectEntryGroup,
    RejectedEntry,
    TaskAggregate,
)

__all__ = [
    "BaseDataModel",
    "FrozenDataModel",
    "BillingConfig",
    "DEFAULT_BILLING_CONFIG",
    "AdjustmentType",
    "BilledHoursResult",
    "BillingAdjustment",
    "CompanyBillingResult",
    "MonthlyBillingResult",
    "ProjectBillingResult",
    "TaskBillingResult",
    "CanonicalEntry",
    "SourceSystem",
    "BillingTransaction",
    "FixedBilling",
    "MonthlyFixedBillings",
    "TransactionType",
    "resolve_fixed_billings",
    "AggregatedEntries",
    "CompanyEntryGroup",
    "ProjectEntryGroup",
    "RejectedEntry",
    "TaskAggregate",
]
