"""Aggregators module for grouping time entries and running billing.

This module folds canonical time entries into the Company -> Project -> Task
hierarchy and orchestrates the monthly billing calculation.
"""

from src.aggregators.billing_pipeline import BillingPipeline, BillingRun
from src.aggregators.entry_aggregator import (
    UNASSIGNED_ID,
    aggregate_entries,
    resolve_billing_config,
    validate_entry,
)

__all__ = [
    "BillingPipeline",
    "BillingRun",
    "UNASSIGNED_ID",
    "aggregate_entries",
    "resolve_billing_config",
    "validate_entry",
]
