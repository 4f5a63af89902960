"""
Billing configuration services.

This package provides the in-memory configuration store that supplies
per project-month billing configuration and owns the carryover ledger.
"""

from .billing_config_store import (
    BillingConfigRecord,
    BillingConfigStore,
    CarryoverLedger,
    CarryoverRecord,
)

__all__ = [
    "BillingConfigRecord",
    "BillingConfigStore",
    "CarryoverLedger",
    "CarryoverRecord",
]
