"""Billing configuration reader.

This module loads the billing configuration document (companies, versioned
project configs, the carryover ledger and fixed billings) from JSON into a
BillingConfigStore, and writes the ledger back after a billing run.

Document layout:
```
{
  "companies": [{"client_id": "c-1", "name": "Acme"}],
  "projects": [{"project_id": "p-1", "effective_month": "2026-01", "rate": "50.00",
                "rounding_increment_minutes": 15, "maximum_hours": 20,
                "carryover_enabled": true}],
  "carryover": [{"project_id": "p-1", "source_month": "2026-01", "hours": "5.00"}],
  "billings": [{"company_id": "c-1", "name": "Hosting", "type": "subscription",
                "transactions": [{"month": "2026-01", "amount_cents": 12000}]}]
}
```
"""

import datetime as dt
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.errors import ParseError
from src.models.base import to_decimal
from src.models.fixed_billing import FixedBilling
from src.services.billing_config_store import (
    BillingConfigRecord,
    BillingConfigStore,
    CarryoverLedger,
    CarryoverRecord,
)
from src.utils.month_utils import add_months, parse_month

logger = logging.getLogger(__name__)


class CompanyRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class CarryoverRow(BaseModel):
    """A carryover ledger row; carryover_month defaults to the month after source."""

    model_config = ConfigDict(extra="ignore")

    project_id: str = Field(..., min_length=1)
    source_month: dt.date
    carryover_month: Optional[dt.date] = None
    hours: Decimal = Field(..., ge=0)
    actual_hours_worked: Optional[Decimal] = None
    maximum_applied: Optional[Decimal] = None

    @field_validator("source_month", "carryover_month", mode="before")
    @classmethod
    def parse_months(cls, v: Any) -> Optional[dt.date]:
        return None if v is None else parse_month(v)

    @field_validator("hours", "actual_hours_worked", "maximum_applied", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Optional[Decimal]:
        return to_decimal(v)

    def to_record(self) -> CarryoverRecord:
        return CarryoverRecord(
            project_id=self.project_id,
            source_month=self.source_month,
            carryover_month=self.carryover_month or add_months(self.source_month, 1),
            hours=self.hours,
            actual_hours_worked=self.actual_hours_worked,
            maximum_applied=self.maximum_applied,
        )


class BillingConfigDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    companies: List[CompanyRow] = Field(default_factory=list)
    projects: List[BillingConfigRecord] = Field(default_factory=list)
    carryover: List[CarryoverRow] = Field(default_factory=list)
    billings: List[FixedBilling] = Field(default_factory=list)


class BillingConfigReader:
    """Reader for the billing configuration JSON document.

    Example:
        >>> reader = BillingConfigReader()
        >>> store = reader.read_file("billing_config.json")
        >>> store.get_company_name("c-1")
        'Acme'
    """

    def read_file(self, path: Union[str, Path]) -> BillingConfigStore:
        """Load a BillingConfigStore from a JSON file.

        Raises:
            ParseError: If the file cannot be read or is not a valid document
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(f"Cannot read billing config: {e}", path.name) from e

        return self.read_string(content, file_name=path.name)

    def read_string(self, content: str, file_name: Optional[str] = None) -> BillingConfigStore:
        """Load a BillingConfigStore from JSON text."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}", file_name) from e

        try:
            document = BillingConfigDocument.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Invalid billing config: {e}", file_name) from e

        store = BillingConfigStore(
            records=document.projects,
            companies={row.client_id: row.name for row in document.companies},
            ledger=CarryoverLedger(row.to_record() for row in document.carryover),
            fixed_billings=document.billings,
        )

        logger.info(
            f"Loaded billing config for {len(store.project_ids)} projects, "
            f"{len(document.companies)} companies, {len(store.ledger)} carryover rows "
            f"and {len(store.fixed_billings)} fixed billings"
        )
        return store

    def write_carryover(self, store: BillingConfigStore, path: Union[str, Path]) -> Path:
        """Write the store's carryover ledger to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        rows = [record.to_dict() for record in store.ledger.rows()]
        path.write_text(json.dumps({"carryover": rows}, indent=2), encoding="utf-8")

        logger.info(f"Wrote {len(rows)} carryover rows to {path}")
        return path
