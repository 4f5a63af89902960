"""Billing configuration model.

This module defines BillingConfig, the per (project, billing month)
configuration consumed by the aggregation, rounding and limit engines,
and the documented default used when a project has no configuration.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from src.models.base import FrozenDataModel, to_decimal

DEFAULT_ROUNDING_INCREMENT = 15
ROUNDING_INCREMENTS = (0, 5, 15, 30)


class BillingConfig(FrozenDataModel):
    """Billing configuration for one project in one billing month.

    Supplied by the configuration store; read-only to the engine.

    Attributes:
        rate: Hourly rate in currency units
        rounding_increment_minutes: Per-task rounding increment (0 = actual)
        minimum_hours: Minimum billable hours for active projects
        maximum_hours: Maximum billable hours; excess is carried or lost
        is_active: Whether the minimum applies this month
        carryover_enabled: Whether excess over the maximum is carried over
        carryover_hours_in: Hours carried in from previous months
        carryover_max_hours: Cap on accumulated carryover (store-enforced)
        carryover_expiry_months: Months until carryover expires (store-enforced)
        matched_in_system: False when the default config was substituted
        matched_project_name: Project name as known by the config store

    Example:
        >>> config = BillingConfig(rate="50.00", minimum_hours=10)
        >>> config.rate
        Decimal('50.00')
        >>> config.has_billing_limits
        True
    """

    rate: Decimal = Field(default=Decimal("0"), ge=0, description="Hourly rate")
    rounding_increment_minutes: int = Field(
        default=DEFAULT_ROUNDING_INCREMENT, ge=0, description="Rounding increment"
    )
    minimum_hours: Optional[Decimal] = Field(default=None, ge=0)
    maximum_hours: Optional[Decimal] = Field(default=None, ge=0)
    is_active: bool = True
    carryover_enabled: bool = False
    carryover_hours_in: Decimal = Field(default=Decimal("0"), ge=0)
    carryover_max_hours: Optional[Decimal] = Field(default=None, ge=0)
    carryover_expiry_months: Optional[int] = Field(default=None, gt=0)
    matched_in_system: bool = True
    matched_project_name: Optional[str] = None

    @field_validator(
        "rate",
        "minimum_hours",
        "maximum_hours",
        "carryover_hours_in",
        "carryover_max_hours",
        mode="before",
    )
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Optional[Decimal]:
        """Convert numeric values to Decimal for precision."""
        return to_decimal(v)

    @model_validator(mode="after")
    def validate_limits(self) -> "BillingConfig":
        """Validate that the minimum does not exceed the maximum.

        Raises:
            ValueError: If minimum_hours > maximum_hours
        """
        if (
            self.minimum_hours is not None
            and self.maximum_hours is not None
            and self.minimum_hours > self.maximum_hours
        ):
            raise ValueError(
                f"minimum_hours ({self.minimum_hours}) must not exceed "
                f"maximum_hours ({self.maximum_hours})"
            )
        return self

    @property
    def has_billing_limits(self) -> bool:
        """Whether limits or carryover affect billed hours for this month."""
        return (
            self.minimum_hours is not None
            or self.maximum_hours is not None
            or self.effective_carryover_in > 0
        )

    @property
    def effective_carryover_in(self) -> Decimal:
        """Carryover that applies this month (zero when carryover is disabled)."""
        if not self.carryover_enabled:
            return Decimal("0")
        return self.carryover_hours_in


DEFAULT_BILLING_CONFIG = BillingConfig(
    rate=Decimal("0"),
    rounding_increment_minutes=DEFAULT_ROUNDING_INCREMENT,
    minimum_hours=None,
    maximum_hours=None,
    is_active=True,
    carryover_enabled=False,
    carryover_hours_in=Decimal("0"),
    matched_in_system=False,
)
