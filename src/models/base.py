"""Base model for all data models in the billing engine.

This module provides base Pydantic models with the common configuration
shared by entries, billing configuration and config store records.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class BaseDataModel(BaseModel):
    """Base class for all data models.

    Provides common configuration for:
    - Validation with type checking
    - Serialization to/from dictionaries
    - Arbitrary types support for dates and decimals

    Example:
        >>> class Client(BaseDataModel):
        ...     client_id: str
        ...     name: str
        >>> client = Client(client_id="c-1", name="Acme")
        >>> client.model_dump()
        {'client_id': 'c-1', 'name': 'Acme'}
    """

    model_config = ConfigDict(
        # Allow arbitrary types like Decimal, date
        arbitrary_types_allowed=True,
        # Validate on assignment to catch errors early
        validate_assignment=True,
        strict=False,
        # Unknown fields are a configuration mistake
        extra="forbid",
        frozen=False,
    )


class FrozenDataModel(BaseDataModel):
    """Immutable variant used for values that must never change after creation."""

    model_config = ConfigDict(frozen=True)


def to_decimal(v: Any) -> Optional[Decimal]:
    """Convert numeric input to Decimal without binary float artifacts.

    Floats are converted through their string form, so 52.36 becomes
    Decimal('52.36') rather than the nearest binary fraction.

    Args:
        v: The value to convert (str, int, float, Decimal or None)

    Returns:
        The value as a Decimal, or None when v is None

    Raises:
        ValueError: If the value cannot be converted to Decimal
    """
    if v is None or isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError(f"Cannot convert {v!r} to Decimal")
    try:
        return Decimal(str(v))
    except (ArithmeticError, ValueError, TypeError) as e:
        raise ValueError(f"Cannot convert {v} to Decimal: {e}")
