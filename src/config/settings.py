"""
Configuration management for the billing engine.
"""

from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.billing_config import DEFAULT_ROUNDING_INCREMENT, ROUNDING_INCREMENTS, BillingConfig


class BillingEngineConfig(BaseSettings):
    """Configuration settings for the billing engine."""

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Billing Defaults
    default_rate: Decimal = Field(default=Decimal("0"), alias="DEFAULT_RATE", ge=0)
    default_rounding_increment: int = Field(
        default=DEFAULT_ROUNDING_INCREMENT, alias="DEFAULT_ROUNDING_INCREMENT"
    )
    currency: str = Field(default="USD", alias="CURRENCY")

    # Reconciliation Configuration
    reconciliation_tolerance: Decimal = Field(
        default=Decimal("0.01"), alias="RECONCILIATION_TOLERANCE", ge=0
    )
    suppress_zero_value_noise: bool = Field(default=True, alias="SUPPRESS_ZERO_VALUE_NOISE")
    zero_value_noise_threshold: Decimal = Field(
        default=Decimal("0"), alias="ZERO_VALUE_NOISE_THRESHOLD", ge=0
    )

    # Input Configuration
    billing_config_file: Optional[str] = Field(default=None, alias="BILLING_CONFIG_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    @field_validator("default_rounding_increment")
    @classmethod
    def validate_rounding_increment(cls, v):
        """Ensure the rounding increment is one of the supported values."""
        if v not in ROUNDING_INCREMENTS:
            raise ValueError(f"Rounding increment must be one of: {list(ROUNDING_INCREMENTS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        """Ensure currency is a 3-letter code."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be a 3-letter ISO code")
        return v.upper()

    def get_default_billing_config(self) -> BillingConfig:
        """Default billing config for projects the config store does not know."""
        return BillingConfig(
            rate=self.default_rate,
            rounding_increment_minutes=self.default_rounding_increment,
            matched_in_system=False,
        )


def load_config(env_file: Optional[str] = None) -> BillingEngineConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return BillingEngineConfig()


# Global configuration instance
_config: Optional[BillingEngineConfig] = None


def get_config() -> BillingEngineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> BillingEngineConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
