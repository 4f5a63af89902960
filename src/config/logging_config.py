"""Logging setup for billing runs.

Log records carry the billing context (month, run id) attached through
LogContext. The console always gets the human-readable or JSON stream; a
log file is added when LOG_FILE is set.
"""

import datetime as dt
import json
import logging
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STANDARD_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Attributes every LogRecord has; anything else came from extra= or LogContext
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    """Serialize billing values the json module does not know."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return repr(value)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including billing context fields.

    Decimals are written as strings so hours and money keep their 2dp form.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=_json_default)


class LoggingConfig(BaseSettings):
    """Logging settings, read from the environment and .env.

    Attributes:
        log_level: LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: LOG_FORMAT ('standard' or 'json')
        log_file: LOG_FILE; adds a file handler when set
        enable_console: LOG_CONSOLE; stderr output
    """

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="standard", alias="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    enable_console: bool = Field(default=True, alias="LOG_CONSOLE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        if v.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v.lower() not in ("standard", "json"):
            raise ValueError(f"Invalid log format: {v}. Must be 'standard' or 'json'")
        return v.lower()

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level)

    def create_formatter(self) -> logging.Formatter:
        if self.log_format == "json":
            return JSONFormatter()
        return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)


def _add_handler(root_logger: logging.Logger, handler: logging.Handler, config: LoggingConfig):
    from src.utils.logging_utils import _ContextFilter

    handler.setLevel(config.level)
    handler.setFormatter(config.create_formatter())
    handler.addFilter(_ContextFilter())
    root_logger.addHandler(handler)


def configure_logging(config: LoggingConfig) -> None:
    """Replace the root logger's handlers according to the config."""
    reset_logging()

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    if config.enable_console:
        _add_handler(root_logger, logging.StreamHandler(), config)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _add_handler(root_logger, logging.FileHandler(log_path, encoding="utf-8"), config)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def reset_logging() -> None:
    """Remove all root handlers and restore the WARNING default."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.WARNING)


def setup_cli_logging(verbose: bool = False) -> LoggingConfig:
    """
    Configure logging for a CLI invocation.

    Environment settings are honoured; --verbose forces DEBUG.

    Args:
        verbose: Whether to log at DEBUG level

    Returns:
        The LoggingConfig that was applied
    """
    config = LoggingConfig()
    if verbose:
        config.log_level = "DEBUG"
    configure_logging(config)
    return config
