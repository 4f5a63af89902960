"""Exception taxonomy for the billing engine.

The engine distinguishes between:
- ParseError: a source file is not valid structured data for its format
- NoSourceDataError: nothing to bill or reconcile for the requested scope
- ConfigMissingError: no billing configuration for a project (non-fatal,
  callers fall back to the default configuration)
- ComputationInvariantViolation: an input that would corrupt aggregates,
  such as negative minutes
"""

from typing import Optional


class BillingEngineError(Exception):
    """Base class for all billing engine errors."""


class ParseError(BillingEngineError):
    """Raised when an export file cannot be parsed.

    Attributes:
        message: Human-readable reason
        file_name: Name of the offending file, if known
    """

    def __init__(self, message: str, file_name: Optional[str] = None):
        self.message = message
        self.file_name = file_name
        if file_name:
            super().__init__(f"{file_name}: {message}")
        else:
            super().__init__(message)


class NoSourceDataError(BillingEngineError):
    """Raised when there are no entries for the requested scope."""


class ConfigMissingError(BillingEngineError):
    """Raised by strict config lookups when a project has no configuration."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"No billing configuration found for project '{project_id}'")


class ComputationInvariantViolation(BillingEngineError):
    """Raised when an input would violate an aggregation invariant."""
