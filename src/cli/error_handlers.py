"""Enhanced error handling for CLI commands."""

import sys
import traceback
from typing import Optional

import click

from src.cli.utils.formatters import format_error, format_warning
from src.errors import (
    ComputationInvariantViolation,
    ConfigMissingError,
    NoSourceDataError,
    ParseError,
)

EXIT_CONFIGURATION = 1
EXIT_NO_SOURCE_DATA = 2
EXIT_INVALID_FILE_FORMAT = 3
EXIT_NO_MATCHING_CONFIG = 4
EXIT_DATA_VALIDATION = 5
EXIT_PROCESSING = 6
EXIT_CANCELLED = 130
EXIT_UNEXPECTED = 255


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    exit_code = EXIT_UNEXPECTED
    title = "Error"

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize CLI error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to engine settings or command options."""

    exit_code = EXIT_CONFIGURATION
    title = "Configuration Error"


class NoSourceDataCLIError(CLIError):
    """Nothing to bill or reconcile for the requested scope."""

    exit_code = EXIT_NO_SOURCE_DATA
    title = "No Source Data"


class InvalidFileFormatError(CLIError):
    """An input file is not valid for its format."""

    exit_code = EXIT_INVALID_FILE_FORMAT
    title = "Invalid File Format"


class NoMatchingConfigError(CLIError):
    """A project has no billing configuration."""

    exit_code = EXIT_NO_MATCHING_CONFIG
    title = "No Matching Configuration"


class DataValidationError(CLIError):
    """Reconciliation or comparison found discrepancies."""

    exit_code = EXIT_DATA_VALIDATION
    title = "Data Validation Error"


class ProcessingError(CLIError):
    """Error related to data processing."""

    exit_code = EXIT_PROCESSING
    title = "Processing Error"


def to_cli_error(error: Exception) -> Optional[CLIError]:
    """Translate an engine exception into its CLI error, if it has one."""
    if isinstance(error, CLIError):
        return error

    if isinstance(error, ParseError):
        return InvalidFileFormatError(
            str(error), "Check that the file is an unmodified Clockify or ClickUp export"
        )

    if isinstance(error, NoSourceDataError):
        return NoSourceDataCLIError(
            str(error), "Check --month and that the export files cover that month"
        )

    if isinstance(error, ConfigMissingError):
        return NoMatchingConfigError(
            str(error), f"Add a record for project '{error.project_id}' to the config file"
        )

    if isinstance(error, ComputationInvariantViolation):
        return ProcessingError(str(error))

    return None


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Handle CLI errors with user-friendly messages.

    Args:
        error: The exception that occurred
        debug: Whether to show full stack trace

    Returns:
        Exit code, distinct per error category
    """
    cli_error = to_cli_error(error)

    if cli_error is not None:
        click.echo(format_error(f"{cli_error.title}: {cli_error.message}"), err=True)
        if cli_error.recovery_hint:
            click.echo(format_warning(f"Hint: {cli_error.recovery_hint}"), err=True)
        return cli_error.exit_code

    # Handle click.Abort (user cancellation)
    if isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"), err=True)
        return EXIT_CANCELLED

    click.echo(format_error(f"Unexpected Error: {type(error).__name__}"), err=True)
    click.echo(str(error), err=True)

    if debug:
        click.echo("\nFull stack trace:", err=True)
        click.echo(
            "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            err=True,
        )
    else:
        click.echo(format_warning("\nRun with --debug flag for full stack trace"), err=True)

    return EXIT_UNEXPECTED


def with_error_handling(debug: bool = False):
    """
    Context manager adding standardized error handling to CLI commands.

    Args:
        debug: Whether to show full stack traces

    Returns:
        Context manager that exits with the mapped exit code on error

    Example:
        @click.command()
        @click.option('--debug', is_flag=True)
        def my_command(debug):
            with with_error_handling(debug):
                # Command implementation
                pass
    """

    class ErrorHandler:
        """Context manager for error handling."""

        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None and not isinstance(exc_val, (SystemExit, click.exceptions.Exit)):
                exit_code = handle_cli_error(exc_val, self.show_debug)
                sys.exit(exit_code)
            return False  # Don't suppress exceptions

    return ErrorHandler(debug)
