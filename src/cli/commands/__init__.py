"""CLI commands."""

from src.cli.commands.calculate import calculate
from src.cli.commands.list_months import list_months
from src.cli.commands.reconcile import reconcile

__all__ = ["calculate", "list_months", "reconcile"]
