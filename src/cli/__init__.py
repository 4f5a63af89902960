"""Billing Engine CLI.

This module provides a command-line interface for the billing engine.
It includes commands for calculating monthly billing, reconciling raw
exports against it, and listing the months present in export files.
"""

import click

from src.cli.commands.calculate import calculate
from src.cli.commands.list_months import list_months
from src.cli.commands.reconcile import reconcile

__version__ = "1.0.0"


@click.group(help="Billing Engine CLI - Calculate and reconcile monthly billing")
@click.version_option(version=__version__)
def cli():
    """Billing Engine CLI main entry point."""
    pass


# Register commands
cli.add_command(calculate)
cli.add_command(reconcile)
cli.add_command(list_months)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
