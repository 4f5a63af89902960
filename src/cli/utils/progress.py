"""Progress tracking utilities for CLI."""

from pathlib import Path
from typing import List, Optional, Sequence

import click


class ProgressTracker:
    """Track progress through the stages of a billing run.

    Attributes:
        stages: List of stage names
        total_stages: Total number of stages
        current_stage: Current stage index (0-based)
    """

    def __init__(self, stages: List[str]):
        self.stages = stages
        self.total_stages = len(stages)
        self.current_stage = 0

    def start(self) -> None:
        """Print the current stage header."""
        click.echo(self.get_current_message())

    def advance(self, message: Optional[str] = None) -> None:
        """Advance to the next stage and print its header.

        Args:
            message: Optional detail line for the stage just finished
        """
        if message:
            click.echo(f"  {message}")
        self.current_stage += 1
        if not self.is_complete():
            self.start()

    def get_current_message(self) -> str:
        """Get the current stage message with progress indicator.

        Returns:
            Formatted message with stage number and name
        """
        if self.current_stage < self.total_stages:
            stage_name = self.stages[self.current_stage]
            return f"[{self.current_stage + 1}/{self.total_stages}] {stage_name}"
        return f"[{self.total_stages}/{self.total_stages}] Complete"

    def is_complete(self) -> bool:
        return self.current_stage >= self.total_stages


def create_progress_bar(paths: Sequence[Path], label: str = "Reading exports"):
    """Create a Click progress bar over input files.

    Args:
        paths: Files to iterate over
        label: Label to display with the progress bar

    Returns:
        Click progress bar context manager yielding the paths
    """
    return click.progressbar(
        paths,
        label=label,
        show_pos=True,
        item_show_func=lambda p: p.name if p is not None else None,
    )
