"""Timed pipeline stages."""

import time
from typing import Dict, Optional

from rich.console import Console
from rich.table import Table

console = Console()


class PipelineStage:
    """Represents a pipeline stage."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.success = False
        self.skipped = False
        self.error: Optional[str] = None
        self.stats: Dict = {}

    def start(self):
        """Mark stage as started."""
        self.start_time = time.monotonic()

    def complete(self, stats: Optional[Dict] = None):
        """Mark stage as completed successfully."""
        self.end_time = time.monotonic()
        self.success = True
        if stats:
            self.stats.update(stats)

    def skip(self, reason: str):
        """Mark stage as not run."""
        self.skipped = True
        self.error = reason

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.monotonic()
        self.success = False
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return 0.0


def timing(stages: Dict[str, PipelineStage]) -> Dict[str, float]:
    return {name: round(stage.duration, 3) for name, stage in stages.items()}


def print_stage_table(title: str, stages: Dict[str, PipelineStage]) -> None:
    """Print a per-stage status table."""
    table = Table(title=title)
    table.add_column("Stage", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Duration", style="yellow")
    table.add_column("Details", style="dim")

    for stage in stages.values():
        if stage.skipped:
            status = "[yellow]skipped[/yellow]"
        elif stage.success:
            status = "[green]ok[/green]"
        else:
            status = "[red]failed[/red]"
        duration = f"{stage.duration:.1f}s" if stage.duration > 0 else "-"
        if stage.error:
            details = stage.error
        else:
            details = ", ".join(f"{k}={v}" for k, v in stage.stats.items())
        table.add_row(stage.description, status, duration, details)

    console.print(table)
