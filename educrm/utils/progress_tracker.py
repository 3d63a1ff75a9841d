"""
Progress Tracker Module

Wraps rich progress bars for long-running batch jobs (bulk lead re-scoring,
at-risk scans).

Example Usage:
    from educrm.utils.progress_tracker import ProgressTracker

    tracker = ProgressTracker()
    tracker.start_phase("Lead re-scoring", total_items=120)
    tracker.update_batch(batch_num=2, total_batches=8, batch_desc="students 16-30")
    tracker.increment(15)
    tracker.complete_phase()
"""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressTracker:
    """Manages one progress bar per batch job using rich."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.phase_name: str = ""
        self.total_items: int = 0
        self.completed_items: int = 0

    def start_phase(self, phase_name: str, total_items: int) -> None:
        """
        Initialize the progress bar for a job.

        Args:
            phase_name: Job name shown next to the bar
            total_items: Total number of items to process
        """
        self.phase_name = phase_name
        self.total_items = total_items
        self.completed_items = 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.progress.start()
        self.task_id = self.progress.add_task(description=phase_name, total=total_items)

    def update_batch(
        self, batch_num: int, total_batches: int, batch_desc: str = ""
    ) -> None:
        """
        Show batch-level information in the bar description.

        Args:
            batch_num: Current batch number (1-indexed)
            total_batches: Total number of batches
            batch_desc: Optional description of current batch
        """
        if self.progress is None or self.task_id is None:
            return

        description = f"{self.phase_name} - Batch {batch_num}/{total_batches}"
        if batch_desc:
            description += f": {batch_desc}"

        self.progress.update(self.task_id, description=description)

    def increment(self, amount: int = 1) -> None:
        """Advance the bar by ``amount`` items."""
        if self.progress is None or self.task_id is None:
            return

        self.completed_items += amount
        self.progress.update(self.task_id, advance=amount)

    def complete_phase(self, summary: str = "") -> None:
        """Stop the bar and print a completion line."""
        if self.progress is None or self.task_id is None:
            return

        if self.completed_items < self.total_items:
            self.progress.update(self.task_id, completed=self.total_items)

        self.progress.stop()

        self.console.print(
            f"[bold green]{self.phase_name} complete:[/bold green] "
            f"{summary or f'{self.total_items} items processed'}"
        )

        self.progress = None
        self.task_id = None
        self.phase_name = ""
        self.total_items = 0
        self.completed_items = 0

    def is_active(self) -> bool:
        return self.progress is not None and self.task_id is not None
