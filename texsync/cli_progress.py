"""CLI progress display for sync operations.

This module provides a Rich-based progress display fed by the
SyncProgressEvent stream of the sync engine.
"""

from typing import Optional

from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .sync.progress import SyncProgressEvent, SyncStage


class SyncProgressDisplay:
    """Rich-based progress display for sync and installation runs.

    Stage changes update the task description; per-file events advance the
    bar, which is reset whenever the counted stage changes (downloading,
    then deleting).
    """

    def __init__(self, transient: bool = False) -> None:
        """Initialize the progress display.

        Args:
            transient: Remove the bar from the terminal when finished
        """
        self.transient = transient
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None
        self._counted_stage: Optional[SyncStage] = None
        self.messages: list[str] = []

    def handle_event(self, event: SyncProgressEvent) -> None:
        """Update the display from a progress event.

        Args:
            event: Event emitted by the engine
        """
        self.messages.append(event.message)
        if self._progress is None or self._task is None:
            return

        if event.total is not None:
            if event.stage != self._counted_stage:
                self._counted_stage = event.stage
                self._progress.reset(self._task, total=event.total)
            self._progress.update(
                self._task,
                description=event.stage.value.capitalize(),
                completed=event.current or 0,
                detail=escape(event.message),
            )
        elif event.is_terminal:
            task = self._progress.tasks[self._task]
            self._progress.update(
                self._task,
                description="Complete",
                total=task.total or 1,
                completed=task.total or 1,
                detail=escape(event.message),
            )
        else:
            self._progress.update(
                self._task,
                description=event.stage.value.capitalize(),
                detail=escape(event.message),
            )

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("[cyan]{task.fields[detail]}"),
            transient=self.transient,
            refresh_per_second=4,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task("Preparing...", total=None, detail="")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None
