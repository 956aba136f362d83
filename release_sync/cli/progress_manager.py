"""
Manages a Rich progress display fed by the sync engine's progress callbacks.
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

from release_sync.models.progress import ProgressCallbacks


class ProgressManager:
    """
    Renders the text and fraction updates of a sync run as a single progress bar.

    The callbacks only record the latest values on the task; Rich's own refresh
    thread draws them, so the worker never waits on the display.
    """

    _SCALE = 1000

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=True,
            disable=quiet,
        )
        self._task_id: TaskID | None = None

    async def __aenter__(self) -> "ProgressManager":
        self.progress.start()
        self._task_id = self.progress.add_task("Initializing...", total=self._SCALE)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.progress.stop()

    def callbacks(self) -> ProgressCallbacks:
        """Builds the callback pair to hand to the sync engine."""
        return ProgressCallbacks(on_text=self.on_text, on_fraction=self.on_fraction)

    def on_text(self, message: str) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, description=message)

    def on_fraction(self, fraction: Optional[float]) -> None:
        if self._task_id is None:
            return
        if fraction is None:
            # Unknown total: Rich pulses the bar while total is None.
            self.progress.update(self._task_id, total=None)
        else:
            self.progress.update(
                self._task_id,
                total=self._SCALE,
                completed=int(fraction * self._SCALE),
            )
