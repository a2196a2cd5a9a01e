"""
Progress bars for long-running labelscope operations, built on Rich.

    RosterProgressBar  - roster pass over every label of a family tree
    ExportProgressBar  - catalog matching during a playlist export

Usage:
    with ExportProgressBar(total=len(releases)) as progress:
        for release in releases:
            ...
            progress.update(matched=True)
"""

from abc import ABC, abstractmethod
from typing import Optional

from rich import get_console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})


class BaseProgressBar(ABC):
    """
    Abstract base class for all progress bars.

    Provides context manager support, manual start/stop and a status
    column rendered by the subclass.
    """

    def __init__(self, total: int, description: str):
        self.total = total
        self.description = description
        self.completed = 0

        self.console = get_console()
        self.console.push_theme(PROGRESS_THEME)

        self.progress = Progress(
            TextColumn("[white]{task.description:<12}"),
            TextColumn("{task.fields[status]}"),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "BaseProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self._started = False
            self.console.pop_theme()

    def _update_progress(self) -> None:
        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )

    @abstractmethod
    def _get_status_text(self) -> str:
        pass

    @abstractmethod
    def update(self, *args, **kwargs) -> None:
        pass


class RosterProgressBar(BaseProgressBar):
    """
    Progress bar for the roster pass.

    Example:
        Rosters      ✓ 12  ✗ 1        ━━━━━━━━━━━━━━━━━  81%
    """

    def __init__(self, total: int, description: str = "Rosters"):
        super().__init__(total=total, description=description)
        self.loaded = 0
        self.failed = 0

    def _get_status_text(self) -> str:
        return f"[green]✓ {self.loaded}[/green]  [red]✗ {self.failed}[/red]"

    def update(self, success: bool) -> None:
        self.completed += 1
        if success:
            self.loaded += 1
        else:
            self.failed += 1
        self._update_progress()


class ExportProgressBar(BaseProgressBar):
    """
    Progress bar for catalog matching during an export.

    Example:
        Matching     ✓ 45  ✗ 2  ⊘ 3   ━━━━━━━━━━━━━━━━━  47%

    ⊘ counts duplicate tracks dropped so far.
    """

    def __init__(self, total: int, description: str = "Matching"):
        super().__init__(total=total, description=description)
        self.matched = 0
        self.unmatched = 0
        self.duplicates = 0

    def _get_status_text(self) -> str:
        parts = [
            f"[green]✓ {self.matched}[/green]",
            f"[red]✗ {self.unmatched}[/red]",
        ]
        if self.duplicates > 0:
            parts.append(f"[yellow]⊘ {self.duplicates}[/yellow]")
        return "  ".join(parts)

    def update(self, matched: bool, duplicates: int = 0) -> None:
        self.completed += 1
        if matched:
            self.matched += 1
        else:
            self.unmatched += 1
        self.duplicates += duplicates
        self._update_progress()


__all__ = [
    "PROGRESS_THEME",
    "BaseProgressBar",
    "RosterProgressBar",
    "ExportProgressBar",
]
