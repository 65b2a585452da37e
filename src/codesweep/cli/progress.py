"""
Rich progress rendering for cleanup runs.
"""

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

PROGRESS_TITLE = "Cleaning project code"

LEVEL_STYLES = {
    "info": "cyan",
    "warning": "yellow",
}


def create_progress(console: Console) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


class RichProgressSink:
    """
    Progress sink drawing a rich progress bar.

    The bar spans 0-100; each report advances it by the given percentage.
    """

    def __init__(self, progress: Progress, console: Console) -> None:
        self.progress = progress
        self.console = console
        self.task_id: TaskID = progress.add_task(f"[cyan]{PROGRESS_TITLE}", total=100)
        self.messages: list[tuple[str, str]] = []

    def report(self, increment: float, message: str) -> None:
        self.progress.update(
            self.task_id,
            advance=increment,
            description=f"[cyan]{PROGRESS_TITLE}[/cyan] [dim]{escape(message)}[/dim]",
        )

    def notify(self, level: str, message: str) -> None:
        self.messages.append((level, message))
        style = LEVEL_STYLES.get(level, "white")
        self.console.print(f"[{style}]{escape(message)}[/{style}]")
