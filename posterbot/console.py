"""Console UI for terminal output using Rich."""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from posterbot.models.job import ExtractionJob
from posterbot.models.poster import Poster

_JOB_STYLES = {
    "pending": "yellow",
    "processing": "cyan",
    "completed": "green",
    "failed": "red",
}


class ConsoleUI:
    """Rich-based console UI for job/poster listings and notifications."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    def error(self, message: str) -> None:
        """Print an error message in red."""
        self._console.print(f"[red]Error:[/red] {message}")

    def display_jobs(self, jobs: list[ExtractionJob], user_id: str) -> None:
        """Display extraction jobs in a table.

        Args:
            jobs: Jobs to display, newest first
            user_id: Owner shown in the title
        """
        if not jobs:
            self._console.print(f"No extraction jobs for user {user_id}.")
            return

        table = Table(title=f"Extraction jobs (user={user_id})")
        table.add_column("Job ID", overflow="fold")
        table.add_column("Status")
        table.add_column("Poster", justify="right")
        table.add_column("Updated", width=19)
        table.add_column("Error", overflow="fold")

        for job in jobs:
            style = _JOB_STYLES.get(job.status, "white")
            table.add_row(
                job.id,
                f"[{style}]{job.status}[/{style}]",
                str(job.poster_id) if job.poster_id else "-",
                (job.updated_at or "-")[:19],
                job.error or "",
            )
        self._console.print(table)

    def display_posters(self, posters: list[Poster], user_id: str) -> None:
        """Display posters in a table."""
        if not posters:
            self._console.print(f"No posters for user {user_id}.")
            return

        table = Table(title=f"Posters (user={user_id})")
        table.add_column("ID", justify="right")
        table.add_column("Status")
        table.add_column("Created", width=10)
        table.add_column("Title", overflow="fold")

        for poster in posters:
            table.add_row(
                str(poster.id) if poster.id else "-",
                poster.status,
                (poster.created_at or "-")[:10],
                poster.title,
            )
        self._console.print(table)

    def exported(self, poster_id: int, filepath: Path) -> None:
        self._console.print(f"[green]Exported poster {poster_id}[/green] → {filepath}")

    def recovered(self, count: int) -> None:
        if count:
            self._console.print(f"[yellow]Marked {count} interrupted job(s) as failed.[/yellow]")
        else:
            self._console.print("No interrupted jobs found.")
