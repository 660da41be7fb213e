"""Command-line interface handlers."""

import argparse
import json
from pathlib import Path
from typing import Optional

import uvicorn

from posterbot.config import Settings
from posterbot.console import ConsoleUI
from posterbot.database.job_repository import JobRepository
from posterbot.database.poster_repository import PosterRepository
from posterbot.logging_setup import configure_logging
from posterbot.services.poster_json import build_poster_json


class PosterBotCLI:
    """CLI application for PosterBot."""

    def __init__(self, settings: Optional[Settings] = None, ui: Optional[ConsoleUI] = None):
        """Initialize CLI with settings.

        Args:
            settings: Application settings (loads from .metadata/ if not provided)
            ui: Console output (tests pass one bound to a recording console)
        """
        self.settings = settings or Settings.load()
        self.ui = ui or ConsoleUI()
        self.posters = PosterRepository(self.settings.db_path)
        self.jobs = JobRepository(self.settings.db_path)

    def cmd_serve(self, host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
        """Run the API server with uvicorn."""
        uvicorn.run(
            "posterbot.server.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level=self.settings.log_level.lower(),
        )

    def cmd_jobs(self, user_id: str, limit: int = 50) -> None:
        """List a user's extraction jobs, newest first."""
        self.ui.display_jobs(self.jobs.find_by_user(user_id, limit=limit), user_id)

    def cmd_posters(self, user_id: str, limit: int = 100) -> None:
        """List a user's posters, newest first."""
        self.ui.display_posters(self.posters.find_by_user(user_id, limit=limit), user_id)

    def cmd_export(self, poster_id: int, user_id: str, output: Optional[Path] = None) -> bool:
        """Write the poster JSON document for one of the user's posters.

        Args:
            poster_id: Poster to export
            user_id: Owner; other users' posters are reported as missing
            output: Target file (default: ``poster-<id>.json`` in the cwd)

        Returns:
            True if the file was written
        """
        poster = self.posters.find_by_id(poster_id, user_id=user_id)
        if poster is None or poster.metadata is None:
            self.ui.error(f"Poster {poster_id} not found")
            return False

        filepath = output or Path(f"poster-{poster_id}.json")
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(build_poster_json(poster.metadata), f, indent=2, ensure_ascii=False)
        self.ui.exported(poster_id, filepath)
        return True

    def cmd_recover(self) -> int:
        """Fail jobs a crashed server left ``pending``/``processing``."""
        count = self.jobs.fail_interrupted()
        self.ui.recovered(count)
        return count


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="posterbot",
        description="Poster upload → metadata extraction → Zenodo archival",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # jobs command
    jobs_parser = subparsers.add_parser("jobs", help="List a user's extraction jobs")
    jobs_parser.add_argument("--user", required=True, dest="user_id", help="Owner user id")
    jobs_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum jobs to display (default: 50)",
    )

    # posters command
    posters_parser = subparsers.add_parser("posters", help="List a user's posters")
    posters_parser.add_argument("--user", required=True, dest="user_id", help="Owner user id")
    posters_parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum posters to display (default: 100)",
    )

    # export command
    export_parser = subparsers.add_parser("export", help="Write a poster's JSON document")
    export_parser.add_argument("poster_id", type=int, help="Poster ID")
    export_parser.add_argument("--user", required=True, dest="user_id", help="Owner user id")
    export_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output file (default: poster-<id>.json)",
    )

    # recover command
    subparsers.add_parser("recover", help="Fail jobs left unfinished by a crashed server")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    cli = PosterBotCLI()
    configure_logging(cli.settings.log_level)

    if args.command == "serve":
        cli.cmd_serve(args.host, args.port, args.reload)
    elif args.command == "jobs":
        cli.cmd_jobs(args.user_id, args.limit)
    elif args.command == "posters":
        cli.cmd_posters(args.user_id, args.limit)
    elif args.command == "export":
        if not cli.cmd_export(args.poster_id, args.user_id, args.output):
            return 1
    elif args.command == "recover":
        cli.cmd_recover()
    return 0
