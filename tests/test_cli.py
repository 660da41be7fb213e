"""Tests for the command-line interface."""

import json

import pytest
from rich.console import Console

from posterbot.cli import PosterBotCLI, create_parser
from posterbot.console import ConsoleUI


@pytest.fixture
def console():
    return Console(record=True, width=120)


@pytest.fixture
def cli(settings, console):
    return PosterBotCLI(settings=settings, ui=ConsoleUI(console))


class TestParser:
    def test_export_arguments(self, tmp_path):
        args = create_parser().parse_args(
            ["export", "7", "--user", "alice", "--output", str(tmp_path / "out.json")]
        )

        assert args.command == "export"
        assert args.poster_id == 7
        assert args.user_id == "alice"
        assert args.output == tmp_path / "out.json"

    def test_serve_defaults(self):
        args = create_parser().parse_args(["serve"])

        assert (args.host, args.port, args.reload) == ("127.0.0.1", 8000, False)

    def test_jobs_requires_user(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["jobs"])


class TestCommands:
    """Tests for PosterBotCLI commands."""

    def test_export_writes_poster_json(self, cli, make_poster, tmp_path):
        poster = make_poster("alice")
        target = tmp_path / "exports" / "poster.json"

        assert cli.cmd_export(poster.id, "alice", target)

        document = json.loads(target.read_text(encoding="utf-8"))
        assert document["doi"] == "10.5281/zenodo.1234/v2"
        assert document["researchField"] == "Physics"

    def test_export_other_users_poster(self, cli, make_poster, tmp_path, console):
        poster = make_poster("bob")

        assert not cli.cmd_export(poster.id, "alice", tmp_path / "out.json")
        assert not (tmp_path / "out.json").exists()
        assert f"Poster {poster.id} not found" in console.export_text()

    def test_recover(self, cli, job_repo, console):
        job_repo.create("alice")

        assert cli.cmd_recover() == 1
        assert cli.cmd_recover() == 0
        assert "Marked 1 interrupted job(s) as failed." in console.export_text()

    def test_jobs_table(self, cli, job_repo, console):
        job = job_repo.create("alice")
        job_repo.transition(job.id, "failed", error="boom")

        cli.cmd_jobs("alice")

        output = console.export_text()
        assert "failed" in output
        assert "boom" in output

    def test_posters_table(self, cli, make_poster, console):
        make_poster("alice")

        cli.cmd_posters("alice")

        assert "Radioactivity in Posters" in console.export_text()

    def test_empty_listing(self, cli, console):
        cli.cmd_posters("nobody")

        assert "No posters for user nobody." in console.export_text()
