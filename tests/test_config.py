"""Tests for settings loading."""

import shutil
from pathlib import Path

import pytest

from posterbot.config import DEFAULT_ZENODO_SCOPE, Settings, ZenodoConfig

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def base_dir(tmp_path):
    """Project root holding a copy of the example settings."""
    shutil.copytree(REPO_ROOT / ".metadata.example", tmp_path / ".metadata.example")
    return tmp_path


class TestSettingsLoad:
    """Tests for Settings.load."""

    def test_copies_example_on_first_run(self, base_dir):
        Settings.load(base_dir, environ={})

        assert (base_dir / ".metadata" / "settings.yaml").exists()

    def test_reads_yaml(self, base_dir):
        settings = Settings.load(base_dir, environ={})

        assert settings.db_path == base_dir / "posters.db"
        assert settings.zenodo.endpoint == "https://sandbox.zenodo.org"
        assert settings.zenodo.api_endpoint == "https://sandbox.zenodo.org/api"
        assert settings.extraction.timeout == 900
        assert settings.extraction.max_workers == 4
        assert settings.zenodo.max_workers == 4

    def test_existing_file_not_overwritten(self, base_dir):
        metadata_dir = base_dir / ".metadata"
        metadata_dir.mkdir()
        (metadata_dir / "settings.yaml").write_text("log_level: DEBUG\n", encoding="utf-8")

        settings = Settings.load(base_dir, environ={})

        assert settings.log_level == "DEBUG"
        assert settings.zenodo.endpoint == ""

    def test_environment_overrides(self, base_dir):
        settings = Settings.load(
            base_dir,
            environ={
                "POSTERBOT_ZENODO_CLIENT_SECRET": "s3cret",
                "POSTERBOT_ZENODO_ENDPOINT": "https://zenodo.org/",
                "POSTERBOT_EXTRACTION_TIMEOUT": "60",
                "POSTERBOT_ZENODO_MAX_WORKERS": "2",
                "POSTERBOT_DB_PATH": "/var/lib/posterbot/posters.db",
            },
        )

        assert settings.zenodo.client_secret == "s3cret"
        assert settings.zenodo.endpoint == "https://zenodo.org"
        assert settings.extraction.timeout == 60.0
        assert settings.zenodo.max_workers == 2
        assert settings.db_path == Path("/var/lib/posterbot/posters.db")

    def test_empty_env_value_ignored(self, base_dir):
        settings = Settings.load(base_dir, environ={"POSTERBOT_LOG_LEVEL": ""})

        assert settings.log_level == "INFO"

    def test_defaults_without_any_file(self, tmp_path):
        settings = Settings.load(tmp_path, environ={})

        assert settings.db_path == tmp_path / "posters.db"
        assert settings.zenodo.scope == DEFAULT_ZENODO_SCOPE
        assert settings.extraction.timeout == 900.0
        assert not settings.zenodo.is_configured

    def test_malformed_yaml_ignored(self, tmp_path):
        metadata_dir = tmp_path / ".metadata"
        metadata_dir.mkdir()
        (metadata_dir / "settings.yaml").write_text("zenodo: [unclosed\n", encoding="utf-8")

        settings = Settings.load(tmp_path, environ={})

        assert settings.zenodo == ZenodoConfig()


class TestZenodoConfig:
    def test_is_configured(self):
        assert ZenodoConfig(client_id="x", endpoint="e", api_endpoint="a").is_configured
        assert not ZenodoConfig(endpoint="e", api_endpoint="a").is_configured

    def test_update_unknown_field(self):
        with pytest.raises(AttributeError):
            Settings().update(nope=1)
