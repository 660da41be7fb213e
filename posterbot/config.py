"""Configuration management.

``Settings`` is a plain dataclass built by ``Settings.load()``.  Nothing
reads configuration at call time: the loaded object is handed to the
application state, which derives the narrower ``ZenodoConfig`` and
``ExtractionConfig`` views each component receives at construction.

User-editable configuration lives under ``.metadata/``:

* ``settings.yaml``  – database path, Zenodo OAuth client, extraction API

On first run, missing files are copied from ``.metadata.example/``.
Every value can be overridden with a ``POSTERBOT_*`` environment variable
(for example ``POSTERBOT_ZENODO_CLIENT_SECRET``), which is how container
deployments inject secrets.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "POSTERBOT_"
DEFAULT_ZENODO_SCOPE = "deposit:write deposit:actions"


# ---------------------------------------------------------------------------
# Component configs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZenodoConfig:
    """Connection details for the Zenodo OAuth + deposition API."""

    endpoint: str = ""
    api_endpoint: str = ""
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    scope: str = DEFAULT_ZENODO_SCOPE
    timeout: float = 120.0
    # Publications run on their own pool, never queued behind extractions.
    max_workers: int = 4

    @property
    def is_configured(self) -> bool:
        """True when enough is set to start the OAuth flow."""
        return bool(self.client_id and self.endpoint and self.api_endpoint)


@dataclass(frozen=True)
class ExtractionConfig:
    """Connection details for the poster extraction service."""

    api_url: str = ""
    # The upstream extraction is AI-driven and slow; allow 15 minutes.
    timeout: float = 900.0
    max_workers: int = 4


# ---------------------------------------------------------------------------
# Settings dataclass
# ---------------------------------------------------------------------------

@dataclass
class Settings:
    """Application settings.

    Usage::

        settings = Settings.load()                 # read .metadata/settings.yaml
        settings = Settings.load(Path("/srv/app"))  # different project root
        settings.update(db_path=Path(...))          # runtime change (tests)
    """

    db_path: Path = Path("posters.db")
    metadata_dir: Path = Path(".metadata")
    log_level: str = "INFO"
    zenodo: ZenodoConfig = field(default_factory=ZenodoConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    # ── Runtime helpers ───────────────────────────────────────────────

    def update(self, **kwargs: Any) -> None:
        """Mutate settings fields at runtime.

        >>> Settings().update(db_path=Path("/tmp/test.db"))
        """
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise AttributeError(f"Settings has no field '{key}'")
            setattr(self, key, value)

    # ── Factory ───────────────────────────────────────────────────────

    @classmethod
    def load(
        cls,
        base_dir: Optional[Path] = None,
        environ: Optional[dict[str, str]] = None,
    ) -> "Settings":
        """Load settings from ``.metadata/settings.yaml`` plus environment.

        Pass *base_dir* to override the project root (defaults to the
        repository root one level above ``posterbot/``).
        """
        if base_dir is None:
            base_dir = Path(__file__).resolve().parent.parent
        if environ is None:
            environ = dict(os.environ)

        metadata_dir = base_dir / ".metadata"
        cls._ensure_default_files(base_dir, metadata_dir)

        data = _load_yaml(metadata_dir / "settings.yaml")
        zenodo_data = data.get("zenodo") or {}
        extraction_data = data.get("extraction") or {}

        db_path = Path(_env(environ, "DB_PATH", data.get("db_path") or "posters.db"))
        if not db_path.is_absolute():
            db_path = base_dir / db_path

        zenodo = ZenodoConfig(
            endpoint=_env(environ, "ZENODO_ENDPOINT", zenodo_data.get("endpoint", "")).rstrip("/"),
            api_endpoint=_env(
                environ, "ZENODO_API_ENDPOINT", zenodo_data.get("api_endpoint", "")
            ).rstrip("/"),
            client_id=_env(environ, "ZENODO_CLIENT_ID", zenodo_data.get("client_id", "")),
            client_secret=_env(
                environ, "ZENODO_CLIENT_SECRET", zenodo_data.get("client_secret", "")
            ),
            redirect_uri=_env(environ, "ZENODO_REDIRECT_URI", zenodo_data.get("redirect_uri", "")),
            scope=_env(environ, "ZENODO_SCOPE", zenodo_data.get("scope") or DEFAULT_ZENODO_SCOPE),
            timeout=float(_env(environ, "ZENODO_TIMEOUT", zenodo_data.get("timeout", 120))),
            max_workers=int(
                _env(environ, "ZENODO_MAX_WORKERS", zenodo_data.get("max_workers", 4))
            ),
        )
        extraction = ExtractionConfig(
            api_url=_env(environ, "EXTRACTION_API", extraction_data.get("api_url", "")).rstrip("/"),
            timeout=float(_env(environ, "EXTRACTION_TIMEOUT", extraction_data.get("timeout", 900))),
            max_workers=int(
                _env(environ, "EXTRACTION_MAX_WORKERS", extraction_data.get("max_workers", 4))
            ),
        )

        return cls(
            db_path=db_path,
            metadata_dir=metadata_dir,
            log_level=str(_env(environ, "LOG_LEVEL", data.get("log_level") or "INFO")),
            zenodo=zenodo,
            extraction=extraction,
        )

    # ── Private ───────────────────────────────────────────────────────

    @staticmethod
    def _ensure_default_files(base_dir: Path, metadata_dir: Path) -> None:
        """Copy ``.metadata.example/`` templates when real files are missing."""
        metadata_dir.mkdir(parents=True, exist_ok=True)

        example_dir = base_dir / ".metadata.example"
        if not example_dir.exists():
            return

        for example_file in example_dir.iterdir():
            if example_file.is_file():
                target = metadata_dir / example_file.name
                if not target.exists():
                    shutil.copy2(example_file, target)
                    logger.info("Created .metadata/%s from template", example_file.name)


# ---------------------------------------------------------------------------
# YAML helpers
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning ``{}`` for a missing or malformed file."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning("Ignoring malformed %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _env(environ: dict[str, str], name: str, default: Any) -> Any:
    """Return ``POSTERBOT_<name>`` from *environ* if set, else *default*."""
    value = environ.get(ENV_PREFIX + name)
    if value is None or value == "":
        return default if default is not None else ""
    return value

