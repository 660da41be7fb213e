"""SQLite connection handling and schema."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from posterbot.models.poster import CONFERENCE_FIELDS

# JSON-shaped metadata fields, stored as opaque TEXT blobs.
METADATA_JSON_COLUMNS = (
    "creators",
    "titles",
    "descriptions",
    "image_caption",
    "poster_content",
    "table_caption",
    "identifiers",
    "alternate_identifiers",
    "publisher",
    "subjects",
    "dates",
    "types",
    "related_identifiers",
    "sizes",
    "formats",
    "rights_list",
    "funding_references",
    "ethics_approval",
)

METADATA_SCALAR_COLUMNS = ("domain", "doi", "publication_year", "language", "version")


def conference_column(field_name: str) -> str:
    """``conferenceStartDate`` → ``conference_start_date``."""
    return "".join("_" + c.lower() if c.isupper() else c for c in field_name)


CONFERENCE_COLUMNS = tuple(conference_column(name) for name in CONFERENCE_FIELDS)


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def connect(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Open a connection for one unit of work.

    Commits when the block exits cleanly, rolls back on any exception, so
    multi-statement writes inside one ``with`` are all-or-nothing.
    """
    conn = sqlite3.connect(db_path, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_schema(db_path: Path) -> None:
    """Create tables and indexes if they do not exist."""
    json_columns = ",\n".join(f"    {name} TEXT NOT NULL DEFAULT '[]'" for name in METADATA_JSON_COLUMNS)
    conference_columns = ",\n".join(f"    {name} TEXT" for name in CONFERENCE_COLUMNS)

    with connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS posters (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'draft',
                image_url TEXT,
                created_at TEXT NOT NULL,
                published_at TEXT
            );
        """)
        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS poster_metadata (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                poster_id INTEGER NOT NULL UNIQUE REFERENCES posters(id) ON DELETE CASCADE,
{json_columns},
{conference_columns},
                domain TEXT,
                doi TEXT,
                publication_year INTEGER,
                language TEXT,
                version TEXT
            );
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS extraction_jobs (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                poster_id INTEGER,
                error TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS zenodo_tokens (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL UNIQUE,
                access_token TEXT NOT NULL,
                refresh_token TEXT NOT NULL,
                expires_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_posters_user ON posters(user_id);")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_posters_status ON posters(status);")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_jobs_user ON extraction_jobs(user_id);")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_jobs_status ON extraction_jobs(status);")
