"""Poster repository for database operations."""

import json
import sqlite3
from pathlib import Path
from typing import Any, Optional

from posterbot.database.connection import (
    CONFERENCE_COLUMNS,
    METADATA_JSON_COLUMNS,
    METADATA_SCALAR_COLUMNS,
    connect,
    init_schema,
    utcnow,
)
from posterbot.models.poster import CONFERENCE_FIELDS, Poster, PosterMetadata

_POSTER_COLUMNS = "id, user_id, title, description, status, image_url, created_at, published_at"

# Owned by extraction and publication; the edit form never carries them.
EDIT_PRESERVED_COLUMNS = ("poster_content", "doi")


class PosterRepository:
    """Repository for Poster + PosterMetadata rows using SQLite."""

    def __init__(self, db_path: Path):
        """Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        init_schema(db_path)

    def create_with_metadata(self, poster: Poster, metadata: PosterMetadata) -> Poster:
        """Insert a poster and its metadata as one transaction.

        Either both rows are written or neither is.

        Args:
            poster: Poster to insert (``id`` is ignored)
            metadata: Metadata to attach

        Returns:
            The poster with ``id``, ``created_at`` and ``metadata`` populated
        """
        now = utcnow()
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO posters (user_id, title, description, status, image_url, created_at, published_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    poster.user_id,
                    poster.title,
                    poster.description,
                    poster.status,
                    poster.image_url,
                    now,
                    poster.published_at,
                ),
            )
            poster_id = cursor.lastrowid
            self._insert_metadata(cursor, poster_id, metadata)

        poster.id = poster_id
        poster.created_at = now
        metadata.poster_id = poster_id
        poster.metadata = metadata
        return poster

    def update_with_metadata(
        self,
        poster_id: int,
        title: str,
        description: str,
        metadata: PosterMetadata,
    ) -> None:
        """Replace title, description and the editable metadata in one transaction.

        Columns in ``EDIT_PRESERVED_COLUMNS`` keep their stored values.
        """
        row = self._metadata_row(metadata)
        columns = [name for name in row if name not in EDIT_PRESERVED_COLUMNS]
        assignments = ", ".join(f"{name} = ?" for name in columns)
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE posters SET title = ?, description = ? WHERE id = ?",
                (title, description, poster_id),
            )
            cursor.execute(
                f"UPDATE poster_metadata SET {assignments} WHERE poster_id = ?",
                (*(row[name] for name in columns), poster_id),
            )
            if cursor.rowcount == 0:
                self._insert_metadata(cursor, poster_id, metadata)

    def find_by_id(self, poster_id: int, user_id: Optional[str] = None) -> Optional[Poster]:
        """Find a poster (with metadata) by ID.

        Args:
            poster_id: Poster ID to find
            user_id: If set, only return the poster when this user owns it

        Returns:
            Poster if found (and owned), None otherwise
        """
        query = f"SELECT {_POSTER_COLUMNS} FROM posters WHERE id = ?"
        params: tuple = (poster_id,)
        if user_id is not None:
            query += " AND user_id = ?"
            params = (poster_id, user_id)

        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            row = cursor.fetchone()
            if row is None:
                return None
            poster = self._row_to_poster(row)
            cursor.execute("SELECT * FROM poster_metadata WHERE poster_id = ?", (poster_id,))
            meta_row = cursor.fetchone()

        if meta_row is not None:
            poster.metadata = self._row_to_metadata(meta_row)
        return poster

    def find_by_user(self, user_id: str, limit: int = 100) -> list[Poster]:
        """List a user's posters, newest first (without metadata)."""
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_POSTER_COLUMNS} FROM posters
                WHERE user_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            rows = cursor.fetchall()
        return [self._row_to_poster(row) for row in rows]

    def find_published(self, limit: int = 100) -> list[Poster]:
        """List published posters, most recently published first."""
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_POSTER_COLUMNS} FROM posters
                WHERE status = 'published'
                ORDER BY published_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [self._row_to_poster(row) for row in rows]

    def count_published(self) -> int:
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS cnt FROM posters WHERE status = 'published'")
            return cursor.fetchone()["cnt"]

    def mark_published(self, poster_id: int, doi: Optional[str] = None) -> None:
        """Set status='published' and stamp ``published_at``.

        Args:
            poster_id: Poster to mark
            doi: DOI minted by the archive; stored on the metadata when given
        """
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE posters SET status = 'published', published_at = ? WHERE id = ?",
                (utcnow(), poster_id),
            )
            if doi:
                cursor.execute(
                    "UPDATE poster_metadata SET doi = ? WHERE poster_id = ?",
                    (doi, poster_id),
                )

    def count(self) -> int:
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS cnt FROM posters")
            return cursor.fetchone()["cnt"]

    # ── Row mapping ───────────────────────────────────────────────────

    @staticmethod
    def _metadata_row(metadata: PosterMetadata) -> dict[str, Any]:
        """Column name → stored value for every metadata column."""
        row = {name: json.dumps(getattr(metadata, name)) for name in METADATA_JSON_COLUMNS}
        row.update(
            (column, metadata.conference.get(name))
            for name, column in zip(CONFERENCE_FIELDS, CONFERENCE_COLUMNS)
        )
        row.update((name, getattr(metadata, name)) for name in METADATA_SCALAR_COLUMNS)
        return row

    def _insert_metadata(
        self, cursor: sqlite3.Cursor, poster_id: int, metadata: PosterMetadata
    ) -> None:
        row = self._metadata_row(metadata)
        columns = ("poster_id", *row)
        placeholders = ", ".join("?" for _ in columns)
        cursor.execute(
            f"INSERT INTO poster_metadata ({', '.join(columns)}) VALUES ({placeholders})",
            (poster_id, *row.values()),
        )
        metadata.id = cursor.lastrowid

    @staticmethod
    def _row_to_poster(row: sqlite3.Row) -> Poster:
        return Poster(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            image_url=row["image_url"],
            created_at=row["created_at"],
            published_at=row["published_at"],
        )

    @staticmethod
    def _row_to_metadata(row: sqlite3.Row) -> PosterMetadata:
        values = {name: json.loads(row[name]) for name in METADATA_JSON_COLUMNS}
        values.update({name: row[name] for name in METADATA_SCALAR_COLUMNS})
        conference = {
            field_name: row[column]
            for field_name, column in zip(CONFERENCE_FIELDS, CONFERENCE_COLUMNS)
        }
        return PosterMetadata(
            id=row["id"],
            poster_id=row["poster_id"],
            conference=conference,
            **values,
        )
