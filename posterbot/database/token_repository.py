"""Zenodo token repository."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from posterbot.database.connection import connect, init_schema, utcnow
from posterbot.models.token import ZenodoToken


def expiry_from_now(expires_in: Optional[float]) -> Optional[str]:
    """ISO timestamp ``expires_in`` seconds from now (None if unknown)."""
    if expires_in is None:
        return None
    return (datetime.now(timezone.utc) + timedelta(seconds=float(expires_in))).isoformat()


class TokenRepository:
    """One OAuth token row per user.

    Refreshes are read-then-write without version checks; two concurrent
    refreshes for one user both hold valid credentials, so last writer wins.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        init_schema(db_path)

    def get(self, user_id: str) -> Optional[ZenodoToken]:
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, user_id, access_token, refresh_token, expires_at
                FROM zenodo_tokens WHERE user_id = ?
                """,
                (user_id,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return ZenodoToken(
            id=row["id"],
            user_id=row["user_id"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=row["expires_at"],
        )

    def upsert(self, token: ZenodoToken) -> None:
        """Insert or replace the user's token."""
        now = utcnow()
        with connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO zenodo_tokens
                    (user_id, access_token, refresh_token, expires_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    expires_at = excluded.expires_at,
                    updated_at = excluded.updated_at
                """,
                (token.user_id, token.access_token, token.refresh_token, token.expires_at, now, now),
            )

    def delete(self, user_id: str) -> bool:
        """Delete the user's token. Idempotent.

        Returns:
            True if a row was removed
        """
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM zenodo_tokens WHERE user_id = ?", (user_id,))
            return cursor.rowcount > 0
