"""Extraction job repository."""

import sqlite3
import uuid
from pathlib import Path
from typing import Optional

from posterbot.database.connection import connect, init_schema, utcnow
from posterbot.models.job import (
    ALLOWED_TRANSITIONS,
    ExtractionJob,
    InvalidJobTransitionError,
    JobAccessDeniedError,
    JobNotFoundError,
    can_transition,
)

INTERRUPTED_MESSAGE = "Extraction interrupted by server restart"


class JobRepository:
    """Repository for extraction job rows using SQLite."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        init_schema(db_path)

    def create(self, user_id: str) -> ExtractionJob:
        """Insert a new ``pending`` job and return it."""
        now = utcnow()
        job = ExtractionJob(
            id=str(uuid.uuid4()),
            user_id=user_id,
            status="pending",
            created_at=now,
            updated_at=now,
        )
        with connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO extraction_jobs (id, user_id, status, created_at, updated_at)
                VALUES (?, ?, 'pending', ?, ?)
                """,
                (job.id, job.user_id, now, now),
            )
        return job

    def get(self, job_id: str) -> Optional[ExtractionJob]:
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, user_id, status, poster_id, error, created_at, updated_at
                FROM extraction_jobs WHERE id = ?
                """,
                (job_id,),
            )
            row = cursor.fetchone()
        return self._row_to_job(row) if row is not None else None

    def get_for_user(self, job_id: str, user_id: str) -> ExtractionJob:
        """Fetch a job on behalf of *user_id*.

        Raises:
            JobNotFoundError: No job with this id
            JobAccessDeniedError: The job belongs to someone else
        """
        job = self.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        if job.user_id != user_id:
            raise JobAccessDeniedError(f"Job {job_id} is not owned by the caller")
        return job

    def transition(
        self,
        job_id: str,
        status: str,
        poster_id: Optional[int] = None,
        error: Optional[str] = None,
    ) -> ExtractionJob:
        """Move a job forward in its lifecycle.

        The UPDATE is guarded on the current status, so a terminal job is
        never rewritten even if two writers race.

        Raises:
            JobNotFoundError: No job with this id
            InvalidJobTransitionError: *status* is not reachable from the current status
        """
        allowed_from = [
            current for current, targets in ALLOWED_TRANSITIONS.items() if status in targets
        ]
        if not allowed_from:
            raise InvalidJobTransitionError(f"No status may move to '{status}'")

        placeholders = ",".join("?" * len(allowed_from))
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                UPDATE extraction_jobs
                SET status = ?, poster_id = COALESCE(?, poster_id), error = ?, updated_at = ?
                WHERE id = ? AND status IN ({placeholders})
                """,
                (status, poster_id, error, utcnow(), job_id, *allowed_from),
            )
            updated = cursor.rowcount

        job = self.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        if not updated:
            raise InvalidJobTransitionError(
                f"Job {job_id} cannot move from '{job.status}' to '{status}'"
            )
        return job

    def fail_interrupted(self) -> int:
        """Fail every job left ``pending``/``processing`` by a previous process.

        Returns:
            Number of jobs moved to ``failed``
        """
        stale = [s for s in ("pending", "processing") if can_transition(s, "failed")]
        placeholders = ",".join("?" * len(stale))
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                UPDATE extraction_jobs SET status = 'failed', error = ?, updated_at = ?
                WHERE status IN ({placeholders})
                """,
                (INTERRUPTED_MESSAGE, utcnow(), *stale),
            )
            return cursor.rowcount

    def find_by_user(self, user_id: str, limit: int = 50) -> list[ExtractionJob]:
        """List a user's jobs, newest first."""
        with connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, user_id, status, poster_id, error, created_at, updated_at
                FROM extraction_jobs
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            rows = cursor.fetchall()
        return [self._row_to_job(row) for row in rows]

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> ExtractionJob:
        return ExtractionJob(
            id=row["id"],
            user_id=row["user_id"],
            status=row["status"],
            poster_id=row["poster_id"],
            error=row["error"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
