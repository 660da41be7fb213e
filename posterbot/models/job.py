"""Extraction job data model and lifecycle rules."""

from dataclasses import dataclass
from typing import Literal, Optional

JobStatus = Literal["pending", "processing", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# Forward-only lifecycle: pending → processing → {completed | failed}.
# A job that never got picked up may also fail straight from pending
# (e.g. interrupted by a restart before the worker started).
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "failed"}),
    "processing": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """Return True if a job in *current* status may move to *target*."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class JobNotFoundError(LookupError):
    """No extraction job exists with the requested id."""


class JobAccessDeniedError(PermissionError):
    """The extraction job belongs to a different user."""


class InvalidJobTransitionError(ValueError):
    """Attempted to move a job backwards or out of a terminal state."""


@dataclass
class ExtractionJob:
    """One upload-to-poster conversion, polled by the uploader."""

    id: str
    user_id: str
    status: JobStatus = "pending"
    poster_id: Optional[int] = None
    error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_view(self) -> dict:
        """Shape exposed to polling clients."""
        return {
            "jobId": self.id,
            "status": self.status,
            "posterId": self.poster_id,
            "error": self.error,
            "created": self.created_at,
            "updated": self.updated_at,
        }
