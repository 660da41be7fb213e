"""Uniform success/failure result for multi-step remote workflows.

Each Zenodo call is one step of a longer publication, so failures come
back as values instead of exceptions: the caller logs, reports progress
and decides whether to abort.  Only the HTTP routers turn a failed
``Result`` into an error response.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

import httpx

T = TypeVar("T")

# Upstream bodies can be whole HTML error pages; keep diagnostics bounded.
MAX_BODY_CHARS = 2000


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    TIMEOUT = "timeout"
    AUTHORIZATION = "authorization"
    PROTOCOL = "protocol"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ServiceError:
    """Structured failure: kind, message and optional upstream response."""

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    body: Optional[str] = None

    def describe(self) -> str:
        """One-line diagnostic including upstream status and body."""
        text = self.message
        if self.status_code is not None:
            text += f" (HTTP {self.status_code})"
        if self.body:
            text += f": {self.body}"
        return text

    @classmethod
    def from_response(cls, message: str, response: httpx.Response) -> "ServiceError":
        """Capture status and body text of a failed upstream response."""
        kind = ErrorKind.NOT_FOUND if response.status_code == 404 else ErrorKind.UPSTREAM
        if response.status_code in (401, 403):
            kind = ErrorKind.AUTHORIZATION
        return cls(
            kind=kind,
            message=message,
            status_code=response.status_code,
            body=truncate(response.text),
        )

    @classmethod
    def from_exception(cls, message: str, exc: Exception) -> "ServiceError":
        """Wrap a transport-level failure (timeout, refused connection, ...)."""
        kind = ErrorKind.TIMEOUT if isinstance(exc, httpx.TimeoutException) else ErrorKind.UPSTREAM
        return cls(kind=kind, message=f"{message}: {exc.__class__.__name__}: {exc}")


@dataclass(frozen=True)
class Result(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ServiceError) -> "Result":
        return cls(success=False, error=error)


def truncate(text: Optional[str], limit: int = MAX_BODY_CHARS) -> str:
    """Clip *text* to *limit* characters, marking the cut."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "…"
