"""Zenodo OAuth credential model."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass
class ZenodoToken:
    """OAuth access/refresh pair for one user (at most one per user)."""

    user_id: str
    access_token: str
    refresh_token: str
    expires_at: Optional[str] = None

    # Database fields (set after persistence)
    id: Optional[int] = None

    @property
    def is_expired(self) -> bool:
        """True when ``expires_at`` is in the past.

        Informational only: liveness is always decided by the remote
        probe in ``TokenService.validate``.
        """
        if not self.expires_at:
            return False
        try:
            expires = datetime.fromisoformat(self.expires_at)
        except ValueError:
            return False
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires <= datetime.now(timezone.utc)
