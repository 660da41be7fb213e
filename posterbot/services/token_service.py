"""Zenodo OAuth token lifecycle: connect, validate, refresh, disconnect."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlencode

from posterbot.config import ZenodoConfig
from posterbot.database.token_repository import TokenRepository, expiry_from_now
from posterbot.models.token import ZenodoToken
from posterbot.services.result import ErrorKind, Result, ServiceError
from posterbot.services.zenodo_client import ZenodoClient

logger = logging.getLogger(__name__)

MSG_NO_TOKEN = "No Zenodo token found"
MSG_INVALID = "Zenodo token is invalid or expired"
MSG_VALID = "Zenodo token is valid"


@dataclass
class TokenValidation:
    """Outcome of :meth:`TokenService.validate`."""

    valid: bool
    message: str
    existing_depositions: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "zenodoToken": self.valid,
            "message": self.message,
            "existingDepositions": self.existing_depositions,
        }


def summarize_deposition(deposition: dict[str, Any]) -> dict[str, Any]:
    """Reduce a remote deposition to what the release page lists."""
    return {
        "id": deposition.get("id"),
        "title": (deposition.get("metadata") or {}).get("title"),
        "state": deposition.get("state"),
        "submitted": deposition.get("submitted"),
        "conceptrecid": deposition.get("conceptrecid"),
    }


class TokenService:
    """Owns the per-user Zenodo credential.

    A token that fails the liveness probe is deleted on the spot, so a
    known-bad credential is never left in storage.
    """

    def __init__(self, tokens: TokenRepository, client: ZenodoClient, config: ZenodoConfig):
        """Initialize token service.

        Args:
            tokens: Token storage
            client: Zenodo REST client
            config: OAuth client settings
        """
        self.tokens = tokens
        self.client = client
        self.config = config

    def authorize_url(self, state: str) -> str:
        """URL that starts the OAuth code grant; *state* round-trips to the callback."""
        params = urlencode(
            {
                "response_type": "code",
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_uri,
                "state": state,
                "scope": self.config.scope,
            }
        )
        return f"{self.config.endpoint}/oauth/authorize?{params}"

    def exchange_code(self, user_id: str, code: str) -> Result[ZenodoToken]:
        """Trade an authorization code for a token and store it for *user_id*."""
        result = self.client.exchange_code(code)
        if not result.success:
            logger.error("OAuth code exchange failed for user %s: %s", user_id, result.error.describe())
            return Result.fail(
                ServiceError(
                    ErrorKind.AUTHORIZATION,
                    result.error.message,
                    status_code=result.error.status_code,
                    body=result.error.body,
                )
            )

        token = self._token_from_grant(user_id, result.data)
        self.tokens.upsert(token)
        logger.info("Zenodo OAuth token obtained for user %s", user_id)
        return Result.ok(token)

    def validate(self, user_id: str) -> TokenValidation:
        """Check the stored token against Zenodo and refresh it.

        The "list my depositions" call doubles as the liveness probe.  On
        success the token is refreshed opportunistically; a failed refresh
        is logged only, the probed token stays valid for this operation.
        """
        token = self.tokens.get(user_id)
        if token is None:
            return TokenValidation(valid=False, message=MSG_NO_TOKEN)

        if token.is_expired:
            logger.debug("Stored token for user %s is past expiry, probing anyway", user_id)

        probe = self.client.list_depositions(token.access_token)
        if not probe.success:
            logger.warning(
                "Deleting dead Zenodo token for user %s: %s", user_id, probe.error.describe()
            )
            self.tokens.delete(user_id)
            return TokenValidation(valid=False, message=MSG_INVALID)

        self.refresh(token)

        depositions = probe.data if isinstance(probe.data, list) else []
        return TokenValidation(
            valid=True,
            message=MSG_VALID,
            existing_depositions=[summarize_deposition(d) for d in depositions],
        )

    def refresh(self, token: ZenodoToken) -> bool:
        """Exchange the refresh token for a new pair and persist it.

        Returns:
            True if a new pair was stored
        """
        result = self.client.refresh_token(token.refresh_token)
        if not result.success:
            logger.warning(
                "Zenodo token refresh failed for user %s: %s",
                token.user_id,
                result.error.describe(),
            )
            return False

        refreshed = self._token_from_grant(token.user_id, result.data, fallback=token)
        self.tokens.upsert(refreshed)
        return True

    def get_token(self, user_id: str) -> Optional[ZenodoToken]:
        return self.tokens.get(user_id)

    def disconnect(self, user_id: str) -> None:
        """Forget the user's token. Idempotent."""
        if self.tokens.delete(user_id):
            logger.info("Zenodo token removed for user %s", user_id)

    @staticmethod
    def _token_from_grant(
        user_id: str,
        grant: dict[str, Any],
        fallback: Optional[ZenodoToken] = None,
    ) -> ZenodoToken:
        refresh_token = grant.get("refresh_token") or (fallback.refresh_token if fallback else "")
        return ZenodoToken(
            user_id=user_id,
            access_token=grant["access_token"],
            refresh_token=refresh_token,
            expires_at=expiry_from_now(grant.get("expires_in")),
        )
