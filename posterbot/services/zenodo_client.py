"""Zenodo REST client: OAuth token grants and the deposition API.

Every operation returns a :class:`~posterbot.services.result.Result`
instead of raising, capturing the HTTP status and response body of any
failure so the publication workflow can report it step by step.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from posterbot.config import ZenodoConfig
from posterbot.services.result import ErrorKind, Result, ServiceError

logger = logging.getLogger(__name__)


class ZenodoClient:
    """Stateless wrapper around the Zenodo deposition API.

    Holds no per-user state: the access token is passed to every call.
    The underlying ``httpx.Client`` is created lazily and closed by
    ``close()`` or on leaving a ``with`` block.
    """

    def __init__(
        self,
        config: ZenodoConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            config: Zenodo endpoints, OAuth client and timeout
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialized httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.timeout, transport=self._transport)
        return self._client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    # ── OAuth ─────────────────────────────────────────────────────────

    def exchange_code(self, code: str) -> Result[dict[str, Any]]:
        """Authorization-code grant: trade *code* for an access/refresh pair."""
        return self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "scope": self.config.scope,
            },
            "Failed to obtain Zenodo access token",
        )

    def refresh_token(self, refresh_token: str) -> Result[dict[str, Any]]:
        """Refresh-token grant: obtain a new access/refresh pair."""
        return self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            "Failed to refresh Zenodo access token",
        )

    def _token_request(self, form: dict[str, str], message: str) -> Result[dict[str, Any]]:
        result = self._send("POST", f"{self.config.endpoint}/oauth/token", None, message, data=form)
        if result.success and not (result.data or {}).get("access_token"):
            return Result.fail(
                ServiceError(ErrorKind.PROTOCOL, f"{message}: response has no access_token")
            )
        return result

    # ── Depositions ───────────────────────────────────────────────────

    def list_depositions(self, access_token: str) -> Result[list[dict[str, Any]]]:
        """List the token owner's depositions (also serves as a liveness probe)."""
        return self._send(
            "GET",
            self._api("/deposit/depositions"),
            access_token,
            "Failed to list Zenodo depositions",
        )

    def create_deposition(self, access_token: str) -> Result[dict[str, Any]]:
        """Create an empty draft deposition."""
        return self._send(
            "POST",
            self._api("/deposit/depositions"),
            access_token,
            "Failed to create Zenodo deposition",
            json={},
        )

    def get_deposition(self, deposition_id: int, access_token: str) -> Result[dict[str, Any]]:
        """Fetch a deposition, published or draft.

        The "latest version of a record" endpoint only knows submitted
        records and answers 404 for an unsubmitted draft, in which case the
        draft deposition endpoint is asked instead.
        """
        latest = self._send(
            "GET",
            self._api(f"/records/{deposition_id}/versions/latest"),
            access_token,
            f"Failed to fetch Zenodo record {deposition_id}",
        )
        if latest.success or latest.error.status_code != 404:
            return latest

        logger.debug("Record %s has no published version, fetching draft", deposition_id)
        return self._send(
            "GET",
            self._api(f"/deposit/depositions/{deposition_id}"),
            access_token,
            f"Deposition with ID {deposition_id} not found",
        )

    def update_metadata(
        self, deposition_id: int, access_token: str, metadata: dict[str, Any]
    ) -> Result[dict[str, Any]]:
        """Replace the deposition metadata (PUT, full replace)."""
        return self._send(
            "PUT",
            self._api(f"/deposit/depositions/{deposition_id}"),
            access_token,
            f"Failed to update metadata of deposition {deposition_id}",
            json={"metadata": metadata},
        )

    def delete_file(self, deposition_id: int, access_token: str, filename: str) -> Result[None]:
        """Remove one file from a draft deposition."""
        return self._send(
            "DELETE",
            self._api(f"/records/{deposition_id}/draft/files/{quote(filename, safe='')}"),
            access_token,
            f"Failed to delete file '{filename}' from deposition {deposition_id}",
        )

    def new_version(self, deposition_id: int, access_token: str) -> Result[dict[str, Any]]:
        """Open a new draft version of a submitted deposition."""
        return self._send(
            "POST",
            self._api(f"/records/{deposition_id}/actions/newversion"),
            access_token,
            f"Failed to create a new version of deposition {deposition_id}",
        )

    def upload_file(
        self, bucket_url: str, access_token: str, filename: str, content: bytes
    ) -> Result[dict[str, Any]]:
        """PUT raw bytes as *filename* into the deposition bucket."""
        return self._send(
            "PUT",
            f"{bucket_url.rstrip('/')}/{quote(filename, safe='')}",
            access_token,
            f"Failed to upload '{filename}' to Zenodo",
            content=content,
            headers={"Content-Type": "application/octet-stream"},
        )

    def publish(self, deposition_id: int, access_token: str) -> Result[dict[str, Any]]:
        """Publish a draft. Irreversible on the remote side."""
        return self._send(
            "POST",
            self._api(f"/deposit/depositions/{deposition_id}/actions/publish"),
            access_token,
            f"Failed to publish deposition {deposition_id}",
        )

    # ── Transport ─────────────────────────────────────────────────────

    def _api(self, path: str) -> str:
        return f"{self.config.api_endpoint}{path}"

    def _send(
        self,
        method: str,
        url: str,
        access_token: Optional[str],
        message: str,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> Result:
        """Make one request and fold every outcome into a Result.

        Args:
            method: HTTP method
            url: Absolute URL
            access_token: Bearer token, or None for the OAuth token endpoint
            message: Human-readable description used on failure
            headers: Extra headers
            **kwargs: Passed to ``httpx.Client.request`` (json, data, content)

        Returns:
            ``Result.ok`` with the decoded JSON body (None for empty bodies),
            or ``Result.fail`` with status code and body text captured
        """
        request_headers = dict(headers or {})
        if access_token:
            request_headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = self.client.request(method, url, headers=request_headers, **kwargs)
        except httpx.HTTPError as e:
            error = ServiceError.from_exception(message, e)
            logger.warning("%s %s failed: %s", method, url, error.describe())
            return Result.fail(error)

        if not response.is_success:
            error = ServiceError.from_response(message, response)
            logger.warning("%s %s failed: %s", method, url, error.describe())
            return Result.fail(error)

        if not response.content:
            return Result.ok(None)
        try:
            return Result.ok(response.json())
        except ValueError:
            error = ServiceError(
                ErrorKind.PROTOCOL,
                f"{message}: response is not JSON",
                status_code=response.status_code,
                body=response.text[:500],
            )
            logger.warning("%s %s returned a non-JSON body", method, url)
            return Result.fail(error)
