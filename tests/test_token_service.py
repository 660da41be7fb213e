"""Tests for the Zenodo token lifecycle."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from posterbot.models.token import ZenodoToken
from posterbot.services.result import ErrorKind
from posterbot.services.token_service import MSG_INVALID, MSG_VALID, TokenService
from posterbot.services.zenodo_client import ZenodoClient


class FakeZenodoServer:
    """MockTransport handler with switchable responses per endpoint."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.list_status = 200
        self.depositions = [
            {
                "id": 11,
                "conceptrecid": "10",
                "state": "done",
                "submitted": True,
                "metadata": {"title": "Old poster"},
                "files": [],
            }
        ]
        self.token_status = 200
        self.grant = {"access_token": "access-2", "refresh_token": "refresh-2", "expires_in": 3600}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/token":
            return httpx.Response(self.token_status, json=self.grant)
        if request.url.path == "/api/deposit/depositions":
            if self.list_status != 200:
                return httpx.Response(self.list_status, json={"message": "unauthorized"})
            return httpx.Response(200, json=self.depositions)
        return httpx.Response(404)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def server():
    return FakeZenodoServer()


@pytest.fixture
def service(token_repo, zenodo_config, server):
    client = ZenodoClient(zenodo_config, transport=httpx.MockTransport(server))
    return TokenService(token_repo, client, zenodo_config)


class TestValidate:
    """Tests for TokenService.validate."""

    def test_no_token_makes_no_requests(self, service, server):
        result = service.validate("alice")

        assert result.to_dict() == {
            "zenodoToken": False,
            "message": "No Zenodo token found",
            "existingDepositions": [],
        }
        assert server.requests == []

    def test_rejected_token_is_deleted(self, service, server, stored_token, token_repo):
        server.list_status = 401

        result = service.validate("alice")

        assert not result.valid
        assert result.message == MSG_INVALID
        assert token_repo.get("alice") is None
        assert "/oauth/token" not in server.paths

    def test_valid_token_is_refreshed(self, service, server, stored_token, token_repo):
        result = service.validate("alice")

        assert result.valid
        assert result.message == MSG_VALID
        assert result.existing_depositions == [
            {
                "id": 11,
                "title": "Old poster",
                "state": "done",
                "submitted": True,
                "conceptrecid": "10",
            }
        ]
        assert server.paths == ["/api/deposit/depositions", "/oauth/token"]
        stored = token_repo.get("alice")
        assert stored.access_token == "access-2"
        assert stored.refresh_token == "refresh-2"

    def test_probe_uses_stored_access_token(self, service, server, stored_token):
        service.validate("alice")

        assert server.requests[0].headers["Authorization"] == "Bearer access-1"

    def test_failed_refresh_is_not_fatal(self, service, server, stored_token, token_repo):
        """The probed token stays valid when the refresh grant fails."""
        server.token_status = 400

        result = service.validate("alice")

        assert result.valid
        assert token_repo.get("alice").access_token == "access-1"

    def test_expired_token_still_probed(self, service, server, token_repo):
        token_repo.upsert(
            ZenodoToken("alice", "access-1", "refresh-1", expires_at="2000-01-01T00:00:00+00:00")
        )

        assert service.validate("alice").valid


class TestRefresh:
    def test_keeps_old_refresh_token_when_grant_omits_it(self, service, server, stored_token, token_repo):
        server.grant = {"access_token": "access-3"}

        assert service.refresh(stored_token)

        stored = token_repo.get("alice")
        assert stored.access_token == "access-3"
        assert stored.refresh_token == "refresh-1"
        assert stored.expires_at is None

    def test_sends_refresh_grant(self, service, server, stored_token):
        service.refresh(stored_token)

        form = parse_qs(server.requests[0].content.decode())
        assert form["grant_type"] == ["refresh_token"]
        assert form["refresh_token"] == ["refresh-1"]


class TestConnect:
    def test_authorize_url(self, service):
        url = urlparse(service.authorize_url("42"))
        params = parse_qs(url.query)

        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://zenodo.test/oauth/authorize"
        assert params["response_type"] == ["code"]
        assert params["client_id"] == ["client-id"]
        assert params["state"] == ["42"]
        assert params["redirect_uri"] == ["http://localhost:8000/zenodo/callback"]

    def test_exchange_code_stores_token(self, service, token_repo):
        result = service.exchange_code("alice", "the-code")

        assert result.success
        assert token_repo.get("alice").access_token == "access-2"
        assert token_repo.get("alice").expires_at is not None

    def test_exchange_code_replaces_existing(self, service, token_repo, stored_token):
        service.exchange_code("alice", "the-code")

        assert token_repo.get("alice").refresh_token == "refresh-2"

    def test_exchange_failure(self, service, server, token_repo):
        server.token_status = 400

        result = service.exchange_code("alice", "bad-code")

        assert not result.success
        assert result.error.kind == ErrorKind.AUTHORIZATION
        assert result.error.status_code == 400
        assert token_repo.get("alice") is None


class TestDisconnect:
    def test_removes_token(self, service, stored_token, token_repo):
        service.disconnect("alice")

        assert service.get_token("alice") is None

    def test_idempotent(self, service):
        service.disconnect("nobody")
        service.disconnect("nobody")

        assert service.get_token("nobody") is None
