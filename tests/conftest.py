"""Pytest fixtures for PosterBot tests."""

from typing import Any, Optional

import pytest

from posterbot.config import ExtractionConfig, Settings, ZenodoConfig
from posterbot.database.job_repository import JobRepository
from posterbot.database.poster_repository import PosterRepository
from posterbot.database.token_repository import TokenRepository
from posterbot.models.poster import Poster, PosterMetadata, conference_columns
from posterbot.models.token import ZenodoToken
from posterbot.services.result import ErrorKind, Result, ServiceError


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "posters.db"


@pytest.fixture
def poster_repo(db_path):
    return PosterRepository(db_path)


@pytest.fixture
def job_repo(db_path):
    return JobRepository(db_path)


@pytest.fixture
def token_repo(db_path):
    return TokenRepository(db_path)


@pytest.fixture
def zenodo_config():
    return ZenodoConfig(
        endpoint="https://zenodo.test",
        api_endpoint="https://zenodo.test/api",
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/zenodo/callback",
        timeout=5,
    )


@pytest.fixture
def extraction_config():
    return ExtractionConfig(api_url="http://extract.test", timeout=5, max_workers=2)


@pytest.fixture
def settings(db_path, tmp_path, zenodo_config, extraction_config):
    return Settings(
        db_path=db_path,
        metadata_dir=tmp_path / ".metadata",
        log_level="DEBUG",
        zenodo=zenodo_config,
        extraction=extraction_config,
    )


@pytest.fixture
def stored_token(token_repo):
    token = ZenodoToken(
        user_id="alice",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at="2099-01-01T00:00:00+00:00",
    )
    token_repo.upsert(token)
    return token


@pytest.fixture
def sample_metadata():
    """Stored metadata for a conference poster."""
    return PosterMetadata(
        creators=[
            {
                "name": "Curie, Marie",
                "nameType": "Personal",
                "affiliation": [{"name": "Sorbonne"}],
            },
            {"name": "Unknown Creator"},
        ],
        titles=[{"title": "Radioactivity in Posters"}],
        descriptions=[{"description": "A poster about decay.", "descriptionType": "Abstract"}],
        image_caption=[{"caption1": "Figure 1"}],
        poster_content=[{"sectionTitle": "Intro", "sectionContent": "Hello"}],
        table_caption=[],
        conference=conference_columns(
            {"conferenceName": "PosterCon", "conferenceLocation": "", "conferenceAcronym": "PC"}
        ),
        domain="Physics",
        doi="10.5281/zenodo.1234/v2",
        publisher=[{"name": "Zenodo"}],
        publication_year=2024,
        types=[{"resourceType": "Poster", "resourceTypeGeneral": "Text"}],
        sizes=["1 page"],
        version="",
        ethics_approval=["IRB-42"],
    )


@pytest.fixture
def make_poster(poster_repo, sample_metadata):
    """Factory that stores a draft poster with metadata."""

    def _make(user_id: str = "alice", metadata: Optional[PosterMetadata] = None) -> Poster:
        poster = Poster(
            user_id=user_id,
            title="Radioactivity in Posters",
            description="A poster about decay.",
        )
        return poster_repo.create_with_metadata(poster, metadata or sample_metadata)

    return _make


@pytest.fixture
def extraction_payload():
    """Extraction API response in the current format."""
    return {
        "doi": "10.1234/abc",
        "titles": [{"title": "Deep Posters", "lang": "en"}],
        "descriptions": [{"description": "We study posters.", "descriptionType": "Abstract"}],
        "creators": [
            {
                "name": "Doe, Jane",
                "nameType": "Personal",
                "nameIdentifiers": [
                    {"nameIdentifier": "0000-0001-2345-6789", "nameIdentifierScheme": "ORCID"}
                ],
                "affiliation": ["Example University"],
            },
            {"givenName": "No", "familyName": "Name"},
        ],
        "publisher": {"name": "Zenodo"},
        "publicationYear": 2024,
        "types": {"resourceType": "Poster", "resourceTypeGeneral": "Text"},
        "imageCaptions": [{"caption1": "Current caption"}],
        "imageCaption": [{"caption1": "Legacy caption"}],
        "tableCaption": [{"caption1": "Legacy table"}],
        "content": {"sections": [{"sectionTitle": "Methods", "sectionContent": "..."}]},
        "researchField": "Computer Science",
        "domain": "Legacy Domain",
        "ethicsApprovals": ["Ethics board 7"],
        "conference": {"conferenceName": "PosterConf 2024", "conferenceAcronym": "PC24"},
        "somethingUnknown": {"ignored": True},
    }


# ============================================================================
# Fake Zenodo client
# ============================================================================


def make_deposition(
    record_id: int = 101,
    submitted: bool = False,
    files: Optional[list[dict[str, Any]]] = None,
    doi: Optional[str] = "10.5072/zenodo.101",
) -> dict[str, Any]:
    """Deposition resource shaped like the Zenodo API response."""
    metadata: dict[str, Any] = {}
    if doi:
        metadata["prereserve_doi"] = {"doi": doi, "recid": record_id}
    return {
        "id": record_id,
        "record_id": record_id,
        "conceptrecid": str(record_id - 1),
        "state": "done" if submitted else "unsubmitted",
        "submitted": submitted,
        "files": files or [],
        "links": {"bucket": f"https://zenodo.test/api/files/bucket-{record_id}"},
        "metadata": metadata,
    }


class FakeZenodoClient:
    """In-memory stand-in for ``ZenodoClient`` that records every call."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.failures: dict[str, ServiceError] = {}
        self.created = make_deposition(101)
        self.fetched = make_deposition(202, submitted=True)
        self.new_draft = make_deposition(303)
        self.drop_upload_type_once = False
        self.uploads: dict[str, bytes] = {}

    @property
    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def fail(self, name: str, status_code: int = 500, body: str = "boom") -> None:
        self.failures[name] = ServiceError(
            ErrorKind.UPSTREAM, f"{name} failed", status_code=status_code, body=body
        )

    def _call(self, name: str, *args: Any) -> Optional[Result]:
        self.calls.append((name, *args))
        if name in self.failures:
            return Result.fail(self.failures[name])
        return None

    def create_deposition(self, access_token):
        return self._call("create_deposition", access_token) or Result.ok(self.created)

    def get_deposition(self, deposition_id, access_token):
        return self._call("get_deposition", deposition_id) or Result.ok(self.fetched)

    def new_version(self, deposition_id, access_token):
        return self._call("new_version", deposition_id) or Result.ok(self.new_draft)

    def delete_file(self, deposition_id, access_token, filename):
        return self._call("delete_file", deposition_id, filename) or Result.ok()

    def update_metadata(self, deposition_id, access_token, metadata):
        failed = self._call("update_metadata", deposition_id, metadata)
        if failed:
            return failed
        echo = dict(metadata)
        if self.drop_upload_type_once:
            self.drop_upload_type_once = False
            echo.pop("upload_type", None)
        return Result.ok({"id": deposition_id, "metadata": echo})

    def upload_file(self, bucket_url, access_token, filename, content):
        failed = self._call("upload_file", bucket_url, filename)
        if failed:
            return failed
        self.uploads[filename] = content
        return Result.ok({"key": filename, "size": len(content)})

    def publish(self, deposition_id, access_token):
        return self._call("publish", deposition_id) or Result.ok(
            {"id": deposition_id, "doi": f"10.5072/zenodo.{deposition_id}", "submitted": True}
        )


@pytest.fixture
def fake_zenodo():
    return FakeZenodoClient()
