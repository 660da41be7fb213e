"""Publish a poster to Zenodo as an explicit five-step state machine.

::

    START → DEPOSITION_READY → METADATA_LOADED → METADATA_PUSHED
          → FILES_UPLOADED → PUBLISHED
    (any) → ERROR

Each step is a plain function taking the current :class:`PublicationContext`
and returning ``Result`` with the next context, so steps can be tested one
at a time against a fake client.  :class:`PublicationOrchestrator` runs them
in order, reports progress around each one and stops at the first failure.
"""

import json
import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Literal, Optional

from posterbot.database.poster_repository import PosterRepository
from posterbot.models.poster import PLACEHOLDER_DESCRIPTION, Poster, PosterMetadata
from posterbot.services.metadata_mapping import UNKNOWN_CREATOR
from posterbot.services.poster_json import POSTER_JSON_FILENAME, build_poster_json
from posterbot.services.progress import ProgressChannel, ProgressEvent
from posterbot.services.result import ErrorKind, Result, ServiceError
from posterbot.services.token_service import TokenService
from posterbot.services.zenodo_client import ZenodoClient

logger = logging.getLogger(__name__)

PublicationMode = Literal["new", "existing"]
Emit = Callable[[ProgressEvent], None]

UPLOAD_TYPE = "poster"
MSG_COMPLETE = "Successfully published to Zenodo!"
MSG_UNEXPECTED = "An unexpected error occurred during publication"


class PublicationState(str, Enum):
    START = "start"
    DEPOSITION_READY = "deposition_ready"
    METADATA_LOADED = "metadata_loaded"
    METADATA_PUSHED = "metadata_pushed"
    FILES_UPLOADED = "files_uploaded"
    PUBLISHED = "published"
    ERROR = "error"


class PublicationStep(str, Enum):
    """Progress step names, one per non-terminal transition."""

    DEPOSITION = "deposition"
    LOAD_METADATA = "load_metadata"
    PUSH_METADATA = "push_metadata"
    UPLOAD_FILES = "upload_files"
    PUBLISH = "publish"


@dataclass(frozen=True)
class PublicationContext:
    """Everything a publication attempt has learned so far."""

    poster_id: int
    user_id: str
    access_token: str
    mode: PublicationMode = "new"
    existing_deposition_id: Optional[int] = None
    state: PublicationState = PublicationState.START

    # DEPOSITION_READY
    deposition_id: Optional[int] = None
    bucket_url: Optional[str] = None
    doi: Optional[str] = None
    # METADATA_LOADED
    poster: Optional[Poster] = None
    # METADATA_PUSHED
    remote_metadata: dict[str, Any] = field(default_factory=dict)
    # PUBLISHED
    published: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Step 1: acquire an empty working draft
# ---------------------------------------------------------------------------

def _file_names(deposition: dict[str, Any]) -> list[str]:
    names = []
    for entry in deposition.get("files") or []:
        name = entry.get("filename") or entry.get("key")
        if name:
            names.append(name)
    return names


def _delete_files(
    client: ZenodoClient, deposition_id: int, access_token: str, filenames: list[str]
) -> Result[None]:
    for filename in filenames:
        deleted = client.delete_file(deposition_id, access_token, filename)
        if not deleted.success:
            return deleted
    return Result.ok()


def _working_deposition(ctx: PublicationContext, client: ZenodoClient) -> Result[dict[str, Any]]:
    if ctx.mode == "new":
        return client.create_deposition(ctx.access_token)

    if ctx.existing_deposition_id is None:
        return Result.fail(
            ServiceError(
                ErrorKind.VALIDATION,
                "Existing deposition ID is required for 'existing' mode",
            )
        )

    fetched = client.get_deposition(ctx.existing_deposition_id, ctx.access_token)
    if not fetched.success:
        return fetched
    deposition = fetched.data or {}

    # Unsubmitted draft: reuse it, minus whatever a previous attempt left behind.
    if deposition.get("submitted") is False:
        cleared = _delete_files(
            client, ctx.existing_deposition_id, ctx.access_token, _file_names(deposition)
        )
        if not cleared.success:
            return cleared
        return Result.ok(deposition)

    # Submitted records are immutable; work on a fresh version instead.
    versioned = client.new_version(ctx.existing_deposition_id, ctx.access_token)
    if not versioned.success:
        return versioned
    draft = versioned.data or {}
    cleared = _delete_files(client, draft.get("id"), ctx.access_token, _file_names(draft))
    if not cleared.success:
        return cleared
    return Result.ok(draft)


def acquire_deposition(ctx: PublicationContext, client: ZenodoClient) -> Result[PublicationContext]:
    """START → DEPOSITION_READY.

    Extracts the record id, bucket URL and pre-reserved DOI, all of which
    are required to continue.
    """
    result = _working_deposition(ctx, client)
    if not result.success:
        return result

    deposition = result.data or {}
    record_id = deposition.get("record_id")
    bucket_url = (deposition.get("links") or {}).get("bucket")
    doi = ((deposition.get("metadata") or {}).get("prereserve_doi") or {}).get("doi")

    missing = [
        name
        for name, value in (("record_id", record_id), ("links.bucket", bucket_url), ("prereserve_doi", doi))
        if not value
    ]
    if missing:
        return Result.fail(
            ServiceError(
                ErrorKind.PROTOCOL,
                f"Zenodo deposition is missing required fields: {', '.join(missing)}",
                body=json.dumps(deposition)[:500],
            )
        )

    return Result.ok(
        replace(
            ctx,
            state=PublicationState.DEPOSITION_READY,
            deposition_id=int(record_id),
            bucket_url=bucket_url,
            doi=doi,
        )
    )


# ---------------------------------------------------------------------------
# Step 2: load the poster
# ---------------------------------------------------------------------------

def load_metadata(ctx: PublicationContext, posters: PosterRepository) -> Result[PublicationContext]:
    """DEPOSITION_READY → METADATA_LOADED."""
    poster = posters.find_by_id(ctx.poster_id, user_id=ctx.user_id)
    if poster is None:
        return Result.fail(ServiceError(ErrorKind.NOT_FOUND, f"Poster {ctx.poster_id} not found"))
    if poster.metadata is None:
        poster.metadata = PosterMetadata(poster_id=poster.id)
    return Result.ok(replace(ctx, state=PublicationState.METADATA_LOADED, poster=poster))


# ---------------------------------------------------------------------------
# Step 3: push deposition metadata
# ---------------------------------------------------------------------------

def zenodo_creators(creators: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Reduce stored creators to Zenodo's name + single affiliation form."""
    reduced = []
    for creator in creators:
        entry = {"name": creator.get("name") or UNKNOWN_CREATOR}
        affiliations = creator.get("affiliation") or []
        first = affiliations[0] if affiliations else None
        affiliation = first.get("name") if isinstance(first, dict) else first
        if affiliation:
            entry["affiliation"] = affiliation
        reduced.append(entry)
    return reduced or [{"name": UNKNOWN_CREATOR}]


def build_deposition_metadata(poster: Poster, doi: str) -> dict[str, Any]:
    """Zenodo deposition metadata for *poster* under the reserved *doi*."""
    return {
        "title": poster.title,
        "upload_type": UPLOAD_TYPE,
        "publication_type": UPLOAD_TYPE,
        "creators": zenodo_creators(poster.metadata.creators if poster.metadata else []),
        "description": poster.description or PLACEHOLDER_DESCRIPTION,
        "prereserve_doi": {"doi": doi},
    }


def push_metadata(ctx: PublicationContext, client: ZenodoClient) -> Result[PublicationContext]:
    """METADATA_LOADED → METADATA_PUSHED.

    Zenodo sometimes drops ``upload_type`` on the first write; when the
    echo lacks it the update is sent again with the tag merged in.
    """
    metadata = build_deposition_metadata(ctx.poster, ctx.doi)
    updated = client.update_metadata(ctx.deposition_id, ctx.access_token, metadata)
    if not updated.success:
        return updated

    echo = (updated.data or {}).get("metadata") or {}
    if echo.get("upload_type") != UPLOAD_TYPE:
        logger.info("Deposition %s lost upload_type, re-sending metadata", ctx.deposition_id)
        corrected = {**metadata, **echo, "upload_type": UPLOAD_TYPE}
        updated = client.update_metadata(ctx.deposition_id, ctx.access_token, corrected)
        if not updated.success:
            return updated
        echo = (updated.data or {}).get("metadata") or corrected

    return Result.ok(replace(ctx, state=PublicationState.METADATA_PUSHED, remote_metadata=echo))


# ---------------------------------------------------------------------------
# Step 4: upload files
# ---------------------------------------------------------------------------

def upload_files(ctx: PublicationContext, client: ZenodoClient) -> Result[PublicationContext]:
    """METADATA_PUSHED → FILES_UPLOADED.

    Only ``poster.json`` is uploaded; the source document is not archived yet.
    """
    document = build_poster_json(ctx.poster.metadata)
    content = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
    uploaded = client.upload_file(ctx.bucket_url, ctx.access_token, POSTER_JSON_FILENAME, content)
    if not uploaded.success:
        return uploaded
    return Result.ok(replace(ctx, state=PublicationState.FILES_UPLOADED))


# ---------------------------------------------------------------------------
# Step 5: publish
# ---------------------------------------------------------------------------

def publish_deposition(ctx: PublicationContext, client: ZenodoClient) -> Result[PublicationContext]:
    """FILES_UPLOADED → PUBLISHED."""
    published = client.publish(ctx.deposition_id, ctx.access_token)
    if not published.success:
        return published
    return Result.ok(replace(ctx, state=PublicationState.PUBLISHED, published=published.data or {}))


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class PublicationLocks:
    """Per-poster guard against two publications running at once."""

    def __init__(self) -> None:
        self._active: set[int] = set()
        self._lock = threading.Lock()

    def acquire(self, poster_id: int) -> bool:
        """Claim *poster_id*; False if a publication already holds it."""
        with self._lock:
            if poster_id in self._active:
                return False
            self._active.add(poster_id)
            return True

    def release(self, poster_id: int) -> None:
        with self._lock:
            self._active.discard(poster_id)


class PublicationOrchestrator:
    """Run the publication steps in order for one poster."""

    def __init__(
        self,
        client: ZenodoClient,
        posters: PosterRepository,
        tokens: TokenService,
        locks: Optional[PublicationLocks] = None,
    ):
        """Initialize orchestrator.

        Args:
            client: Zenodo REST client
            posters: Poster storage (read for metadata, written on success)
            tokens: Source of the caller's access token
            locks: Shared per-poster guard
        """
        self.client = client
        self.posters = posters
        self.tokens = tokens
        self.locks = locks or PublicationLocks()

        self._steps: list[tuple[PublicationStep, str, str, Callable[[PublicationContext], Result]]] = [
            (
                PublicationStep.DEPOSITION,
                "Preparing Zenodo deposition",
                "Deposition ready",
                lambda ctx: acquire_deposition(ctx, self.client),
            ),
            (
                PublicationStep.LOAD_METADATA,
                "Loading poster metadata",
                "Poster metadata loaded",
                lambda ctx: load_metadata(ctx, self.posters),
            ),
            (
                PublicationStep.PUSH_METADATA,
                "Updating deposition metadata",
                "Deposition metadata updated",
                lambda ctx: push_metadata(ctx, self.client),
            ),
            (
                PublicationStep.UPLOAD_FILES,
                "Uploading files",
                "Files uploaded",
                lambda ctx: upload_files(ctx, self.client),
            ),
            (
                PublicationStep.PUBLISH,
                "Publishing deposition",
                "Deposition published",
                lambda ctx: publish_deposition(ctx, self.client),
            ),
        ]

    def run(
        self,
        poster_id: int,
        user_id: str,
        mode: PublicationMode = "new",
        existing_deposition_id: Optional[int] = None,
        emit: Optional[Emit] = None,
    ) -> Result[dict[str, Any]]:
        """Publish *poster_id* on behalf of *user_id*.

        Emits an ``in_progress`` and a ``completed`` event around every
        step.  The first failing step emits one ``error`` event and ends
        the run; later steps are not attempted.

        Returns:
            ``Result.ok`` with the published deposition, or the first failure
        """
        emit = emit or (lambda event: None)

        token = self.tokens.get_token(user_id)
        if token is None:
            error = ServiceError(ErrorKind.AUTHORIZATION, "Zenodo token not found for user")
            emit(ProgressEvent(PublicationStep.DEPOSITION.value, "error", error.message))
            return Result.fail(error)

        ctx = PublicationContext(
            poster_id=poster_id,
            user_id=user_id,
            access_token=token.access_token,
            mode=mode,
            existing_deposition_id=existing_deposition_id,
        )

        for step, start_message, done_message, transition in self._steps:
            emit(ProgressEvent(step.value, "in_progress", start_message))
            result = transition(ctx)
            if not result.success:
                logger.error(
                    "Publication of poster %s failed at %s: %s",
                    poster_id,
                    step.value,
                    result.error.describe(),
                )
                emit(ProgressEvent(step.value, "error", result.error.describe()))
                return Result.fail(result.error)
            ctx = result.data
            emit(ProgressEvent(step.value, "completed", done_message))

        doi = (ctx.published or {}).get("doi") or ctx.doi
        try:
            self.posters.mark_published(poster_id, doi=doi)
        except Exception:
            # The record is already public on Zenodo; report success regardless.
            logger.exception(
                "Poster %s published as %s but the local status update failed", poster_id, doi
            )
        else:
            logger.info(
                "Poster %s published to Zenodo deposition %s (%s)", poster_id, ctx.deposition_id, doi
            )
        return Result.ok(ctx.published)

    def run_to_channel(
        self,
        channel: ProgressChannel,
        poster_id: int,
        user_id: str,
        mode: PublicationMode = "new",
        existing_deposition_id: Optional[int] = None,
    ) -> Result[dict[str, Any]]:
        """Run, stream progress into *channel*, and release the poster lock.

        The caller must have acquired ``self.locks`` for *poster_id*.
        """
        try:
            result = self.run(poster_id, user_id, mode, existing_deposition_id, emit=channel.send)
            if result.success:
                channel.send(ProgressEvent("complete", "completed", MSG_COMPLETE, data=result.data))
            return result
        except Exception:
            logger.exception("Unexpected error publishing poster %s", poster_id)
            channel.send(ProgressEvent("error", "error", MSG_UNEXPECTED))
            raise
        finally:
            self.locks.release(poster_id)
            channel.finish()
