"""Extraction worker: uploaded file → extraction API → Poster + metadata.

Runs detached from the upload request (see ``JobRunner``).  The job row is
the only channel back to the uploader, so every outcome, including
transport errors and malformed responses, ends in a terminal job status.
"""

import logging
import sqlite3
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from posterbot.config import ExtractionConfig
from posterbot.database.job_repository import JobRepository
from posterbot.database.poster_repository import PosterRepository
from posterbot.models.extraction import ExtractionResult
from posterbot.models.job import InvalidJobTransitionError
from posterbot.models.poster import Poster
from posterbot.services.metadata_mapping import map_to_db_fields
from posterbot.services.result import ErrorKind, Result, ServiceError, truncate

logger = logging.getLogger(__name__)

# Job error messages are shown to end users; keep them short.
MAX_ERROR_CHARS = 500


def poster_image_url(job_id: str) -> str:
    """Placeholder preview image, stable per job."""
    return f"https://picsum.photos/seed/{job_id}/800/600"


class ExtractionWorker:
    """Process one extraction job end to end."""

    def __init__(
        self,
        jobs: JobRepository,
        posters: PosterRepository,
        config: ExtractionConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the worker.

        Args:
            jobs: Job storage; the worker is the only writer of job status
            posters: Poster storage
            config: Extraction API URL and timeout
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.jobs = jobs
        self.posters = posters
        self.config = config
        self._transport = transport

    def run(
        self,
        job_id: str,
        user_id: str,
        file_bytes: bytes,
        file_name: str,
        content_type: Optional[str] = None,
    ) -> Result[int]:
        """Extract, validate, map and persist; record the outcome on the job.

        Returns:
            ``Result.ok(poster_id)`` or the failure that was written to the job
        """
        try:
            self.jobs.transition(job_id, "processing")
        except InvalidJobTransitionError as e:
            logger.warning("Job %s not started: %s", job_id, e)
            return Result.fail(ServiceError(ErrorKind.VALIDATION, str(e)))

        logger.info("Job %s: extracting %s (%d bytes)", job_id, file_name, len(file_bytes))

        response = self._call_extraction_api(file_bytes, file_name, content_type)
        if not response.success:
            return self._fail(job_id, response.error)

        validated = self._validate(job_id, response.data)
        if not validated.success:
            return self._fail(job_id, validated.error)

        mapped = map_to_db_fields(validated.data)
        poster = Poster(
            user_id=user_id,
            title=mapped.title,
            description=mapped.description,
            status="draft",
            image_url=poster_image_url(job_id),
        )
        try:
            poster = self.posters.create_with_metadata(poster, mapped.metadata)
            self.jobs.transition(job_id, "completed", poster_id=poster.id)
        except sqlite3.Error as e:
            logger.exception("Job %s: could not store poster", job_id)
            return self._fail(job_id, ServiceError(ErrorKind.UPSTREAM, f"Failed to save poster: {e}"))
        except Exception as e:
            logger.exception("Job %s: unexpected error while storing poster", job_id)
            return self._fail(job_id, ServiceError(ErrorKind.UPSTREAM, f"Failed to save poster: {e}"))

        logger.info("Job %s completed: poster %s", job_id, poster.id)
        return Result.ok(poster.id)

    def _call_extraction_api(
        self, file_bytes: bytes, file_name: str, content_type: Optional[str]
    ) -> Result[Any]:
        url = f"{self.config.api_url}/extract"
        files = {"file": (file_name, file_bytes, content_type or "application/octet-stream")}
        try:
            with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
                response = client.post(url, files=files)
        except httpx.TimeoutException:
            return Result.fail(
                ServiceError(
                    ErrorKind.TIMEOUT,
                    f"Extraction timed out after {self.config.timeout:.0f} seconds",
                )
            )
        except httpx.HTTPError as e:
            return Result.fail(ServiceError.from_exception("Could not reach extraction API", e))

        if not response.is_success:
            return Result.fail(
                ServiceError(
                    ErrorKind.UPSTREAM,
                    f"Extraction API returned {response.status_code}: {response.text}",
                    status_code=response.status_code,
                    body=truncate(response.text),
                )
            )

        try:
            return Result.ok(response.json())
        except ValueError:
            return Result.fail(
                ServiceError(
                    ErrorKind.PROTOCOL,
                    "Extraction API returned a non-JSON body",
                    status_code=response.status_code,
                    body=truncate(response.text),
                )
            )

    @staticmethod
    def _validate(job_id: str, raw: Any) -> Result[ExtractionResult]:
        try:
            return Result.ok(ExtractionResult.model_validate(raw))
        except ValidationError as e:
            logger.warning("Job %s: extraction response rejected: %s", job_id, e.errors())
            return Result.fail(
                ServiceError(ErrorKind.VALIDATION, "Invalid data received from extraction API")
            )

    def _fail(self, job_id: str, error: ServiceError) -> Result[int]:
        logger.error("Job %s failed: %s", job_id, error.describe())
        try:
            self.jobs.transition(job_id, "failed", error=truncate(error.message, MAX_ERROR_CHARS))
        except InvalidJobTransitionError as e:
            # Already terminal (e.g. marked interrupted by recovery); leave it.
            logger.warning("Job %s not marked failed: %s", job_id, e)
        return Result.fail(error)
