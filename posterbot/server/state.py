"""Application state: repositories and services wired from ``Settings``."""

import logging
from typing import Optional

import httpx

from posterbot.config import Settings
from posterbot.database.job_repository import JobRepository
from posterbot.database.poster_repository import PosterRepository
from posterbot.database.token_repository import TokenRepository
from posterbot.services.extraction_service import ExtractionWorker
from posterbot.services.job_runner import JobRunner
from posterbot.services.publication import PublicationLocks, PublicationOrchestrator
from posterbot.services.token_service import TokenService
from posterbot.services.zenodo_client import ZenodoClient

logger = logging.getLogger(__name__)


# ============================================================================
# Global State
# ============================================================================


class AppState:
    """Mutable singleton holding all runtime services."""

    settings: Settings
    posters: PosterRepository
    jobs: JobRepository
    tokens: TokenRepository
    zenodo: ZenodoClient
    token_service: TokenService
    extraction: ExtractionWorker
    runner: JobRunner
    publish_runner: JobRunner
    locks: PublicationLocks
    publication: PublicationOrchestrator

    def init(
        self,
        settings: Settings,
        zenodo_transport: Optional[httpx.BaseTransport] = None,
        extraction_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Build every component from *settings*.

        Args:
            settings: Loaded application settings
            zenodo_transport: httpx transport override for the Zenodo API
            extraction_transport: httpx transport override for the extraction API
        """
        self.settings = settings
        self.posters = PosterRepository(settings.db_path)
        self.jobs = JobRepository(settings.db_path)
        self.tokens = TokenRepository(settings.db_path)
        self.zenodo = ZenodoClient(settings.zenodo, transport=zenodo_transport)
        self.token_service = TokenService(self.tokens, self.zenodo, settings.zenodo)
        self.extraction = ExtractionWorker(
            self.jobs, self.posters, settings.extraction, transport=extraction_transport
        )
        self.runner = JobRunner(max_workers=settings.extraction.max_workers)
        self.publish_runner = JobRunner(
            max_workers=settings.zenodo.max_workers, name="posterbot-publish"
        )
        self.locks = PublicationLocks()
        self.publication = PublicationOrchestrator(
            self.zenodo, self.posters, self.token_service, self.locks
        )

    def recover(self) -> int:
        """Fail jobs a previous process left unfinished."""
        failed = self.jobs.fail_interrupted()
        if failed:
            logger.warning("Marked %d interrupted extraction job(s) as failed", failed)
        return failed

    def close(self) -> None:
        self.runner.shutdown()
        self.publish_runner.shutdown()
        self.zenodo.close()


state = AppState()
