"""Service layer."""

from posterbot.services.extraction_service import ExtractionWorker
from posterbot.services.job_runner import JobRunner
from posterbot.services.poster_json import build_poster_json
from posterbot.services.publication import PublicationLocks, PublicationOrchestrator
from posterbot.services.result import ErrorKind, Result, ServiceError
from posterbot.services.token_service import TokenService
from posterbot.services.zenodo_client import ZenodoClient

__all__ = [
    "ErrorKind",
    "ExtractionWorker",
    "JobRunner",
    "PublicationLocks",
    "PublicationOrchestrator",
    "Result",
    "ServiceError",
    "TokenService",
    "ZenodoClient",
    "build_poster_json",
]
