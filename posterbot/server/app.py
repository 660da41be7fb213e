"""FastAPI application for PosterBot."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from posterbot import __version__
from posterbot.config import Settings
from posterbot.logging_setup import configure_logging
from posterbot.server.routers import common, posters, release, zenodo
from posterbot.server.state import state

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    zenodo_transport: Optional[httpx.BaseTransport] = None,
    extraction_transport: Optional[httpx.BaseTransport] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use (loaded from ``.metadata/`` if omitted)
        zenodo_transport: httpx transport override for the Zenodo API
        extraction_transport: httpx transport override for the extraction API
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize services on startup, drain workers on shutdown."""
        loaded = settings or Settings.load()
        configure_logging(loaded.log_level)
        state.init(loaded, zenodo_transport=zenodo_transport, extraction_transport=extraction_transport)
        state.recover()
        logger.info("PosterBot %s started (db: %s)", __version__, loaded.db_path)
        yield
        state.close()

    app = FastAPI(title="PosterBot", version=__version__, lifespan=lifespan)
    app.include_router(common.router)
    app.include_router(posters.router)
    app.include_router(zenodo.router)
    app.include_router(release.router)
    return app


app = create_app()
