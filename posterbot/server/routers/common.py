"""Common routes: health check and the public discover listing."""

from fastapi import APIRouter, Query

from posterbot import __version__
from posterbot.server.helpers import poster_to_dict
from posterbot.server.state import state

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


@router.get("/discover")
async def discover(limit: int = Query(100, ge=1, le=500)):
    """Published posters, most recently published first."""
    posters = state.posters.find_published(limit=limit)
    return {
        "posters": [poster_to_dict(p) for p in posters],
        "total": state.posters.count_published(),
    }
