"""Release routes: Zenodo connection status and streamed publication."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from posterbot.server.helpers import current_user_id
from posterbot.server.state import state
from posterbot.services.progress import ProgressChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/release")

MSG_NOT_CONFIGURED = "Zenodo integration is not configured"
MSG_BAD_TOKEN = "Invalid Zenodo token, please sign in again"


class PublishRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    poster_id: int = Field(alias="posterId")
    mode: Literal["new", "existing"] = "new"
    existing_deposition_id: Optional[int] = Field(None, alias="existingDepositionId")


@router.get("/zenodo")
def zenodo_status(
    poster_id: str = Query(..., alias="posterId"),
    user_id: str = Depends(current_user_id),
):
    """OAuth login URL plus the caller's token status and depositions."""
    zenodo = state.settings.zenodo
    if not zenodo.is_configured:
        logger.warning(
            "Zenodo not configured (client_id=%s, endpoint=%s, api_endpoint=%s)",
            bool(zenodo.client_id),
            bool(zenodo.endpoint),
            bool(zenodo.api_endpoint),
        )
        return {
            "zenodoLoginURL": None,
            "zenodoToken": False,
            "message": MSG_NOT_CONFIGURED,
            "existingDepositions": [],
        }

    validation = state.token_service.validate(user_id)
    return {"zenodoLoginURL": state.token_service.authorize_url(poster_id), **validation.to_dict()}


@router.post("/zenodo")
def publish_to_zenodo(
    payload: PublishRequest,
    request: Request,
    user_id: str = Depends(current_user_id),
):
    """Start a publication and stream its progress as server-sent events.

    The publication runs on the publication runner; if the client disconnects the
    stream stops but the publication continues.
    """
    if payload.mode == "existing" and payload.existing_deposition_id is None:
        raise HTTPException(
            status_code=422, detail="Existing deposition ID is required for 'existing' mode"
        )

    if not state.token_service.validate(user_id).valid:
        raise HTTPException(status_code=400, detail=MSG_BAD_TOKEN)

    if state.posters.find_by_id(payload.poster_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Poster not found")

    if not state.locks.acquire(payload.poster_id):
        raise HTTPException(
            status_code=409, detail="A publication for this poster is already in progress"
        )

    channel = ProgressChannel()
    try:
        state.publish_runner.submit(
            state.publication.run_to_channel,
            channel,
            payload.poster_id,
            user_id,
            payload.mode,
            payload.existing_deposition_id,
        )
    except RuntimeError:
        state.locks.release(payload.poster_id)
        raise

    logger.info("Publication of poster %s started (mode=%s)", payload.poster_id, payload.mode)
    return StreamingResponse(
        channel.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
