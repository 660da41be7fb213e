"""Zenodo account routes: OAuth callback and disconnect."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from posterbot.server.helpers import current_user_id
from posterbot.server.state import state

router = APIRouter(prefix="/zenodo")


@router.get("/callback")
def oauth_callback(
    code: Optional[str] = Query(None),
    poster_state: Optional[str] = Query(None, alias="state"),
    user_id: str = Depends(current_user_id),
):
    """Finish the OAuth code grant, then return to the poster's review page.

    The ``state`` parameter carries the poster id the flow started from.
    """
    if not code:
        raise HTTPException(status_code=400, detail="Missing or invalid authorization code")
    if not poster_state:
        raise HTTPException(status_code=400, detail="Missing or invalid state parameter")
    if not state.settings.zenodo.is_configured or not state.settings.zenodo.client_secret:
        raise HTTPException(status_code=500, detail="Zenodo OAuth configuration is missing")

    result = state.token_service.exchange_code(user_id, code)
    if not result.success:
        raise HTTPException(status_code=502, detail="Failed to obtain Zenodo access token")

    return RedirectResponse(url=f"/share/{poster_state}/review", status_code=302)


@router.post("/disconnect")
def disconnect(user_id: str = Depends(current_user_id)):
    state.token_service.disconnect(user_id)
    return {"success": True}
