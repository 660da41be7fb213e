"""Poster routes: upload (extraction job), job polling, view, edit, download."""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from posterbot.models.forms import PosterForm
from posterbot.models.job import JobAccessDeniedError, JobNotFoundError
from posterbot.server.helpers import current_user_id, poster_to_dict
from posterbot.server.state import state
from posterbot.services.metadata_mapping import form_to_db_fields
from posterbot.services.poster_json import build_poster_json

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Upload + Job Polling
# ============================================================================


@router.post("/poster", status_code=202)
async def upload_poster(
    file: Optional[UploadFile] = File(None),
    user_id: str = Depends(current_user_id),
):
    """Accept an upload and start extraction in the background.

    Returns the job id immediately; poll ``/poster/job/{job_id}``.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    job = state.jobs.create(user_id)
    state.runner.submit(
        state.extraction.run, job.id, user_id, content, file.filename, file.content_type
    )
    logger.info("Job %s queued for user %s (%s)", job.id, user_id, file.filename)
    return {"jobId": job.id, "status": job.status}


@router.get("/poster/job/{job_id}")
async def get_job(job_id: str, user_id: str = Depends(current_user_id)):
    """Job status for polling clients."""
    try:
        job = state.jobs.get_for_user(job_id, user_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobAccessDeniedError:
        raise HTTPException(status_code=403, detail="Access denied")
    return job.to_view()


# ============================================================================
# Posters
# ============================================================================


@router.get("/poster")
async def list_posters(user_id: str = Depends(current_user_id)):
    """The caller's posters, newest first."""
    return [poster_to_dict(p) for p in state.posters.find_by_user(user_id)]


@router.get("/poster/{poster_id}")
async def get_poster(poster_id: int, user_id: str = Depends(current_user_id)):
    poster = state.posters.find_by_id(poster_id)
    if poster is None or not poster.is_visible_to(user_id):
        raise HTTPException(status_code=404, detail="Poster not found")
    return poster_to_dict(poster, include_metadata=True)


@router.put("/poster/{poster_id}")
async def update_poster(
    poster_id: int,
    form: PosterForm,
    user_id: str = Depends(current_user_id),
):
    """Replace the poster's editable fields and metadata."""
    if state.posters.find_by_id(poster_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Poster not found")

    mapped = form_to_db_fields(form)
    state.posters.update_with_metadata(poster_id, mapped.title, mapped.description, mapped.metadata)
    logger.info("Poster %s updated by user %s", poster_id, user_id)
    return poster_to_dict(state.posters.find_by_id(poster_id), include_metadata=True)


@router.get("/poster/{poster_id}/download")
async def download_poster(poster_id: int, user_id: str = Depends(current_user_id)):
    """The poster JSON document as a file attachment."""
    poster = state.posters.find_by_id(poster_id, user_id=user_id)
    if poster is None or poster.metadata is None:
        raise HTTPException(status_code=404, detail="Poster not found")

    content = json.dumps(build_poster_json(poster.metadata), indent=2, ensure_ascii=False)
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="poster-{poster_id}.json"'},
    )
