"""Composition REST API: start a run, poll progress, fetch the saved video."""

import logging
import re

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import FileResponse

from app.config import get_download_dir
from app.models import CompositionRequest, CompositionStartResponse, ProgressResponse
from services.artifact_emitter import FILENAME_SUFFIX
from services.compositor import Compositor
from services.errors import NoEligibleScenes
from services.scene_filter import sort_scenes

router = APIRouter(tags=["compositions"])
logger = logging.getLogger(__name__)

_DOWNLOAD_NAME = re.compile(r"^[A-Za-z0-9_]*" + re.escape(FILENAME_SUFFIX) + r"$")


def get_compositor(request: Request) -> Compositor:
    return request.app.state.compositor


@router.post("/compositions", response_model=CompositionStartResponse, status_code=202)
def start_composition(
    body: CompositionRequest,
    background_tasks: BackgroundTasks,
    compositor: Compositor = Depends(get_compositor),
) -> CompositionStartResponse:
    """Validate the scene list, reserve the compositor, and run it in the background."""
    logger.info(
        "[compositions] POST /api/compositions title=%r scenes=%d aspect=%s",
        body.project_title,
        len(body.scenes),
        body.aspect_ratio.value,
    )
    if not compositor.claim():
        raise HTTPException(status_code=409, detail="Video generation already in progress")
    scenes = sort_scenes(scene.to_scene() for scene in body.scenes)
    try:
        job = compositor.prepare(scenes, body.aspect_ratio, body.project_title)
    except NoEligibleScenes as exc:
        compositor.release()
        compositor.progress.reset()
        raise HTTPException(status_code=400, detail=exc.message) from exc
    background_tasks.add_task(compositor.run, job)
    return CompositionStartResponse(
        total_eligible_scenes=len(job.scenes),
        total_planned_seconds=job.total_planned_seconds,
    )


@router.get("/compositions/progress", response_model=ProgressResponse)
def get_progress(compositor: Compositor = Depends(get_compositor)) -> ProgressResponse:
    """Progress for polling clients. The WebSocket pushes the same data."""
    artifact = compositor.last_artifact.name if compositor.last_artifact else None
    return ProgressResponse.from_state(
        compositor.progress.state,
        compositor.progress.last_notification,
        artifact,
    )


@router.get("/downloads/{filename}")
def download(filename: str) -> FileResponse:
    if not _DOWNLOAD_NAME.match(filename):
        raise HTTPException(status_code=404, detail="Video not found")
    path = get_download_dir() / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Video not found")
    return FileResponse(path, media_type="video/webm", filename=filename)
