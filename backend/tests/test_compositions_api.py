"""Tests for POST /api/compositions, progress polling and downloads."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import BackgroundTasks, HTTPException

from app.main import app
from app.models import CompositionRequest, SceneIn
from helpers import EBML_MAGIC, assets_for, make_scene
from routes.compositions import get_compositor, start_composition
from services.artifact_emitter import ArtifactEmitter, directory_sink
from services.audio_feeder import AudioFeeder
from services.compositor import SUCCESS_MESSAGE, Compositor
from services.errors import NO_ELIGIBLE_SCENES_MESSAGE
from services.frame_renderer import FrameRenderer


def _scene_json(scene_id: str, order: int, *, duration: float = 1.0, audio_status: str = "completed") -> dict[str, Any]:
    return {
        "id": scene_id,
        "order": order,
        "title": f"Scene {order}",
        "narration_text": "Once upon a time...",
        "image_url": f"https://assets.test/{scene_id}.png",
        "image_status": "completed",
        "audio_url": f"https://assets.test/{scene_id}.wav",
        "audio_status": audio_status,
        "estimated_duration": duration,
    }


@pytest.fixture
def compositor(client_factory, fake_clock, recorder_spy, tmp_path, monkeypatch) -> Compositor:
    monkeypatch.setenv("STORYREEL_DOWNLOAD_DIR", str(tmp_path))
    assets = assets_for([make_scene("s1", 1), make_scene("s2", 2)])
    client = client_factory(assets)
    return Compositor(
        renderer=FrameRenderer(client),
        feeder=AudioFeeder(client),
        emitter=ArtifactEmitter(directory_sink(tmp_path)),
        recorder_factory=recorder_spy,
        clock=fake_clock,
        tick_seconds=0.1,
    )


@pytest_asyncio.fixture
async def api(compositor: Compositor) -> AsyncIterator[httpx.AsyncClient]:
    app.dependency_overrides[get_compositor] = lambda: compositor
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_start_composition_runs_to_completion(
    api: httpx.AsyncClient, compositor: Compositor, recorder_spy
) -> None:
    """The background run finishes before the ASGI call returns, so progress is already done."""
    body = {
        "project_title": "Moon Picnic",
        "aspect_ratio": "9:16",
        "scenes": [_scene_json("s2", 2, duration=2), _scene_json("s1", 1)],
    }
    response = await api.post("/api/compositions", json=body)
    assert response.status_code == 202
    assert response.json() == {"total_eligible_scenes": 2, "total_planned_seconds": 3.0}
    assert [scene.id for scene in compositor.last_job.scenes] == ["s1", "s2"]

    progress = await api.get("/api/compositions/progress")
    assert progress.status_code == 200
    data = progress.json()
    assert data["phase"] == "done"
    assert data["percent_complete"] == 100.0
    assert data["current_scene_number"] == 2
    assert data["notification"] == {"level": "success", "message": SUCCESS_MESSAGE}
    assert data["artifact"] == "Moon_Picnic_video.webm"
    assert (recorder_spy.recorders[0].surface.width, recorder_spy.recorders[0].surface.height) == (720, 1280)

    download = await api.get(f"/api/downloads/{data['artifact']}")
    assert download.status_code == 200
    assert download.headers["content-type"] == "video/webm"
    assert download.content.startswith(EBML_MAGIC)


@pytest.mark.asyncio
async def test_start_composition_conflicts_while_running(api: httpx.AsyncClient, compositor: Compositor) -> None:
    assert compositor.claim()
    body = {"project_title": "busy", "scenes": [_scene_json("s1", 1)]}
    response = await api.post("/api/compositions", json=body)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_second_start_before_background_run_conflicts(compositor: Compositor, recorder_spy) -> None:
    body = CompositionRequest(project_title="twice", scenes=[SceneIn(**_scene_json("s1", 1))])
    first_tasks = BackgroundTasks()
    started = start_composition(body, first_tasks, compositor)
    assert started.total_eligible_scenes == 1
    assert compositor.is_running

    with pytest.raises(HTTPException) as excinfo:
        start_composition(body, BackgroundTasks(), compositor)
    assert excinfo.value.status_code == 409

    await first_tasks()
    assert len(recorder_spy.recorders) == 1
    assert not compositor.is_running
    assert compositor.progress.state.percent_complete == 100.0


@pytest.mark.asyncio
async def test_start_composition_without_eligible_scenes(
    api: httpx.AsyncClient, compositor: Compositor, recorder_spy
) -> None:
    body = {"project_title": "not yet", "scenes": [_scene_json("s1", 1, audio_status="generating")]}
    response = await api.post("/api/compositions", json=body)
    assert response.status_code == 400
    assert response.json()["detail"] == NO_ELIGIBLE_SCENES_MESSAGE
    assert recorder_spy.recorders == []
    assert not compositor.is_running

    progress = (await api.get("/api/compositions/progress")).json()
    assert progress["phase"] == "idle"
    assert progress["percent_complete"] == 0.0


@pytest.mark.asyncio
async def test_start_composition_rejects_unknown_aspect_ratio(api: httpx.AsyncClient) -> None:
    body = {"project_title": "square", "aspect_ratio": "4:3", "scenes": [_scene_json("s1", 1)]}
    response = await api.post("/api/compositions", json=body)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_start_composition_rejects_negative_duration(api: httpx.AsyncClient) -> None:
    body = {"project_title": "backwards", "scenes": [_scene_json("s1", 1, duration=-1)]}
    response = await api.post("/api/compositions", json=body)
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("filename", ["notes.txt", "..%2Fsecret_video.webm", "missing_video.webm"])
async def test_download_unknown_file_is_404(api: httpx.AsyncClient, filename: str) -> None:
    response = await api.get(f"/api/downloads/{filename}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_download_serves_saved_file(api: httpx.AsyncClient, tmp_path) -> None:
    (tmp_path / "Saved_video.webm").write_bytes(EBML_MAGIC + b"rest")
    response = await api.get("/api/downloads/Saved_video.webm")
    assert response.status_code == 200
    assert response.content == EBML_MAGIC + b"rest"
