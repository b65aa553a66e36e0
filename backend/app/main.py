import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import (
    get_capture_fps,
    get_download_dir,
    get_fetch_timeout,
    get_tick_seconds,
    get_video_bitrate,
    load_env,
)
from routes import compositions, progress_ws
from services.artifact_emitter import ArtifactEmitter, directory_sink
from services.audio_feeder import AudioFeeder
from services.compositor import Compositor
from services.frame_renderer import FrameRenderer
from services.progress_hub import progress_hub
from services.stream_recorder import StreamRecorder

load_env()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_compositor(client: httpx.AsyncClient) -> Compositor:
    """Wire a Compositor from environment settings around a shared HTTP client."""
    fps = get_capture_fps()
    bitrate = get_video_bitrate()
    compositor = Compositor(
        renderer=FrameRenderer(client),
        feeder=AudioFeeder(client),
        emitter=ArtifactEmitter(directory_sink(get_download_dir())),
        recorder_factory=lambda surface, bus: StreamRecorder(surface, bus, fps=fps, bitrate=bitrate),
        tick_seconds=get_tick_seconds(),
    )
    compositor.progress.add_listener(progress_hub.publish_nowait)
    return compositor


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    async with httpx.AsyncClient(timeout=get_fetch_timeout()) as client:
        app.state.compositor = create_compositor(client)
        logger.info("[main] Compositor ready; downloads go to %s", get_download_dir())
        yield


app = FastAPI(title="Story Reel API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(compositions.router, prefix="/api")
app.include_router(progress_ws.router, prefix="/api")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
