from __future__ import annotations

import asyncio
import io
import wave

import httpx
import numpy as np
from PIL import Image

from models import MediaBlob, Scene, SceneStatus
from services.errors import RecorderError
from services.mix_bus import MixBus
from services.surface import RenderSurface

EBML_MAGIC = b"\x1a\x45\xdf\xa3"


def png_bytes(width: int = 32, height: int = 24, color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def wav_bytes(seconds: float = 0.5, rate: int = 22_050, freq: float = 440.0) -> bytes:
    """Mono 16-bit PCM sine tone."""
    t = np.arange(int(seconds * rate)) / rate
    tone = (np.sin(2 * np.pi * freq * t) * 8000).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(tone.tobytes())
    return buf.getvalue()


def mock_client(assets: dict[str, bytes]) -> httpx.AsyncClient:
    """httpx client serving ``assets`` by URL; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = assets.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_scene(
    scene_id: str,
    order: int,
    *,
    duration: float | None = 5.0,
    image: bool = True,
    audio: bool = True,
    audio_status: SceneStatus = SceneStatus.COMPLETED,
) -> Scene:
    return Scene(
        id=scene_id,
        order=order,
        title=f"Scene {order}",
        narration_text="Once upon a time...",
        image_url=f"https://assets.test/{scene_id}.png" if image else None,
        image_status=SceneStatus.COMPLETED if image else SceneStatus.PENDING,
        audio_url=f"https://assets.test/{scene_id}.wav" if audio else None,
        audio_status=audio_status,
        estimated_duration=duration,
    )


def assets_for(scenes: list[Scene]) -> dict[str, bytes]:
    assets: dict[str, bytes] = {}
    for scene in scenes:
        if scene.image_url:
            assets[scene.image_url] = png_bytes()
        if scene.audio_url:
            assets[scene.audio_url] = wav_bytes(0.2)
    return assets


class FakeClock:
    """Virtual time: sleep() advances instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = 0

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        self.sleeps += 1
        await asyncio.sleep(0)


class GatedClock(FakeClock):
    """FakeClock whose sleeps block until ``gate`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.waiting = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        self.waiting.set()
        await self.gate.wait()
        await super().sleep(seconds)


class FakeRecorder:
    def __init__(
        self,
        surface: RenderSurface,
        bus: MixBus,
        *,
        fail_start: bool = False,
        fail_after_checks: int | None = None,
    ) -> None:
        self.surface = surface
        self.bus = bus
        self.started = False
        self.stopped = False
        self.aborted = False
        self.checks = 0
        self.surface_open_at_start: bool | None = None
        self._fail_start = fail_start
        self._fail_after_checks = fail_after_checks

    async def start(self) -> None:
        if self._fail_start:
            raise RecorderError("encoder unavailable")
        self.surface_open_at_start = self.surface.is_open
        self.started = True

    def check(self) -> None:
        self.checks += 1
        if self._fail_after_checks is not None and self.checks > self._fail_after_checks:
            raise RecorderError("capture died")

    async def stop(self) -> MediaBlob:
        self.stopped = True
        return MediaBlob(data=EBML_MAGIC + b"fake-webm", frame_count=1)

    async def abort(self) -> None:
        self.aborted = True


class RecorderSpy:
    """Recorder factory that remembers every recorder it built."""

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.recorders: list[FakeRecorder] = []

    def __call__(self, surface: RenderSurface, bus: MixBus) -> FakeRecorder:
        recorder = FakeRecorder(surface, bus, **self.kwargs)
        self.recorders.append(recorder)
        return recorder


