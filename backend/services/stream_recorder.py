"""Capture the live surface and mix bus into one in-memory WebM (VP8 + Opus)."""

from __future__ import annotations

import asyncio
import io
import logging
from fractions import Fraction

import av
import numpy as np
from av.error import FFmpegError

from models import MediaBlob
from services.clock import MonotonicClock, monotonic_clock
from services.errors import RecorderError, SurfaceUnavailable
from services.mix_bus import SAMPLE_RATE, MixBus
from services.surface import RenderSurface

logger = logging.getLogger(__name__)

WEBM_FPS = 30
WEBM_PIX_FMT = "yuv420p"
WEBM_VIDEO_BITRATE = 5_000_000
# 20 ms at 48 kHz, the Opus frame size.
AUDIO_CHUNK_SAMPLES = 960


class MediaWriter:
    """
    Encodes RGB frames and s16 stereo audio into WebM held in memory.
    Call open(), then add_video()/add_audio() as material arrives, then close() for the bytes.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        fps: int = WEBM_FPS,
        bitrate: int = WEBM_VIDEO_BITRATE,
        sample_rate: int = SAMPLE_RATE,
    ) -> None:
        self._width = width
        self._height = height
        self._fps = fps
        self._bitrate = bitrate
        self._sample_rate = sample_rate
        self._buffer = io.BytesIO()
        self._container: av.container.OutputContainer | None = None
        self._video: av.VideoStream | None = None
        self._audio: av.AudioStream | None = None
        self._frame_count = 0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def open(self) -> None:
        if self._container is not None:
            return
        self._container = av.open(self._buffer, "w", format="webm")
        self._video = self._container.add_stream("libvpx", rate=self._fps)
        self._video.width = self._width
        self._video.height = self._height
        self._video.pix_fmt = WEBM_PIX_FMT
        self._video.codec_context.bit_rate = self._bitrate
        self._audio = self._container.add_stream("libopus", rate=self._sample_rate)
        self._audio.codec_context.layout = "stereo"

    def _mux(self, packets) -> None:
        assert self._container is not None
        for packet in packets:
            self._container.mux(packet)

    def add_video(self, rgb: np.ndarray, index: int) -> None:
        """Encode one RGB frame shown from frame slot ``index`` (1/fps units)."""
        assert self._video is not None
        frame = av.VideoFrame.from_ndarray(rgb, format="rgb24").reformat(format=WEBM_PIX_FMT)
        frame.pts = index
        frame.time_base = Fraction(1, self._fps)
        self._mux(self._video.encode(frame))
        self._frame_count += 1

    def add_audio(self, samples: np.ndarray, offset: int) -> None:
        """Encode (n, 2) int16 samples starting at sample ``offset``."""
        assert self._audio is not None
        frame = av.AudioFrame.from_ndarray(
            np.ascontiguousarray(samples, dtype=np.int16).reshape(1, -1),
            format="s16",
            layout="stereo",
        )
        frame.sample_rate = self._sample_rate
        frame.pts = offset
        frame.time_base = Fraction(1, self._sample_rate)
        self._mux(self._audio.encode(frame))

    def close(self) -> bytes:
        """Flush both encoders, close the container, and return the WebM bytes."""
        if self._container is None:
            return b""
        assert self._video is not None and self._audio is not None
        self._mux(self._video.encode())
        self._mux(self._audio.encode())
        self._container.close()
        self._container = None
        self._video = None
        self._audio = None
        data = self._buffer.getvalue()
        self._buffer = io.BytesIO()
        return data

    def discard(self) -> None:
        """Drop whatever was encoded without producing output."""
        if self._container is not None:
            self._container.close()
        self._container = None
        self._video = None
        self._audio = None
        self._buffer = io.BytesIO()


class StreamRecorder:
    """
    Background capture of a RenderSurface and MixBus.

    The capture task reads the surface and pulls from the bus at its own cadence;
    it never draws. Frame and sample positions come from wall-clock time since
    start(), so a scene shown for 4 s occupies 4 s of the file regardless of
    how many ticks the event loop managed.
    """

    def __init__(
        self,
        surface: RenderSurface,
        bus: MixBus,
        *,
        fps: int = WEBM_FPS,
        bitrate: int = WEBM_VIDEO_BITRATE,
        clock: MonotonicClock | None = None,
        writer: MediaWriter | None = None,
    ) -> None:
        self._surface = surface
        self._bus = bus
        self._fps = fps
        self._clock = clock or monotonic_clock
        self._writer = writer or MediaWriter(
            surface.width,
            surface.height,
            fps=fps,
            bitrate=bitrate,
            sample_rate=bus.sample_rate,
        )
        self._task: asyncio.Task[None] | None = None
        self._stop = asyncio.Event()
        self._started_at: float | None = None
        self._last_index = -1
        self._samples_written = 0

    @property
    def is_recording(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def frame_count(self) -> int:
        return self._writer.frame_count

    def _elapsed(self) -> float:
        assert self._started_at is not None
        return max(0.0, self._clock.monotonic() - self._started_at)

    async def start(self) -> None:
        """Begin capturing. Returns once the first (black) frame is encoded."""
        if self._task is not None:
            raise RecorderError("recorder already started")
        try:
            self._writer.open()
        except (FFmpegError, ValueError, OSError) as exc:
            raise RecorderError(f"cannot open encoder: {exc}") from exc
        self._started_at = self._clock.monotonic()
        await self._capture()
        self._task = asyncio.create_task(self._run(), name="stream-recorder")
        logger.info(
            "[stream_recorder] Recording %dx%d at %d fps",
            self._surface.width,
            self._surface.height,
            self._fps,
        )

    async def _run(self) -> None:
        interval = 1.0 / self._fps
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            await self._capture()

    async def _capture(self) -> None:
        elapsed = self._elapsed()
        index = int(elapsed * self._fps)
        frame = None
        if index > self._last_index:
            frame = self._surface.snapshot()
        target = int(elapsed * self._bus.sample_rate)
        chunks: list[tuple[np.ndarray, int]] = []
        while target - self._samples_written >= AUDIO_CHUNK_SAMPLES:
            chunks.append((self._bus.pull(AUDIO_CHUNK_SAMPLES), self._samples_written))
            self._samples_written += AUDIO_CHUNK_SAMPLES
        if frame is None and not chunks:
            return
        await asyncio.to_thread(self._encode, frame, index, chunks)
        if frame is not None:
            self._last_index = index

    def _encode(self, frame: np.ndarray | None, index: int, chunks: list[tuple[np.ndarray, int]]) -> None:
        if frame is not None:
            self._writer.add_video(frame, index)
        for samples, offset in chunks:
            self._writer.add_audio(samples, offset)

    def check(self) -> None:
        """Raise RecorderError if the background capture has died."""
        if self._task is None or not self._task.done() or self._task.cancelled():
            return
        exc = self._task.exception()
        if exc is not None:
            raise RecorderError(f"capture failed: {exc}") from exc

    async def stop(self) -> MediaBlob:
        """Stop capturing and finalize everything buffered into one WebM blob."""
        if self._task is None:
            raise RecorderError("recorder was never started")
        self._stop.set()
        try:
            await self._task
            await self._capture()
            duration = self._elapsed()
            data = await asyncio.to_thread(self._writer.close)
        except (FFmpegError, SurfaceUnavailable, ValueError, OSError) as exc:
            raise RecorderError(f"cannot finalize recording: {exc}") from exc
        finally:
            self._task = None
        if not data:
            raise RecorderError("recording produced no data")
        logger.info(
            "[stream_recorder] Finalized %d frames, %.2fs, %d bytes",
            self._writer.frame_count,
            duration,
            len(data),
        )
        return MediaBlob(data=data, frame_count=self._writer.frame_count, duration_seconds=duration)

    async def abort(self) -> None:
        """Release the capture without producing output. Used on failure paths."""
        self._stop.set()
        if self._task is not None:
            try:
                await self._task
            except Exception as exc:  # noqa: BLE001
                logger.warning("[stream_recorder] Capture task ended with error during abort: %s", exc)
            self._task = None
        try:
            self._writer.discard()
        except FFmpegError as exc:
            logger.warning("[stream_recorder] Discarding encoder failed: %s", exc)
        logger.info("[stream_recorder] Aborted recording")
