"""Fetch, decode, and start scene narration on the mix bus."""

from __future__ import annotations

import asyncio
import io
import logging

import av
from av.error import FFmpegError
import httpx
import numpy as np

from services.errors import AudioDecodeError
from services.mix_bus import CHANNELS, SAMPLE_RATE, MixBus
from services.resources import fetch_bytes

logger = logging.getLogger(__name__)


def decode_audio(data: bytes, *, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """
    Decode any container/codec PyAV understands into (n, 2) int16 samples.

    Raises AudioDecodeError when nothing decodable is found.
    """
    resampler = av.AudioResampler(format="s16", layout="stereo", rate=sample_rate)
    chunks: list[np.ndarray] = []
    try:
        with av.open(io.BytesIO(data), "r") as container:
            if not container.streams.audio:
                raise AudioDecodeError("no audio stream")
            for frame in container.decode(audio=0):
                for out in resampler.resample(frame):
                    chunks.append(out.to_ndarray().reshape(-1, CHANNELS))
            for out in resampler.resample(None):
                chunks.append(out.to_ndarray().reshape(-1, CHANNELS))
    except FFmpegError as exc:
        raise AudioDecodeError(f"decode failed: {exc}") from exc
    if not chunks:
        raise AudioDecodeError("audio stream decoded to zero samples")
    return np.concatenate(chunks).astype(np.int16, copy=False)


class AudioFeeder:
    def __init__(self, client: httpx.AsyncClient, *, sample_rate: int = SAMPLE_RATE) -> None:
        self._client = client
        self._sample_rate = sample_rate

    async def load(self, audio_ref: str) -> np.ndarray:
        try:
            data = await fetch_bytes(self._client, audio_ref)
        except (httpx.HTTPError, OSError) as exc:
            raise AudioDecodeError(f"cannot fetch audio {audio_ref}: {exc}") from exc
        return await asyncio.to_thread(decode_audio, data, sample_rate=self._sample_rate)

    async def feed(self, bus: MixBus, audio_ref: str, *, label: str = "") -> bool:
        """
        Start a scene's narration on the bus as soon as it is decoded.

        Never raises for a bad asset: the scene just plays silently.
        Returns True when playback started.
        """
        try:
            samples = await self.load(audio_ref)
            bus.start(samples, label=label)
        except AudioDecodeError as exc:
            logger.warning("[audio_feeder] Scene %s plays silently: %s", label or audio_ref, exc.detail)
            return False
        except (RuntimeError, ValueError) as exc:
            logger.warning("[audio_feeder] Scene %s playback failed: %s", label or audio_ref, exc)
            return False
        return True
