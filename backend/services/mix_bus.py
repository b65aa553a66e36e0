from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 48_000
CHANNELS = 2
_INT16_MIN = np.iinfo(np.int16).min
_INT16_MAX = np.iinfo(np.int16).max


@dataclass
class _Voice:
    samples: np.ndarray        # (n, CHANNELS) int16
    position: int = 0
    label: str = ""

    @property
    def remaining(self) -> int:
        return self.samples.shape[0] - self.position


class MixBus:
    """
    Shared audio endpoint for one job.

    Scene audio is started on the bus and summed into whatever the recorder
    pulls next. The bus outlives individual scenes; voices simply run out.
    """

    def __init__(self, *, sample_rate: int = SAMPLE_RATE) -> None:
        self.sample_rate = sample_rate
        self._voices: list[_Voice] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def active_voices(self) -> int:
        return len(self._voices)

    def open(self) -> None:
        self._voices = []
        self._open = True
        logger.info("[mix_bus] Opened at %d Hz", self.sample_rate)

    def start(self, samples: np.ndarray, *, label: str = "") -> None:
        """Begin playback of an (n, 2) int16 buffer at the current bus position."""
        if not self._open:
            raise RuntimeError("mix bus is closed")
        if samples.ndim != 2 or samples.shape[1] != CHANNELS:
            raise ValueError(f"expected (n, {CHANNELS}) samples, got {samples.shape}")
        if samples.shape[0] == 0:
            return
        self._voices.append(_Voice(samples=samples.astype(np.int16, copy=False), label=label))
        logger.info(
            "[mix_bus] Started voice %s (%.2fs); %d active",
            label or "?",
            samples.shape[0] / self.sample_rate,
            len(self._voices),
        )

    def pull(self, n: int) -> np.ndarray:
        """Next n samples of the mix. Silence when nothing is playing or the bus is closed."""
        mixed = np.zeros((n, CHANNELS), dtype=np.int32)
        if not self._open or n <= 0:
            return mixed.astype(np.int16)
        for voice in self._voices:
            take = min(n, voice.remaining)
            mixed[:take] += voice.samples[voice.position : voice.position + take]
            voice.position += take
        self._voices = [v for v in self._voices if v.remaining > 0]
        return np.clip(mixed, _INT16_MIN, _INT16_MAX).astype(np.int16)

    def close(self) -> None:
        if self._open:
            logger.info("[mix_bus] Closed (%d voices dropped)", len(self._voices))
        self._voices = []
        self._open = False
