from __future__ import annotations

import logging

import numpy as np

from services.errors import SurfaceUnavailable

logger = logging.getLogger(__name__)


class RenderSurface:
    """
    The single visual surface a job draws onto and the recorder samples.

    Frames are swapped in whole by ``present()`` instead of being mutated in
    place, so a reader holding a ``snapshot()`` never sees a half-drawn frame.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._frame: np.ndarray | None = None

    @property
    def shape(self) -> tuple[int, int, int]:
        return (self.height, self.width, 3)

    @property
    def is_open(self) -> bool:
        return self._frame is not None

    def blank(self) -> np.ndarray:
        """Opaque black frame matching this surface."""
        return np.zeros(self.shape, dtype=np.uint8)

    def open(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise SurfaceUnavailable(f"invalid surface size {self.width}x{self.height}")
        # libvpx/yuv420p needs even dimensions.
        if self.width % 2 or self.height % 2:
            raise SurfaceUnavailable(f"surface size must be even, got {self.width}x{self.height}")
        self._frame = self.blank()
        logger.info("[surface] Opened %dx%d surface", self.width, self.height)

    def present(self, frame: np.ndarray) -> None:
        if self._frame is None:
            raise SurfaceUnavailable("surface is not open")
        if frame.shape != self.shape or frame.dtype != np.uint8:
            raise SurfaceUnavailable(f"frame {frame.shape} does not match surface {self.shape}")
        self._frame = frame

    def snapshot(self) -> np.ndarray:
        if self._frame is None:
            raise SurfaceUnavailable("surface is not open")
        return self._frame

    def close(self) -> None:
        if self._frame is not None:
            logger.info("[surface] Closed %dx%d surface", self.width, self.height)
        self._frame = None
