"""Draw one scene image onto the shared surface, aspect ratio preserved."""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass

import httpx
import numpy as np
from PIL import Image, UnidentifiedImageError

from services.errors import ImageLoadError
from services.resources import fetch_bytes
from services.surface import RenderSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawRect:
    x: float
    y: float
    width: float
    height: float


def fit_geometry(image_width: int, image_height: int, width: int, height: int) -> DrawRect:
    """
    Where to draw an image_width x image_height image on a width x height surface.

    A relatively wider image spans the full height and is centered horizontally
    (sides cropped). Otherwise it spans the full width and is centered vertically.
    """
    image_aspect = image_width / image_height
    target_aspect = width / height
    if image_aspect > target_aspect:
        draw_height = float(height)
        draw_width = height * image_aspect
        return DrawRect(x=(width - draw_width) / 2, y=0.0, width=draw_width, height=draw_height)
    draw_width = float(width)
    draw_height = width / image_aspect
    return DrawRect(x=0.0, y=(height - draw_height) / 2, width=draw_width, height=draw_height)


def compose_frame(data: bytes, width: int, height: int) -> tuple[np.ndarray, DrawRect]:
    """Decode image bytes and paint them onto a fresh opaque black canvas."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            image = img.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageLoadError(f"cannot decode image: {exc}") from exc
    if image.width <= 0 or image.height <= 0:
        raise ImageLoadError("image has zero size")

    rect = fit_geometry(image.width, image.height, width, height)
    draw_size = (max(1, round(rect.width)), max(1, round(rect.height)))
    scaled = image.resize(draw_size, Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (width, height), (0, 0, 0))
    # paste() clips whatever falls outside the canvas.
    canvas.paste(scaled, (round(rect.x), round(rect.y)))
    return np.asarray(canvas, dtype=np.uint8).copy(), rect


class FrameRenderer:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def render(self, surface: RenderSurface, image_ref: str) -> DrawRect:
        """
        Fetch, decode, and present one image. Suspends until the load settles.

        Raises ImageLoadError on any fetch or decode failure.
        """
        try:
            data = await fetch_bytes(self._client, image_ref)
        except (httpx.HTTPError, OSError) as exc:
            raise ImageLoadError(f"cannot fetch image {image_ref}: {exc}") from exc

        frame, rect = await asyncio.to_thread(compose_frame, data, surface.width, surface.height)
        surface.present(frame)
        logger.info(
            "[frame_renderer] Drew %s at (%.1f, %.1f) size %.1fx%.1f",
            image_ref,
            rect.x,
            rect.y,
            rect.width,
            rect.height,
        )
        return rect
