"""Fetch image/audio assets referenced by scene records."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http://", "https://")


def is_remote(ref: str) -> bool:
    return ref.lower().startswith(_REMOTE_SCHEMES)


async def fetch_bytes(client: httpx.AsyncClient, ref: str) -> bytes:
    """
    Return the raw bytes behind a resource reference.

    http(s) URLs go through the shared httpx client; anything else is treated as
    a local path (``file://`` prefix allowed). Raises httpx.HTTPError or OSError.
    """
    if is_remote(ref):
        response = await client.get(ref, follow_redirects=True)
        response.raise_for_status()
        logger.debug("[resources] Fetched %d bytes from %s", len(response.content), ref)
        return response.content
    path = Path(ref.removeprefix("file://"))
    return await asyncio.to_thread(path.read_bytes)
