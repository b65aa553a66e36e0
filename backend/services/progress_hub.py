from __future__ import annotations

import asyncio
from typing import Any


class ProgressHub:
    """
    In-memory pubsub for streaming compositor progress to WebSocket subscribers.

    Payloads are either progress snapshots:
      {"type": "progress", "phase": "running", "current_scene_number": 2,
       "total_eligible_scenes": 3, "percent_complete": 41.7}
    or the terminal notification:
      {"type": "notification", "level": "success", "message": "..."}

    Slow subscribers lose the oldest payloads, never the newest.
    """

    def __init__(self, *, queue_size: int = 16) -> None:
        self._lock = asyncio.Lock()
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[dict[str, Any]]] = set()
        self._latest: dict[str, Any] | None = None

    @property
    def latest(self) -> dict[str, Any] | None:
        return self._latest

    async def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        q: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._queue_size)
        async with self._lock:
            self._subscribers.add(q)
        if self._latest is not None:
            q.put_nowait(self._latest)
        return q

    async def unsubscribe(self, q: asyncio.Queue[dict[str, Any]]) -> None:
        async with self._lock:
            self._subscribers.discard(q)

    async def publish(self, payload: dict[str, Any]) -> None:
        self._latest = payload
        async with self._lock:
            subs = list(self._subscribers)
        for q in subs:
            if q.full():
                try:
                    _ = q.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                # Raced between full-check and put; drop.
                pass

    def publish_nowait(self, payload: dict[str, Any]) -> None:
        """
        Fire-and-forget helper for sync contexts (the progress tracker).
        """
        self._latest = payload
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: nothing to deliver to; best-effort only.
            return
        loop.create_task(self.publish(payload))


progress_hub = ProgressHub()
