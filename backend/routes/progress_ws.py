from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services.progress_hub import progress_hub

router = APIRouter(tags=["progress"])
logger = logging.getLogger(__name__)


@router.websocket("/ws/compositions/progress")
async def ws_composition_progress(websocket: WebSocket) -> None:
    """
    Stream compositor progress and the terminal notification to the frontend.

    Payload schema: see ProgressHub.
    """
    logger.info("[progress_ws] Client connecting")
    await websocket.accept()
    q = await progress_hub.subscribe()
    try:
        while True:
            payload: dict[str, Any] = await q.get()
            await websocket.send_json(payload)
    except WebSocketDisconnect:
        return
    finally:
        await progress_hub.unsubscribe(q)
