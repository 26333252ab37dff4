"""Feed socket: clients receive post and comment inserts as JSON messages."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket

from ..services.realtime import feed_updates_manager

router = APIRouter()
logger = logging.getLogger(__name__)

_REPLIES = {"ping": "pong", "hello": "ready"}


def _message_type(raw: str) -> str:
    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError:
        return raw.strip().lower()
    if isinstance(payload, dict):
        return str(payload.get("type") or "").lower()
    return ""


@router.websocket("/ws/feed")
async def feed_socket(websocket: WebSocket) -> None:
    """Relay inserts until the client disconnects; answers ``ping`` and ``hello``."""

    await feed_updates_manager.connect(websocket)
    logger.info("Feed socket connected from %s", websocket.client)
    try:
        async for raw in websocket.iter_text():
            reply = _REPLIES.get(_message_type(raw))
            if reply is not None:
                await websocket.send_json({"type": reply})
    finally:
        await feed_updates_manager.disconnect(websocket)
        logger.info("Feed socket disconnected from %s", websocket.client)


__all__ = ["router"]
