"""Relay push channel inserts to connected feed sockets."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

from fastapi import WebSocket

from .contracts import ChangeEvent
from .push_channel import ChannelSubscription, PushChannel

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Tracks feed sockets and fans JSON messages out to all of them."""

    def __init__(self) -> None:
        self._sockets: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._broadcasts: set[asyncio.Task[None]] = set()

    @property
    def connection_count(self) -> int:
        return len(self._sockets)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._sockets.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._sockets.discard(websocket)

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send ``message`` to every socket and return how many received it."""

        text = json.dumps(message, default=str)
        async with self._lock:
            sockets = list(self._sockets)

        stale: list[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_text(text)
            except Exception:
                stale.append(websocket)

        if stale:
            logger.info("Dropping %d feed socket(s) after failed send", len(stale))
            async with self._lock:
                self._sockets.difference_update(stale)
        return len(sockets) - len(stale)

    def forward(self, event: ChangeEvent) -> None:
        """Push channel handler scheduling a broadcast of ``event``."""

        message = {"type": event.event_type.lower(), "table": event.table, "record": event.payload}
        task = asyncio.get_running_loop().create_task(self.broadcast(message))
        self._broadcasts.add(task)
        task.add_done_callback(self._broadcasts.discard)


def forward_inserts(
    channel: PushChannel,
    manager: WebSocketManager,
    tables: Iterable[str] = ("posts", "comments"),
) -> list[ChannelSubscription]:
    """Relay insert events for ``tables`` to every connected feed socket."""

    return [channel.subscribe(table, manager.forward, event_type="INSERT") for table in tables]


feed_updates_manager = WebSocketManager()


__all__ = ["WebSocketManager", "feed_updates_manager", "forward_inserts"]
