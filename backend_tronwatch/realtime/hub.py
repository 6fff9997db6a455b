"""
Room-scoped WebSocket fan-out.

Clients connect to /ws and send {"action": "subscribe", "room": "..."}.
Publishers (summation job, pool broadcaster) run on worker threads and call
emit_to_room(); the hub hops onto the server's event loop to send. Until the
loop is bound (API not started), emits are dropped with a debug log.
"""

from __future__ import annotations

import asyncio
import threading
from collections import defaultdict
from typing import Any, Protocol

from fastapi import WebSocket

from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

SUMMATION_ROOM = "summation-updates"
SUMMATION_EVENT = "summation-created"
POOL_ROOM = "pool-updates"
POOL_EVENT = "pools-updated"


class RoomPublisher(Protocol):
    def emit_to_room(self, room: str, event: str, payload: dict[str, Any]) -> None: ...


class RoomHub:
    """Subscribers per room; thread-safe emit."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        self._loop = loop

    def subscribe(self, websocket: WebSocket, room: str) -> None:
        with self._lock:
            self._rooms[room].add(websocket)

    def unsubscribe(self, websocket: WebSocket, room: str) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(websocket)
                if not members:
                    del self._rooms[room]

    def disconnect(self, websocket: WebSocket) -> None:
        with self._lock:
            for room in list(self._rooms):
                self._rooms[room].discard(websocket)
                if not self._rooms[room]:
                    del self._rooms[room]

    def room_size(self, room: str) -> int:
        with self._lock:
            return len(self._rooms.get(room, ()))

    def emit_to_room(self, room: str, event: str, payload: dict[str, Any]) -> None:
        """Schedule a send to every subscriber of room. Never raises."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("room_emit_skipped", room=room, event_name=event, reason="no_event_loop")
            return
        message = {"event": event, "payload": payload}
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        try:
            if running is loop:
                loop.create_task(self._send(room, message))
            else:
                asyncio.run_coroutine_threadsafe(self._send(room, message), loop)
        except RuntimeError as e:
            logger.warning("room_emit_failed", room=room, event_name=event, error=str(e))

    async def _send(self, room: str, message: dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._rooms.get(room, ()))
        for websocket in targets:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug("room_send_dropped", room=room, error=str(e))
                self.disconnect(websocket)
