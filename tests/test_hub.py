"""
Tests for WebSocket room subscriptions and thread-safe room emits.
"""

from __future__ import annotations

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from backend_tronwatch.api_server.server import create_app
from backend_tronwatch.realtime.hub import POOL_EVENT, POOL_ROOM, SUMMATION_ROOM, RoomHub


def test_emit_without_loop_is_noop():
    """Before the API binds a loop, emits are dropped without raising."""
    hub = RoomHub()
    hub.emit_to_room(POOL_ROOM, POOL_EVENT, {"pools": []})


def test_subscribe_unsubscribe_bookkeeping():
    hub = RoomHub()
    ws = MagicMock()
    hub.subscribe(ws, POOL_ROOM)
    hub.subscribe(ws, SUMMATION_ROOM)
    assert hub.room_size(POOL_ROOM) == 1
    hub.unsubscribe(ws, POOL_ROOM)
    assert hub.room_size(POOL_ROOM) == 0
    hub.disconnect(ws)
    assert hub.room_size(SUMMATION_ROOM) == 0


def test_websocket_room_receives_emits(container):
    """A subscriber receives events emitted from another thread; others do not."""
    with TestClient(create_app(container)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "room": POOL_ROOM})
            assert ws.receive_json() == {"event": "subscribed", "payload": {"room": POOL_ROOM}}
            assert container.hub.room_size(POOL_ROOM) == 1

            container.hub.emit_to_room(SUMMATION_ROOM, "summation-created", {"x": 0})
            container.hub.emit_to_room(POOL_ROOM, POOL_EVENT, {"pools": [], "blockNumber": 5})
            assert ws.receive_json() == {"event": POOL_EVENT, "payload": {"pools": [], "blockNumber": 5}}


def test_websocket_rejects_bad_message(container):
    with TestClient(create_app(container)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "dance"})
            assert ws.receive_json()["event"] == "error"
            ws.send_json(["not", "an", "object"])
            assert ws.receive_json()["event"] == "error"
