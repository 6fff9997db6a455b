"""
Tests for the throttled pool-update broadcaster: backlog gauge and critical alert.
"""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import pytest

from backend_tronwatch.realtime import broadcaster as broadcaster_module
from backend_tronwatch.realtime.broadcaster import PoolUpdateBroadcaster
from backend_tronwatch.realtime.hub import POOL_EVENT, POOL_ROOM


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def log(monkeypatch):
    mock = MagicMock()
    monkeypatch.setattr(broadcaster_module, "logger", mock)
    return mock


def test_publish_adds_block_number(log):
    """Aggregate result is published to the pool room with blockNumber attached."""
    publisher = MagicMock()
    b = PoolUpdateBroadcaster(lambda: {"pools": [], "hours": 24}, publisher)
    b.emit_pool_update(42)
    assert _wait_for(lambda: publisher.emit_to_room.called)
    room, event, payload = publisher.emit_to_room.call_args.args
    assert (room, event) == (POOL_ROOM, POOL_EVENT)
    assert payload["blockNumber"] == 42
    assert _wait_for(lambda: b.backlog == 0)
    b.shutdown(wait=True)


def test_backlog_reaches_threshold_logs_critical(log):
    """When jobs pile up to the threshold a critical log fires; the gauge drains after."""
    release = threading.Event()

    def slow_aggregate():
        release.wait(timeout=5)
        return {"pools": []}

    b = PoolUpdateBroadcaster(slow_aggregate, MagicMock(), backlog_threshold=3, max_workers=1)
    b.emit_pool_update(1)
    b.emit_pool_update(2)
    assert b.backlog == 2
    log.critical.assert_not_called()
    b.emit_pool_update(3)
    assert b.backlog == 3
    log.critical.assert_called_once()
    assert log.critical.call_args.kwargs["backlog"] == 3

    release.set()
    assert _wait_for(lambda: b.backlog == 0)
    b.shutdown(wait=True)


def test_emits_coalesce_while_aggregation_stalls(log):
    """Emits behind a stalled aggregate fold into one job carrying the latest block."""
    release = threading.Event()
    started = threading.Event()
    calls = []

    def slow_aggregate():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return {"pools": []}

    publisher = MagicMock()
    b = PoolUpdateBroadcaster(slow_aggregate, publisher, max_workers=1)
    b.emit_pool_update(1)
    assert started.wait(timeout=5)
    for block in range(2, 201):
        b.emit_pool_update(block)
    assert b.backlog == 200
    log.critical.assert_called_once()

    release.set()
    assert _wait_for(lambda: b.backlog == 0)
    assert len(calls) == 2
    assert [c.args[2]["blockNumber"] for c in publisher.emit_to_room.call_args_list] == [1, 200]
    b.shutdown(wait=True)


def test_failed_publish_decrements_backlog(log):
    """An aggregate failure is logged and still releases its backlog slot."""

    def broken():
        raise RuntimeError("query failed")

    b = PoolUpdateBroadcaster(broken, MagicMock())
    b.emit_pool_update(7)
    assert _wait_for(lambda: b.backlog == 0)
    assert _wait_for(lambda: log.warning.called)
    assert log.warning.call_args.args[0] == "pool_broadcast_failed"
    b.shutdown(wait=True)


def test_shutdown_cancels_pending_and_rejects_new(log):
    """Cancelled jobs release their slot; emits after shutdown are rejected."""
    release = threading.Event()
    started = threading.Event()

    def slow_aggregate():
        started.set()
        release.wait(timeout=5)
        return {"pools": []}

    b = PoolUpdateBroadcaster(slow_aggregate, MagicMock(), max_workers=1)
    b.emit_pool_update(1)
    assert started.wait(timeout=5)
    b.emit_pool_update(2)
    b.emit_pool_update(3)
    b.shutdown(wait=False)
    assert _wait_for(lambda: b.backlog == 1)
    release.set()
    assert _wait_for(lambda: b.backlog == 0)

    b.emit_pool_update(4)
    assert b.backlog == 0
    assert log.warning.call_args.args[0] == "pool_broadcast_rejected"
