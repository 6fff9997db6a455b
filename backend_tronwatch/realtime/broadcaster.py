"""
Throttled pool-update broadcaster.

emit_pool_update() returns at once; ingestion never waits on it. Requests
coalesce into a single pending slot holding the latest block number, and at
most one job waits on the worker pool for that slot, so a slow aggregation
never piles up stale publishes. The backlog gauge counts emits not yet
published. When it reaches the threshold, aggregation is not keeping pace
with block production and a critical log is emitted once until it drains.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from backend_tronwatch.realtime.hub import POOL_EVENT, POOL_ROOM, RoomPublisher
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

DEFAULT_BACKLOG_THRESHOLD = 10
DEFAULT_MAX_WORKERS = 2


class PoolUpdateBroadcaster:
    def __init__(
        self,
        aggregate: Callable[[], dict[str, Any]],
        publisher: RoomPublisher,
        *,
        backlog_threshold: int = DEFAULT_BACKLOG_THRESHOLD,
        max_workers: int = DEFAULT_MAX_WORKERS,
        room: str = POOL_ROOM,
        event: str = POOL_EVENT,
    ) -> None:
        self._aggregate = aggregate
        self._publisher = publisher
        self.backlog_threshold = max(1, backlog_threshold)
        self._room = room
        self._event = event
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="pool-broadcast"
        )
        self._lock = threading.Lock()
        self._backlog = 0
        self._alerting = False
        # Latest requested block not yet picked up by a worker, and how many emits it absorbed
        self._pending_block: int | None = None
        self._pending_count = 0
        self._job_queued = False

    @property
    def backlog(self) -> int:
        with self._lock:
            return self._backlog

    def emit_pool_update(self, block_number: int) -> None:
        """Request an aggregate-and-publish for block_number; fire and forget."""
        with self._lock:
            self._backlog += 1
            backlog = self._backlog
            alert = backlog >= self.backlog_threshold and not self._alerting
            if alert:
                self._alerting = True
            self._pending_block = block_number
            self._pending_count += 1
            submit = not self._job_queued
            self._job_queued = True
        if alert:
            logger.critical(
                "pool_broadcast_backlog",
                backlog=backlog,
                threshold=self.backlog_threshold,
                block_number=block_number,
                message="pool aggregation cannot keep pace with block production",
            )
        if not submit:
            return
        try:
            future = self._executor.submit(self._run_pending)
        except RuntimeError as e:
            self._release(self._take_pending()[1])
            logger.warning("pool_broadcast_rejected", block_number=block_number, error=str(e))
            return
        future.add_done_callback(self._done)

    def _take_pending(self) -> tuple[int | None, int]:
        with self._lock:
            block, count = self._pending_block, self._pending_count
            self._pending_block = None
            self._pending_count = 0
            self._job_queued = False
        return block, count

    def _release(self, count: int) -> None:
        with self._lock:
            self._backlog = max(0, self._backlog - count)
            if self._backlog < self.backlog_threshold:
                self._alerting = False

    def _done(self, future: Future) -> None:
        # A cancelled job never took its slot
        if future.cancelled():
            self._release(self._take_pending()[1])

    def _run_pending(self) -> None:
        block_number, count = self._take_pending()
        try:
            if block_number is not None:
                self._publish(block_number)
        finally:
            self._release(count)

    def _publish(self, block_number: int) -> None:
        try:
            payload = dict(self._aggregate())
            payload["blockNumber"] = block_number
            self._publisher.emit_to_room(self._room, self._event, payload)
            logger.debug("pool_broadcast_done", block_number=block_number, pools=len(payload.get("pools", [])))
        except Exception as e:
            logger.warning("pool_broadcast_failed", block_number=block_number, error=str(e))

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work; a queued broadcast is abandoned unless wait=True."""
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
