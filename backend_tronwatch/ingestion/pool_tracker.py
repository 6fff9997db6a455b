"""
Pool delegation tracking for delegations signed under a custom permission.

Each tracked delegation stores its pool (resolved at ingestion, may be None
until discovery backfills it), rental length and a duration-weighted TRX
value. The first successful insert in a new block triggers one pool
broadcast; later inserts in the same block do not.
"""

from __future__ import annotations

import threading
from typing import Protocol

from backend_tronwatch.config.settings import DEFAULT_BLOCK_INTERVAL_SEC
from backend_tronwatch.core.units import POOL_PERMISSION_MIN_ID
from backend_tronwatch.database import Database, PoolDelegation
from backend_tronwatch.ingestion.models import DelegationEvent
from backend_tronwatch.pools.membership import PoolMembershipResolver
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

MINUTES_PER_DAY = 60 * 24
# Untimed delegations count as one day of rental
UNTIMED_RENTAL_DAYS = 1.0


class PoolUpdateEmitter(Protocol):
    def emit_pool_update(self, block_number: int) -> None: ...


def rental_period_minutes(lock_period: int | None, block_interval_sec: int = DEFAULT_BLOCK_INTERVAL_SEC) -> float | None:
    if not lock_period or lock_period <= 0:
        return None
    return lock_period * block_interval_sec / 60


def normalized_amount_trx(amount_trx: float, rental_minutes: float | None) -> float:
    """amount_trx weighted by rental days, never below one day."""
    if rental_minutes is None:
        return amount_trx * UNTIMED_RENTAL_DAYS
    rental_days = rental_minutes / MINUTES_PER_DAY
    return amount_trx * max(rental_days, UNTIMED_RENTAL_DAYS)


class PoolDelegationTracker:
    def __init__(
        self,
        db: Database,
        resolver: PoolMembershipResolver,
        broadcaster: PoolUpdateEmitter | None = None,
        *,
        block_interval_sec: int = DEFAULT_BLOCK_INTERVAL_SEC,
    ) -> None:
        self._db = db
        self._resolver = resolver
        self._broadcaster = broadcaster
        self._block_interval_sec = block_interval_sec
        self._last_broadcast_block: int | None = None
        self._lock = threading.Lock()

    @property
    def last_broadcast_block(self) -> int | None:
        return self._last_broadcast_block

    def track(self, event: DelegationEvent, permission_id: int, lock_period: int | None) -> bool:
        """Persist one PoolDelegation. Returns True if inserted; never raises."""
        try:
            if permission_id < POOL_PERMISSION_MIN_ID or event.is_reclaim:
                return False
            pool = self._resolver.get_pool_for_account(event.from_address, permission_id)
            minutes = rental_period_minutes(lock_period, self._block_interval_sec)
            result = self._db.insert_if_absent(
                PoolDelegation(
                    tx_id=event.tx_id,
                    timestamp=event.timestamp,
                    block_number=event.block_number,
                    from_address=event.from_address,
                    to_address=event.to_address,
                    pool_address=pool,
                    resource_type=event.resource_type,
                    amount_sun=event.amount_sun,
                    permission_id=permission_id,
                    lock_period=lock_period,
                    rental_period_minutes=minutes,
                    normalized_amount_trx=normalized_amount_trx(event.amount_trx, minutes),
                )
            )
            if result.is_duplicate:
                logger.debug("pool_delegation_duplicate_skipped", tx_id=event.tx_id)
                return False
            if result.is_failed:
                logger.warning("pool_delegation_persist_failed", tx_id=event.tx_id, error=str(result.error))
                return False
            logger.debug(
                "pool_delegation_recorded",
                tx_id=event.tx_id,
                pool=pool,
                permission_id=permission_id,
                rental_minutes=minutes,
            )
            self._maybe_broadcast(event.block_number)
            return True
        except Exception as e:
            logger.exception("pool_tracking_failed", tx_id=event.tx_id, error=str(e))
            return False

    def _maybe_broadcast(self, block_number: int) -> None:
        with self._lock:
            if self._last_broadcast_block is not None and block_number <= self._last_broadcast_block:
                return
            self._last_broadcast_block = block_number
        if self._broadcaster is not None:
            self._broadcaster.emit_pool_update(block_number)
