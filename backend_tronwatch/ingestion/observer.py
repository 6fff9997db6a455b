"""
Transaction observer: ingestion entry point for resource delegations.

process() is called once per transaction in block order. It persists the
canonical DelegationRecord, then runs whale detection and (for custom
permissions) pool tracking. Re-delivery of a tx_id is expected after block
reprocessing or restart: the canonical insert reports ALREADY_EXISTS, which
is logged and treated as success. Any other canonical write failure raises
PersistenceError so the block loop knows the block was not fully absorbed.
Derived steps are isolated: their failures are logged and never re-raised.
"""

from __future__ import annotations

from typing import Any

from backend_tronwatch.core.exceptions import PersistenceError
from backend_tronwatch.core.units import (
    DELEGATE_CONTRACT,
    DELEGATION_CONTRACT_TYPES,
    POOL_PERMISSION_MIN_ID,
    UNKNOWN_ADDRESS,
    ResourceType,
)
from backend_tronwatch.database import Database
from backend_tronwatch.ingestion.models import DelegationEvent
from backend_tronwatch.ingestion.pool_tracker import PoolDelegationTracker
from backend_tronwatch.ingestion.whale_detector import WhaleDetector
from backend_tronwatch.tron_listener.models import Transaction
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)


def _lock_period(parameters: dict[str, Any]) -> int | None:
    value = parameters.get("lock_period")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def build_delegation_event(tx: Transaction) -> DelegationEvent | None:
    """Classify tx; None for anything that is not a delegate/reclaim resource contract."""
    if not tx.tx_id or tx.type not in DELEGATION_CONTRACT_TYPES:
        return None
    amount = abs(int(tx.amount))
    signed = amount if tx.type == DELEGATE_CONTRACT else -amount
    params = tx.parameters or {}
    return DelegationEvent(
        tx_id=tx.tx_id,
        timestamp=tx.timestamp,
        block_number=tx.block_number,
        from_address=tx.from_address or UNKNOWN_ADDRESS,
        to_address=tx.to_address or UNKNOWN_ADDRESS,
        resource_type=int(ResourceType.parse(params.get("resource"))),
        amount_sun=signed,
        locked=bool(params.get("lock")),
        lock_period=_lock_period(params),
    )


class TransactionObserver:
    def __init__(
        self,
        db: Database,
        whale_detector: WhaleDetector | None = None,
        pool_tracker: PoolDelegationTracker | None = None,
    ) -> None:
        self._db = db
        self._whale_detector = whale_detector
        self._pool_tracker = pool_tracker

    def process(self, tx: Transaction) -> DelegationEvent | None:
        """
        Ingest one transaction. Returns the DelegationEvent (also on duplicate
        delivery) or None when tx is not a delegation. Raises PersistenceError
        when the canonical record could not be stored.
        """
        event = build_delegation_event(tx)
        if event is None:
            return None

        result = self._db.insert_if_absent(event.to_record())
        if result.is_failed:
            logger.error(
                "delegation_persist_failed",
                tx_id=event.tx_id,
                block_number=event.block_number,
                error=str(result.error),
            )
            raise PersistenceError(
                f"failed to persist delegation {event.tx_id}",
                table="delegation_records",
                cause=result.error,
            ) from result.error
        if result.is_duplicate:
            logger.warning(
                "delegation_duplicate_skipped",
                tx_id=event.tx_id,
                block_number=event.block_number,
            )
        else:
            logger.debug(
                "delegation_recorded",
                tx_id=event.tx_id,
                block_number=event.block_number,
                resource_type=event.resource_type,
                amount_sun=event.amount_sun,
            )

        self._run_whale_detection(event)
        if tx.type == DELEGATE_CONTRACT and tx.permission_id >= POOL_PERMISSION_MIN_ID:
            self._run_pool_tracking(event, tx.permission_id)
        return event

    def _run_whale_detection(self, event: DelegationEvent) -> None:
        if self._whale_detector is None:
            return
        try:
            self._whale_detector.detect(event)
        except Exception as e:
            logger.exception("observer_whale_step_failed", tx_id=event.tx_id, error=str(e))

    def _run_pool_tracking(self, event: DelegationEvent, permission_id: int) -> None:
        if self._pool_tracker is None:
            return
        try:
            self._pool_tracker.track(event, permission_id, event.lock_period)
        except Exception as e:
            logger.exception("observer_pool_step_failed", tx_id=event.tx_id, error=str(e))
