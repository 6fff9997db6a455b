"""
Tests for TransactionObserver: canonical record, sign, idempotence, derived steps.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from backend_tronwatch.config.runtime_config import Config, ConfigCache
from backend_tronwatch.core.exceptions import PersistenceError
from backend_tronwatch.database import InsertResult
from backend_tronwatch.ingestion.observer import TransactionObserver, build_delegation_event
from backend_tronwatch.ingestion.pool_tracker import PoolDelegationTracker
from backend_tronwatch.ingestion.whale_detector import WhaleDetector
from backend_tronwatch.pools.membership import PoolMembershipResolver


def _whale_detector(db, **config) -> WhaleDetector:
    cfg = Config(**config)
    return WhaleDetector(db, ConfigCache(lambda: cfg.to_mapping(), ttl_sec=0))


def test_build_event_sign_follows_type(make_tx):
    """Delegate is positive, reclaim negative, whatever the reported amount's sign."""
    delegate = build_delegation_event(make_tx(amount=5))
    reclaim = build_delegation_event(make_tx(type="UnDelegateResourceContract", amount=5))
    assert delegate.amount_sun == 5 and delegate.is_delegation
    assert reclaim.amount_sun == -5 and reclaim.is_reclaim


def test_build_event_defaults(make_tx):
    """Missing resource is BANDWIDTH; missing parties become "unknown"."""
    event = build_delegation_event(make_tx(resource=None, from_address=None, to_address=None))
    assert event.resource_type == 0
    assert event.from_address == "unknown"
    assert event.to_address == "unknown"
    assert event.locked is False
    assert event.lock_period is None


def test_non_delegation_ignored(db, make_tx):
    """Other contract types produce no record."""
    observer = TransactionObserver(db)
    assert observer.process(make_tx(type="TransferContract")) is None
    assert db.table_counts()["delegations"] == 0


def test_whale_delegation_scenario(db, make_tx):
    """2,000,000 TRX energy delegation stores one record and one whale row."""
    observer = TransactionObserver(db, _whale_detector(db))
    event = observer.process(make_tx("whale-1", amount=2_000_000_000_000))
    assert event.amount_sun == 2_000_000_000_000
    record = db.get_delegation("whale-1")
    assert record.resource_type == 1
    whales = db.recent_whales(10)
    assert len(whales) == 1
    assert whales[0].amount_trx == 2_000_000.0


def test_redelivery_is_idempotent(db, make_tx):
    """Processing the same pool-eligible tx twice leaves one row in every table."""
    tracker = PoolDelegationTracker(db, PoolMembershipResolver(db))
    observer = TransactionObserver(db, _whale_detector(db), pool_tracker=tracker)
    tx = make_tx("dup", amount=3_000_000_000_000, permission_id=3)
    observer.process(tx)
    assert observer.process(tx) is not None
    counts = db.table_counts()
    assert counts["delegations"] == 1
    assert counts["whales"] == 1
    assert counts["pool_delegations"] == 1


def test_reclaim_stored_negative(db, make_tx):
    """Reclaims are stored with a negative amount."""
    observer = TransactionObserver(db)
    observer.process(make_tx("r1", type="UnDelegateResourceContract", amount=7_000_000))
    assert db.get_delegation("r1").amount_sun == -7_000_000


def test_failed_canonical_write_raises(make_tx):
    """A storage failure other than duplicate raises PersistenceError."""
    db = MagicMock()
    db.insert_if_absent.return_value = InsertResult.failed(RuntimeError("disk full"))
    whale = MagicMock()
    observer = TransactionObserver(db, whale)
    with pytest.raises(PersistenceError) as exc_info:
        observer.process(make_tx())
    assert exc_info.value.table == "delegation_records"
    whale.detect.assert_not_called()


def test_whale_failure_isolated(db, make_tx):
    """A failing whale step is logged; the canonical record stays."""
    whale = MagicMock()
    whale.detect.side_effect = RuntimeError("boom")
    observer = TransactionObserver(db, whale)
    assert observer.process(make_tx("iso")) is not None
    assert db.get_delegation("iso") is not None


def test_pool_tracking_gated_by_type_and_permission(db, make_tx):
    """Only DelegateResourceContract under permission >= 3 reaches the pool tracker."""
    tracker = MagicMock()
    observer = TransactionObserver(db, pool_tracker=tracker)
    observer.process(make_tx("p0", permission_id=0))
    observer.process(make_tx("p2", permission_id=2))
    observer.process(make_tx("u3", type="UnDelegateResourceContract", permission_id=3))
    observer.process(make_tx("p3", permission_id=3, lock_period=28800))
    assert tracker.track.call_count == 1
    event, permission_id, lock_period = tracker.track.call_args.args
    assert event.tx_id == "p3"
    assert permission_id == 3
    assert lock_period == 28800


def test_pool_delegation_recorded_end_to_end(db, make_tx):
    """A permission-3 delegation lands in pool_delegations with rental math applied."""
    resolver = PoolMembershipResolver(db)
    tracker = PoolDelegationTracker(db, resolver)
    observer = TransactionObserver(db, pool_tracker=tracker)
    observer.process(make_tx("pd", amount=10_000_000, permission_id=3, lock=True, lock_period=57_600))
    rows = db.pool_delegations_for("TPoolMemberAccount1111111111111111")
    assert len(rows) == 1
    row = rows[0]
    assert row.pool_address is None
    assert row.rental_period_minutes == 2880.0
    assert row.normalized_amount_trx == 20.0
    assert resolver.queue_length == 1
