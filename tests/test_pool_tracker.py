"""
Tests for pool delegation tracking: rental math, pool attribution, broadcast throttle.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from backend_tronwatch.ingestion.models import DelegationEvent
from backend_tronwatch.ingestion.pool_tracker import (
    PoolDelegationTracker,
    normalized_amount_trx,
    rental_period_minutes,
)
from backend_tronwatch.pools.membership import PoolMembershipResolver

MEMBER = "TMemberAccount"
POOL = "TPoolAddress"


def _event(tx_id: str, block_number: int, amount_sun: int = 1_000_000) -> DelegationEvent:
    return DelegationEvent(
        tx_id=tx_id,
        timestamp=1_700_000_000 + block_number,
        block_number=block_number,
        from_address=MEMBER,
        to_address="TRenter",
        resource_type=1,
        amount_sun=amount_sun,
        locked=True,
        lock_period=28_800,
    )


def test_rental_period_minutes():
    """Blocks times block interval, in minutes; no lock is None."""
    assert rental_period_minutes(28_800, 3) == 1440.0
    assert rental_period_minutes(20, 3) == 1.0
    assert rental_period_minutes(None) is None
    assert rental_period_minutes(0) is None


@pytest.mark.parametrize(
    "minutes, expected",
    [(None, 100.0), (60.0, 100.0), (1440.0, 100.0), (4320.0, 300.0)],
)
def test_normalized_amount_never_below_one_day(minutes, expected):
    """Rentals shorter than a day count as one day."""
    assert normalized_amount_trx(100.0, minutes) == pytest.approx(expected)


def test_broadcast_once_per_new_block(db):
    """Blocks 100, 100, 101 trigger exactly two broadcasts."""
    broadcaster = MagicMock()
    tracker = PoolDelegationTracker(db, PoolMembershipResolver(db), broadcaster)
    assert tracker.track(_event("a", 100), 3, 28_800)
    assert tracker.track(_event("b", 100), 3, 28_800)
    assert tracker.track(_event("c", 101), 3, 28_800)
    assert [c.args[0] for c in broadcaster.emit_pool_update.call_args_list] == [100, 101]
    assert tracker.last_broadcast_block == 101


def test_duplicate_does_not_broadcast(db):
    """Re-delivered tx is skipped and does not re-trigger a broadcast."""
    broadcaster = MagicMock()
    tracker = PoolDelegationTracker(db, PoolMembershipResolver(db), broadcaster)
    tracker.track(_event("a", 100), 3, None)
    assert tracker.track(_event("a", 100), 3, None) is False
    assert broadcaster.emit_pool_update.call_count == 1


def test_reclaim_and_low_permission_skipped(db):
    """Reclaims and permission ids below 3 are not pool delegations."""
    tracker = PoolDelegationTracker(db, PoolMembershipResolver(db))
    assert tracker.track(_event("r", 100, amount_sun=-1_000_000), 3, None) is False
    assert tracker.track(_event("p", 100), 2, None) is False
    assert db.table_counts()["pool_delegations"] == 0


def test_known_pool_attributed_at_ingestion(db):
    """A known membership is stored on the row as pool_address."""
    db.record_pool_membership(MEMBER, POOL, 3, "rent", False)
    tracker = PoolDelegationTracker(db, PoolMembershipResolver(db))
    tracker.track(_event("a", 100), 3, 28_800)
    rows = db.pool_delegations_for(POOL)
    assert len(rows) == 1
    assert rows[0].pool_address == POOL
    assert rows[0].normalized_amount_trx == pytest.approx(1.0)


def test_tracker_never_raises():
    """Storage exceptions are logged, not propagated."""
    db = MagicMock()
    db.insert_if_absent.side_effect = RuntimeError("db gone")
    resolver = MagicMock()
    resolver.get_pool_for_account.return_value = None
    tracker = PoolDelegationTracker(db, resolver)
    assert tracker.track(_event("x", 1), 3, None) is False
