"""
Tests for whale detection threshold, toggles and the whale read views.
"""

from __future__ import annotations

from unittest.mock import MagicMock

from backend_tronwatch.config.runtime_config import Config, ConfigCache
from backend_tronwatch.database import InsertResult
from backend_tronwatch.ingestion.models import DelegationEvent
from backend_tronwatch.ingestion.whale_detector import WhaleDetector, recent_whales, whale_timeseries

SUN = 1_000_000


def _event(tx_id: str, amount_sun: int, *, timestamp: int = 1_700_000_000, resource_type: int = 1) -> DelegationEvent:
    return DelegationEvent(
        tx_id=tx_id,
        timestamp=timestamp,
        block_number=1,
        from_address="TFrom",
        to_address="TTo",
        resource_type=resource_type,
        amount_sun=amount_sun,
    )


def _detector(db, **config) -> WhaleDetector:
    cfg = Config(**config)
    return WhaleDetector(db, ConfigCache(lambda: cfg.to_mapping(), ttl_sec=0))


def test_threshold_is_inclusive(db):
    """Exactly the threshold is a whale; one SUN less is not."""
    detector = _detector(db, whale_threshold_trx=1000)
    assert detector.detect(_event("at", 1000 * SUN)) is True
    assert detector.detect(_event("below", 1000 * SUN - 1)) is False
    assert [w.tx_id for w in db.recent_whales(10)] == ["at"]


def test_reclaim_stored_with_absolute_amount(db):
    """Reclaims qualify on magnitude and are stored positive."""
    detector = _detector(db, whale_threshold_trx=1000)
    assert detector.detect(_event("r", -5000 * SUN)) is True
    row = db.recent_whales(1)[0]
    assert row.amount_sun == 5000 * SUN
    assert row.amount_trx == 5000.0


def test_disabled_detection(db):
    """whaleDetectionEnabled=False stores nothing."""
    detector = _detector(db, whale_detection_enabled=False, whale_threshold_trx=1)
    assert detector.detect(_event("x", 10**15)) is False
    assert db.recent_whales(10) == []


def test_duplicate_and_failure_do_not_raise():
    """Duplicate and failed writes return False without raising."""
    db = MagicMock()
    detector = WhaleDetector(db, ConfigCache(lambda: Config(whale_threshold_trx=1).to_mapping(), ttl_sec=0))
    db.insert_if_absent.return_value = InsertResult.already_exists()
    assert detector.detect(_event("d", 10 * SUN)) is False
    db.insert_if_absent.return_value = InsertResult.failed(RuntimeError("locked"))
    assert detector.detect(_event("f", 10 * SUN)) is False
    db.insert_if_absent.side_effect = RuntimeError("unexpected")
    assert detector.detect(_event("e", 10 * SUN)) is False


def test_recent_whales_order_limit_and_filter(db):
    """Newest first, limit clamped to 100, optional resource filter."""
    detector = _detector(db, whale_threshold_trx=1)
    detector.detect(_event("old", 5 * SUN, timestamp=100, resource_type=0))
    detector.detect(_event("new", 5 * SUN, timestamp=200, resource_type=1))
    rows = recent_whales(db, limit=500)
    assert [r["txId"] for r in rows] == ["new", "old"]
    assert recent_whales(db, limit=0)[0]["txId"] == "new"
    assert [r["txId"] for r in recent_whales(db, resource_type=0)] == ["old"]


def test_whale_timeseries_window(db):
    """Series covers only the trailing days."""
    now = 1_700_006_400 + 86_400
    detector = _detector(db, whale_threshold_trx=1)
    detector.detect(_event("in", 3 * SUN, timestamp=now - 3600))
    detector.detect(_event("out", 3 * SUN, timestamp=now - 5 * 86_400))
    series = whale_timeseries(db, days=1, now=now)
    assert len(series) == 1
    assert series[0]["count"] == 1
    assert series[0]["volumeTrx"] == 3.0
