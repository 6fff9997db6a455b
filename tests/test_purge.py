"""
Tests for the retention purge job.
"""

from __future__ import annotations

from backend_tronwatch.config.runtime_config import Config, ConfigCache
from backend_tronwatch.database import DelegationRecord, Summation, WhaleDelegation
from backend_tronwatch.jobs.purge import PurgeJob, purge_cutoffs

NOW = 1_800_000_000
DAY = 86_400


def test_purge_cutoffs():
    """Days and 30-day months back from now."""
    details, summations = purge_cutoffs(Config(details_retention_days=2, summation_retention_months=6), NOW)
    assert details == NOW - 2 * DAY
    assert summations == NOW - 180 * DAY


def test_purge_deletes_only_expired_rows(db):
    """Rows older than the cutoffs go; newer rows stay."""
    for tx_id, ts in [("old", NOW - 3 * DAY), ("new", NOW - DAY)]:
        db.insert_if_absent(
            DelegationRecord(
                tx_id=tx_id, timestamp=ts, block_number=1, from_address="a",
                to_address="b", resource_type=1, amount_sun=1, locked=False,
            )
        )
        db.insert_if_absent(
            WhaleDelegation(
                tx_id=tx_id, timestamp=ts, block_number=1, from_address="a",
                to_address="b", resource_type=1, amount_sun=1, amount_trx=1.0,
            )
        )
    db.insert_if_absent(Summation(timestamp=NOW - 200 * DAY, start_block=0, end_block=9))
    db.insert_if_absent(Summation(timestamp=NOW - 10 * DAY, start_block=10, end_block=19))

    job = PurgeJob(db, ConfigCache(lambda: Config().to_mapping(), ttl_sec=0), clock=lambda: NOW)
    result = job.run()
    assert result.details_deleted == 1
    assert result.whales_deleted == 1
    assert result.summations_deleted == 1
    assert db.get_delegation("new") is not None
    assert db.count_summations() == 1


def test_purge_run_safe_returns_none_on_error():
    """Failures are logged and reported as None."""

    def loader():
        raise RuntimeError("boom")

    class BrokenDb:
        def delete_delegations_before(self, cutoff):
            raise RuntimeError("locked")

    job = PurgeJob(BrokenDb(), ConfigCache(loader, ttl_sec=0), clock=lambda: NOW)
    assert job.run_safe() is None
