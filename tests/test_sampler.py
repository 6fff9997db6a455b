"""
Tests for time-bucket downsampling of summation records.
"""

from __future__ import annotations

import pytest

from backend_tronwatch.core.exceptions import InvalidSamplingRequest
from backend_tronwatch.database import Summation
from backend_tronwatch.query.sampler import SampledPoint, display_point, sample


def _summation(ts: int, energy: int = 0, *, start_block: int | None = None, count: int = 1) -> Summation:
    start = ts if start_block is None else start_block
    return Summation(
        timestamp=ts,
        start_block=start,
        end_block=start + 9,
        energy_delegated=energy,
        energy_reclaimed=0,
        bandwidth_delegated=0,
        bandwidth_reclaimed=0,
        net_energy=energy,
        net_bandwidth=0,
        transaction_count=count,
        total_transactions_delegated=count,
        total_transactions_undelegated=0,
        total_transactions_net=count,
    )


def test_empty_input_gives_all_gaps():
    """No records still yields exactly N entries, all None."""
    points, meta = sample([], 12, 0, 1200)
    assert points == [None] * 12
    assert meta.actual_points == 0
    assert meta.sampling_applied is False
    assert meta.records_per_point == 0.0


def test_buckets_gaps_and_last_bucket_closed():
    """Records land by timestamp; empty buckets are None; end falls in the last bucket."""
    records = [_summation(5), _summation(15, 10), _summation(18, 20), _summation(100)]
    points, meta = sample(records, 10, 0, 100)
    assert len(points) == 10
    assert points[0] is records[0]
    assert isinstance(points[1], SampledPoint)
    assert points[2:9] == [None] * 7
    assert points[9] is records[3]
    assert meta.actual_points == 3
    assert meta.total_records == 4
    assert meta.records_per_point == pytest.approx(1.33)


def test_multiple_records_are_averaged():
    """Several records in a bucket average every metric and span their blocks."""
    a = _summation(15, 10, start_block=100, count=2)
    b = _summation(18, 20, start_block=110, count=4)
    points, _ = sample([b, a], 10, 0, 100)
    point = points[1]
    assert point.energy_delegated == 15.0
    assert point.transaction_count == 3.0
    assert point.timestamp == 15
    assert point.start_block == 100
    assert point.end_block == 119
    assert point.records == 2


def test_sampling_applied_flag():
    """Sampling is reported only when records outnumber requested points."""
    records = [_summation(t) for t in (0, 30, 60, 90)]
    assert sample(records, 10, 0, 100)[1].sampling_applied is False
    assert sample(records, 2, 0, 100)[1].sampling_applied is True


def test_out_of_range_records_ignored():
    records = [_summation(-5), _summation(50), _summation(500)]
    points, meta = sample(records, 4, 0, 100)
    assert meta.total_records == 1
    assert points[2] is records[1]


def test_start_equals_end_uses_first_bucket():
    """A zero-width window puts every matching record in bucket 0."""
    records = [_summation(50, 1), _summation(50, 3)]
    points, _ = sample(records, 3, 50, 50)
    assert points[0].energy_delegated == 2.0
    assert points[1:] == [None, None]


@pytest.mark.parametrize("points, start, end", [(0, 0, 10), (-1, 0, 10), (5, 10, 0)])
def test_invalid_requests(points, start, end):
    with pytest.raises(InvalidSamplingRequest):
        sample([], points, start, end)


def test_display_point_scales_amounts():
    """Amounts are divided by 1e12 and every metric is rounded to one decimal."""
    view = display_point(_summation(7, 1_540_000_000_000, count=3))
    assert view["timestamp"] == 7
    assert view["startBlock"] == 7
    assert view["energyDelegated"] == 1.5
    assert view["netEnergy"] == 1.5
    assert view["transactionCount"] == 3.0
    assert view["totalTransactionsNet"] == 3.0
