"""
Time-bucket downsampling of summation records into a fixed number of chart points.

[start, end] is split into N equal-width buckets. Bucket i covers
[start + i*w, start + (i+1)*w); the last bucket also includes end. Each
bucket yields None when no record falls in it (a gap the chart must show),
the record itself when exactly one does, and the average of every metric
when several do. The output always has exactly N entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Union

from backend_tronwatch.core.exceptions import InvalidSamplingRequest
from backend_tronwatch.core.units import SUMMATION_DISPLAY_DIVISOR
from backend_tronwatch.database import Summation

METRIC_FIELDS = (
    "energy_delegated",
    "energy_reclaimed",
    "bandwidth_delegated",
    "bandwidth_reclaimed",
    "net_energy",
    "net_bandwidth",
    "transaction_count",
    "total_transactions_delegated",
    "total_transactions_undelegated",
    "total_transactions_net",
)
# Amount metrics are SUN and are scaled for display; counts are not
AMOUNT_FIELDS = METRIC_FIELDS[:6]


@dataclass(frozen=True)
class SampledPoint:
    """Average of several summations that fell into one bucket."""

    timestamp: int
    start_block: int
    end_block: int
    energy_delegated: float
    energy_reclaimed: float
    bandwidth_delegated: float
    bandwidth_reclaimed: float
    net_energy: float
    net_bandwidth: float
    transaction_count: float
    total_transactions_delegated: float
    total_transactions_undelegated: float
    total_transactions_net: float
    records: int = 1


Point = Union[Summation, SampledPoint]


@dataclass(frozen=True)
class SamplingMetadata:
    requested_points: int
    actual_points: int
    """Buckets that hold at least one record."""
    sampling_applied: bool
    """True when there were more records than requested points."""
    total_records: int

    @property
    def records_per_point(self) -> float:
        if self.actual_points == 0:
            return 0.0
        return round(self.total_records / self.actual_points, 2)


def _average(records: Sequence[Any]) -> SampledPoint:
    n = len(records)
    metrics = {f: sum(getattr(r, f) for r in records) / n for f in METRIC_FIELDS}
    return SampledPoint(
        timestamp=records[0].timestamp,
        start_block=min(r.start_block for r in records),
        end_block=max(r.end_block for r in records),
        records=n,
        **metrics,
    )


def sample(
    records: Sequence[Any],
    requested_points: int,
    start: int,
    end: int,
) -> tuple[list[Point | None], SamplingMetadata]:
    """
    Downsample records (anything with timestamp and the summation metric fields)
    into exactly requested_points buckets over [start, end] (Unix seconds).

    Raises InvalidSamplingRequest when requested_points <= 0 or end < start.
    When start == end every in-range record lands in the first bucket.
    """
    if isinstance(requested_points, bool) or int(requested_points) <= 0:
        raise InvalidSamplingRequest(f"requested_points must be >= 1, got {requested_points}")
    if end < start:
        raise InvalidSamplingRequest(f"end ({end}) is before start ({start})")
    n = int(requested_points)
    span = end - start
    buckets: list[list[Any]] = [[] for _ in range(n)]
    in_range = 0
    for record in sorted(records, key=lambda r: r.timestamp):
        ts = record.timestamp
        if ts < start or ts > end:
            continue
        in_range += 1
        if span == 0:
            index = 0
        else:
            index = min(int((ts - start) * n // span), n - 1)
        buckets[index].append(record)

    points: list[Point | None] = []
    for bucket in buckets:
        if not bucket:
            points.append(None)
        elif len(bucket) == 1:
            points.append(bucket[0])
        else:
            points.append(_average(bucket))

    metadata = SamplingMetadata(
        requested_points=n,
        actual_points=sum(1 for p in points if p is not None),
        sampling_applied=len(records) > n,
        total_records=in_range,
    )
    return points, metadata


def display_point(point: Point) -> dict[str, Any]:
    """API/event view: amounts / 1e12 rounded to one decimal, counts rounded to one decimal."""
    out: dict[str, Any] = {
        "timestamp": point.timestamp,
        "startBlock": point.start_block,
        "endBlock": point.end_block,
    }
    for field in METRIC_FIELDS:
        value = getattr(point, field)
        if field in AMOUNT_FIELDS:
            value = value / SUMMATION_DISPLAY_DIVISOR
        out[_camel(field)] = round(float(value), 1)
    return out


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
