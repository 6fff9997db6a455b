"""
Cache-backed summation queries.

get_summations(period, points) samples stored summaries over the trailing
period and caches the response under "summations:{period}:{points}" for one
aggregation interval (blocksPerInterval * block time), so a cached chart is
never more than one summary behind. Any cache failure falls back to direct
computation.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from backend_tronwatch.config.runtime_config import ConfigCache
from backend_tronwatch.config.settings import DEFAULT_BLOCK_INTERVAL_SEC
from backend_tronwatch.core.exceptions import InvalidSamplingRequest
from backend_tronwatch.database import Database
from backend_tronwatch.query.cache import CacheBackend
from backend_tronwatch.query.sampler import display_point, sample
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

PERIOD_DAYS = {"1d": 1, "7d": 7, "30d": 30, "6m": 180}
DEFAULT_PERIOD = "7d"
DEFAULT_POINTS = 288
MAX_POINTS = 2000
CACHE_PREFIX = "summations"


def validate_query(period: str | None, points: int | None) -> tuple[str, int]:
    period = (period or DEFAULT_PERIOD).strip()
    if period not in PERIOD_DAYS:
        raise InvalidSamplingRequest(
            f"unknown period {period!r}; expected one of {', '.join(PERIOD_DAYS)}"
        )
    points = DEFAULT_POINTS if points is None else int(points)
    if points < 1 or points > MAX_POINTS:
        raise InvalidSamplingRequest(f"points must be between 1 and {MAX_POINTS}, got {points}")
    return period, points


class SummationQueryService:
    def __init__(
        self,
        db: Database,
        cache: CacheBackend | None,
        config: ConfigCache,
        *,
        block_interval_sec: int = DEFAULT_BLOCK_INTERVAL_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._cache = cache
        self._config = config
        self._block_interval_sec = block_interval_sec
        self._clock = clock

    @staticmethod
    def cache_key(period: str, points: int) -> str:
        return f"{CACHE_PREFIX}:{period}:{points}"

    @property
    def ttl_sec(self) -> int:
        return self._config.get().blocks_per_interval * self._block_interval_sec

    def get_summations(self, period: str | None = None, points: int | None = None) -> dict[str, Any]:
        period, points = validate_query(period, points)
        key = self.cache_key(period, points)
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        response = self.compute(period, points)
        self._cache_set(key, response)
        return response

    def compute(self, period: str, points: int) -> dict[str, Any]:
        """Sample summaries over the trailing period; no cache involved."""
        now = int(self._clock())
        start = now - PERIOD_DAYS[period] * 86_400
        records = self._db.summations_between(start, now)
        sampled, metadata = sample(records, points, start, now)
        return {
            "data": [display_point(p) if p is not None else None for p in sampled],
            "metadata": {
                "period": period,
                "requestedPoints": metadata.requested_points,
                "actualPoints": metadata.actual_points,
                "samplingApplied": metadata.sampling_applied,
                "recordsPerPoint": metadata.records_per_point,
                "totalRecordsInDatabase": self._db.count_summations(),
                "start": start,
                "end": now,
            },
        }

    def invalidate(self) -> int:
        """Drop every cached summation response. Returns keys removed (0 when cache is down)."""
        if self._cache is None:
            return 0
        try:
            removed = self._cache.delete_pattern(f"{CACHE_PREFIX}:*")
        except Exception as e:
            logger.warning("summation_cache_invalidate_failed", error=str(e))
            return 0
        logger.info("summation_cache_invalidated", removed=removed)
        return removed

    def _cache_get(self, key: str) -> dict[str, Any] | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(key)
        except Exception as e:
            logger.warning("summation_cache_unavailable", op="get", key=key, error=str(e))
            return None

    def _cache_set(self, key: str, response: dict[str, Any]) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(key, response, self.ttl_sec)
        except Exception as e:
            logger.warning("summation_cache_unavailable", op="set", key=key, error=str(e))
