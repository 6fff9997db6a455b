"""
Retention purge: delete detail rows older than detailsRetentionDays and
summaries older than summationRetentionMonths (30-day months).

Deletes by timestamp cutoff only, so it runs safely alongside ingestion,
which inserts rows with current timestamps.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from backend_tronwatch.config.runtime_config import Config, ConfigCache
from backend_tronwatch.database import Database
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 86_400
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class PurgeResult:
    details_deleted: int = 0
    whales_deleted: int = 0
    pool_delegations_deleted: int = 0
    summations_deleted: int = 0


def purge_cutoffs(config: Config, now: float) -> tuple[int, int]:
    """Return (details_cutoff, summation_cutoff) as Unix seconds."""
    details = int(now - config.details_retention_days * SECONDS_PER_DAY)
    summations = int(now - config.summation_retention_months * DAYS_PER_MONTH * SECONDS_PER_DAY)
    return details, summations


class PurgeJob:
    def __init__(
        self,
        db: Database,
        config: ConfigCache,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._config = config
        self._clock = clock

    def run(self) -> PurgeResult:
        cfg = self._config.get()
        details_cutoff, summation_cutoff = purge_cutoffs(cfg, self._clock())
        result = PurgeResult(
            details_deleted=self._db.delete_delegations_before(details_cutoff),
            whales_deleted=self._db.delete_whales_before(details_cutoff),
            pool_delegations_deleted=self._db.delete_pool_delegations_before(details_cutoff),
            summations_deleted=self._db.delete_summations_before(summation_cutoff),
        )
        logger.info(
            "purge_done",
            details_deleted=result.details_deleted,
            whales_deleted=result.whales_deleted,
            pool_delegations_deleted=result.pool_delegations_deleted,
            summations_deleted=result.summations_deleted,
            details_cutoff=details_cutoff,
            summation_cutoff=summation_cutoff,
        )
        return result

    def run_safe(self) -> PurgeResult | None:
        try:
            return self.run()
        except Exception as e:
            logger.exception("purge_job_failed", error=str(e))
            return None
