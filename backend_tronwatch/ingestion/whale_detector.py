"""
Whale detection: delegations or reclaims whose magnitude reaches the configured
TRX threshold (inclusive). Best-effort: nothing here raises into ingestion.
"""

from __future__ import annotations

from backend_tronwatch.config.runtime_config import ConfigCache
from backend_tronwatch.core.units import SUN_PER_TRX, sun_to_trx
from backend_tronwatch.database import Database, WhaleDelegation
from backend_tronwatch.ingestion.models import DelegationEvent
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

MAX_RECENT_WHALES = 100
MAX_TIMESERIES_DAYS = 90


class WhaleDetector:
    def __init__(self, db: Database, config: ConfigCache) -> None:
        self._db = db
        self._config = config

    def is_whale(self, event: DelegationEvent) -> bool:
        cfg = self._config.get()
        if not cfg.whale_detection_enabled:
            return False
        return abs(event.amount_sun) >= cfg.whale_threshold_trx * SUN_PER_TRX

    def detect(self, event: DelegationEvent) -> bool:
        """Persist one WhaleDelegation (absolute amount) when event qualifies. Returns True if inserted."""
        try:
            if not self.is_whale(event):
                return False
            amount_sun = abs(event.amount_sun)
            result = self._db.insert_if_absent(
                WhaleDelegation(
                    tx_id=event.tx_id,
                    timestamp=event.timestamp,
                    block_number=event.block_number,
                    from_address=event.from_address,
                    to_address=event.to_address,
                    resource_type=event.resource_type,
                    amount_sun=amount_sun,
                    amount_trx=sun_to_trx(amount_sun),
                )
            )
            if result.is_duplicate:
                logger.debug("whale_duplicate_skipped", tx_id=event.tx_id)
                return False
            if result.is_failed:
                logger.warning("whale_persist_failed", tx_id=event.tx_id, error=str(result.error))
                return False
            logger.info(
                "whale_delegation_detected",
                tx_id=event.tx_id,
                amount_trx=sun_to_trx(amount_sun),
                resource_type=event.resource_type,
                reclaim=event.is_reclaim,
            )
            return True
        except Exception as e:
            logger.exception("whale_detection_failed", tx_id=event.tx_id, error=str(e))
            return False


def recent_whales(db: Database, limit: int = 50, resource_type: int | None = None) -> list[dict]:
    """Most recent whale rows first; limit clamped to [1, 100]."""
    limit = max(1, min(MAX_RECENT_WHALES, int(limit)))
    return [
        {
            "txId": row.tx_id,
            "timestamp": row.timestamp,
            "blockNumber": row.block_number,
            "fromAddress": row.from_address,
            "toAddress": row.to_address,
            "resourceType": row.resource_type,
            "amountSun": row.amount_sun,
            "amountTrx": row.amount_trx,
        }
        for row in db.recent_whales(limit, resource_type)
    ]


def whale_timeseries(db: Database, days: int = 30, *, now: int) -> list[dict]:
    """Daily whale volume for the last days (clamped to [1, 90])."""
    days = max(1, min(MAX_TIMESERIES_DAYS, int(days)))
    since = now - days * 86_400
    return [
        {
            "date": row["date"],
            "volumeTrx": row["volume_trx"],
            "maxTrx": row["max_trx"],
            "count": row["count"],
        }
        for row in db.whale_daily_series(since)
    ]
