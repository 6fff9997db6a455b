"""
Runtime tunables and their TTL cache.

Config is an immutable value read from the key-value store under key
"config". Each consuming component owns a ConfigCache; staleness is decided
by refresh_if_stale(), a pure function of (snapshot, now), so tests can
drive expiry with a fake clock instead of timers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

CONFIG_KEY = "config"
DEFAULT_CONFIG_TTL_SEC = 300.0

DEFAULT_DETAILS_RETENTION_DAYS = 2
DEFAULT_SUMMATION_RETENTION_MONTHS = 6
DEFAULT_PURGE_FREQUENCY_HOURS = 1
# 300 blocks at 3s per block is roughly five minutes of chain time
DEFAULT_BLOCKS_PER_INTERVAL = 300
DEFAULT_WHALE_THRESHOLD_TRX = 2_000_000

ConfigLoader = Callable[[], "Mapping[str, Any] | None"]


@dataclass(frozen=True)
class Config:
    """Operator tunables for retention, aggregation and whale detection."""

    details_retention_days: int = DEFAULT_DETAILS_RETENTION_DAYS
    """Delegation detail rows older than this are purged."""
    summation_retention_months: int = DEFAULT_SUMMATION_RETENTION_MONTHS
    """Summation rows older than this (30-day months) are purged."""
    purge_frequency_hours: int = DEFAULT_PURGE_FREQUENCY_HOURS
    blocks_per_interval: int = DEFAULT_BLOCKS_PER_INTERVAL
    """Block count rolled into one summation record."""
    whale_detection_enabled: bool = True
    whale_threshold_trx: int = DEFAULT_WHALE_THRESHOLD_TRX
    """Inclusive lower bound, in TRX, for a whale delegation."""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Config":
        """Build from the stored camelCase document; missing or invalid numbers use defaults."""
        if not data:
            return cls()
        return cls(
            details_retention_days=_positive_int(
                data.get("detailsRetentionDays"), DEFAULT_DETAILS_RETENTION_DAYS
            ),
            summation_retention_months=_positive_int(
                data.get("summationRetentionMonths"), DEFAULT_SUMMATION_RETENTION_MONTHS
            ),
            purge_frequency_hours=_positive_int(
                data.get("purgeFrequencyHours"), DEFAULT_PURGE_FREQUENCY_HOURS
            ),
            blocks_per_interval=_positive_int(
                data.get("blocksPerInterval"), DEFAULT_BLOCKS_PER_INTERVAL
            ),
            whale_detection_enabled=bool(data.get("whaleDetectionEnabled", True)),
            whale_threshold_trx=_positive_int(
                data.get("whaleThresholdTrx"), DEFAULT_WHALE_THRESHOLD_TRX
            ),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "detailsRetentionDays": self.details_retention_days,
            "summationRetentionMonths": self.summation_retention_months,
            "purgeFrequencyHours": self.purge_frequency_hours,
            "blocksPerInterval": self.blocks_per_interval,
            "whaleDetectionEnabled": self.whale_detection_enabled,
            "whaleThresholdTrx": self.whale_threshold_trx,
        }

    def merged(self, updates: Mapping[str, Any]) -> "Config":
        """
        Apply a partial camelCase update. Numeric values follow max(value or default, 1);
        unknown keys are ignored.
        """
        current = self.to_mapping()
        defaults = Config().to_mapping()
        for key, value in updates.items():
            if key not in current or value is None:
                continue
            if key == "whaleDetectionEnabled":
                current[key] = bool(value)
            else:
                current[key] = max(_positive_int(value, defaults[key]), 1)
        return replace(self, **_snake_case(current))


def _snake_case(mapping: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "details_retention_days": mapping["detailsRetentionDays"],
        "summation_retention_months": mapping["summationRetentionMonths"],
        "purge_frequency_hours": mapping["purgeFrequencyHours"],
        "blocks_per_interval": mapping["blocksPerInterval"],
        "whale_detection_enabled": mapping["whaleDetectionEnabled"],
        "whale_threshold_trx": mapping["whaleThresholdTrx"],
    }


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class ConfigSnapshot:
    """A Config plus the monotonic time at which it must be reloaded."""

    config: Config
    expires_at: float


def refresh_if_stale(
    snapshot: ConfigSnapshot | None,
    now: float,
    loader: ConfigLoader,
    ttl_sec: float = DEFAULT_CONFIG_TTL_SEC,
) -> ConfigSnapshot:
    """
    Return snapshot unchanged while now < expires_at; otherwise reload.

    A loader returning None (nothing stored yet) yields default Config. A
    loader exception keeps the previous config (or defaults) and does not
    extend the expiry, so the next read retries.
    """
    if snapshot is not None and now < snapshot.expires_at:
        return snapshot
    try:
        data = loader()
    except Exception as e:
        logger.warning("config_reload_failed", error=str(e))
        previous = snapshot.config if snapshot is not None else Config()
        return ConfigSnapshot(config=previous, expires_at=now)
    return ConfigSnapshot(config=Config.from_mapping(data), expires_at=now + ttl_sec)


class ConfigCache:
    """Per-component lazily refreshed view of Config."""

    def __init__(
        self,
        loader: ConfigLoader,
        ttl_sec: float = DEFAULT_CONFIG_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl_sec = ttl_sec
        self._clock = clock
        self._snapshot: ConfigSnapshot | None = None

    def get(self) -> Config:
        self._snapshot = refresh_if_stale(
            self._snapshot, self._clock(), self._loader, self._ttl_sec
        )
        return self._snapshot.config

    def invalidate(self) -> None:
        self._snapshot = None

    @property
    def snapshot(self) -> ConfigSnapshot | None:
        return self._snapshot
