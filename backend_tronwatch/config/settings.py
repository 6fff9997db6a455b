"""
Process settings loaded from environment variables.

Tunables that operators change at runtime (retention, whale threshold,
blocks per interval) are not here; they live in the key-value store and are
read through config.runtime_config.ConfigCache.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_tronwatch.config.env import (
    env_bool,
    env_float,
    env_int,
    env_str,
    get_database_url,
    get_trongrid_url,
    load_tronwatch_env,
)

DEFAULT_DISCOVERY_INTERVAL_SEC = 30.0
DEFAULT_DISCOVERY_BATCH_SIZE = 10
DEFAULT_SUMMATION_INTERVAL_SEC = 300.0
DEFAULT_BROADCAST_BACKLOG_THRESHOLD = 10
DEFAULT_BROADCAST_MAX_WORKERS = 2
DEFAULT_CONFIG_TTL_SEC = 300.0
# TRON produces one block every 3 seconds
DEFAULT_BLOCK_INTERVAL_SEC = 3
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8000


@dataclass
class Settings:
    """Process-wide settings; built once at startup by get_settings()."""

    database_url: str
    """SQLAlchemy URL for all tables."""
    redis_url: str = ""
    """Cache backend URL; empty selects the in-process TTL cache."""
    trongrid_url: str = "https://api.trongrid.io"
    trongrid_api_key: str = ""
    discovery_interval_sec: float = DEFAULT_DISCOVERY_INTERVAL_SEC
    """Seconds between pool discovery cycles."""
    discovery_batch_size: int = DEFAULT_DISCOVERY_BATCH_SIZE
    """Max queued accounts looked up per discovery cycle."""
    discovery_enabled: bool = True
    summation_interval_sec: float = DEFAULT_SUMMATION_INTERVAL_SEC
    """Wall-clock interval of the summation job."""
    scheduler_enabled: bool = True
    broadcast_backlog_threshold: int = DEFAULT_BROADCAST_BACKLOG_THRESHOLD
    """In-flight pool broadcasts at which a critical backlog log is emitted."""
    broadcast_max_workers: int = DEFAULT_BROADCAST_MAX_WORKERS
    config_ttl_sec: float = DEFAULT_CONFIG_TTL_SEC
    block_interval_sec: int = DEFAULT_BLOCK_INTERVAL_SEC
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT

    def __post_init__(self) -> None:
        self.discovery_interval_sec = max(1.0, float(self.discovery_interval_sec))
        self.discovery_batch_size = max(1, int(self.discovery_batch_size))
        self.summation_interval_sec = max(1.0, float(self.summation_interval_sec))
        self.broadcast_backlog_threshold = max(1, int(self.broadcast_backlog_threshold))
        self.broadcast_max_workers = max(1, int(self.broadcast_max_workers))
        self.config_ttl_sec = max(0.0, float(self.config_ttl_sec))
        self.block_interval_sec = max(1, int(self.block_interval_sec))


def get_settings() -> Settings:
    """Return settings from the current environment (.env loaded first)."""
    load_tronwatch_env()
    return Settings(
        database_url=get_database_url(),
        redis_url=env_str("REDIS_URL"),
        trongrid_url=get_trongrid_url(),
        trongrid_api_key=env_str("TRONGRID_API_KEY"),
        discovery_interval_sec=env_float("DISCOVERY_INTERVAL_SEC", DEFAULT_DISCOVERY_INTERVAL_SEC),
        discovery_batch_size=env_int("DISCOVERY_BATCH_SIZE", DEFAULT_DISCOVERY_BATCH_SIZE),
        discovery_enabled=env_bool("DISCOVERY_ENABLED", True),
        summation_interval_sec=env_float("SUMMATION_INTERVAL_SEC", DEFAULT_SUMMATION_INTERVAL_SEC),
        scheduler_enabled=env_bool("SCHEDULER_ENABLED", True),
        broadcast_backlog_threshold=env_int(
            "BROADCAST_BACKLOG_THRESHOLD", DEFAULT_BROADCAST_BACKLOG_THRESHOLD
        ),
        broadcast_max_workers=env_int("BROADCAST_MAX_WORKERS", DEFAULT_BROADCAST_MAX_WORKERS),
        config_ttl_sec=env_float("CONFIG_TTL_SEC", DEFAULT_CONFIG_TTL_SEC),
        block_interval_sec=env_int("BLOCK_INTERVAL_SEC", DEFAULT_BLOCK_INTERVAL_SEC),
        api_host=env_str("API_HOST", DEFAULT_API_HOST),
        api_port=env_int("API_PORT", DEFAULT_API_PORT),
    )
