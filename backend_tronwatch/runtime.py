"""
Process wiring: build every component once and pass references explicitly.

Container owns the Database, per-component config caches, the pool resolver
and discovery loop, the ingestion observer chain, the broadcaster, the
scheduled jobs and the query service. start()/stop() manage the background
threads (scheduler, discovery, broadcast pool) for the API lifespan or the
standalone runner.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping

from backend_tronwatch.config.runtime_config import CONFIG_KEY, Config, ConfigCache
from backend_tronwatch.config.settings import Settings, get_settings
from backend_tronwatch.database import Database
from backend_tronwatch.ingestion.observer import TransactionObserver
from backend_tronwatch.ingestion.pool_tracker import PoolDelegationTracker
from backend_tronwatch.ingestion.registry import ObserverRegistry, build_registry
from backend_tronwatch.ingestion.token_launch import TokenLaunchDetector
from backend_tronwatch.ingestion.whale_detector import WhaleDetector
from backend_tronwatch.jobs.purge import PurgeJob
from backend_tronwatch.jobs.scheduler import JobScheduler
from backend_tronwatch.jobs.summation import SummationJob
from backend_tronwatch.pools.aggregation import aggregate_pools
from backend_tronwatch.pools.membership import AccountFetcher, PoolDiscoveryService, PoolMembershipResolver
from backend_tronwatch.query.cache import CacheBackend, build_cache
from backend_tronwatch.query.service import SummationQueryService
from backend_tronwatch.realtime.broadcaster import PoolUpdateBroadcaster
from backend_tronwatch.realtime.hub import RoomHub
from backend_tronwatch.tron_listener.trongrid import TronGridClient
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)


def ensure_default_config(db: Database) -> Config:
    """Store default tunables when none exist yet; return the effective Config."""
    raw = db.get_value(CONFIG_KEY)
    if raw is None:
        config = Config()
        db.set_value(CONFIG_KEY, config.to_mapping())
        logger.info("config_defaults_stored", **config.to_mapping())
        return config
    return Config.from_mapping(raw)


@dataclass
class Container:
    settings: Settings
    db: Database
    hub: RoomHub
    resolver: PoolMembershipResolver
    discovery: PoolDiscoveryService
    broadcaster: PoolUpdateBroadcaster
    whale_detector: WhaleDetector
    pool_tracker: PoolDelegationTracker
    observer: TransactionObserver
    token_launches: TokenLaunchDetector
    registry: ObserverRegistry
    summation_job: SummationJob
    purge_job: PurgeJob
    scheduler: JobScheduler
    query_service: SummationQueryService
    config_caches: list[ConfigCache] = field(default_factory=list)
    started: bool = False

    def read_config(self) -> Config:
        return Config.from_mapping(self.db.get_value(CONFIG_KEY))

    def update_config(self, updates: Mapping[str, Any]) -> Config:
        """Merge, persist, make every component see it now, and reschedule purge."""
        config = self.read_config().merged(updates)
        self.db.set_value(CONFIG_KEY, config.to_mapping())
        for cache in self.config_caches:
            cache.invalidate()
        self.scheduler.reschedule_purge(config.purge_frequency_hours)
        logger.info("config_updated", **config.to_mapping())
        return config

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if self.started:
            return
        if loop is not None:
            self.hub.bind_loop(loop)
        if self.settings.scheduler_enabled:
            self.scheduler.start()
        if self.settings.discovery_enabled:
            self.discovery.start()
        self.started = True
        logger.info(
            "runtime_started",
            scheduler=self.settings.scheduler_enabled,
            discovery=self.settings.discovery_enabled,
        )

    def stop(self) -> None:
        self.scheduler.shutdown(wait=False)
        self.discovery.stop()
        self.broadcaster.shutdown(wait=False)
        self.hub.bind_loop(None)
        self.started = False
        logger.info("runtime_stopped")

    def stats(self) -> dict[str, Any]:
        return {
            "resolverCacheSize": self.resolver.cache_size,
            "discoveryQueueLength": self.resolver.queue_length,
            "broadcastBacklog": self.broadcaster.backlog,
            "lastBroadcastBlock": self.pool_tracker.last_broadcast_block,
            "counts": self.db.table_counts(),
        }


def build_container(
    settings: Settings | None = None,
    *,
    db: Database | None = None,
    cache: CacheBackend | None = None,
    fetcher: AccountFetcher | None = None,
) -> Container:
    """Construct every component once. Collaborators can be injected (tests)."""
    settings = settings or get_settings()
    if db is None:
        db = Database(settings.database_url)
        db.init_db()
    ensure_default_config(db)

    def new_config_cache() -> ConfigCache:
        return ConfigCache(lambda: db.get_value(CONFIG_KEY), ttl_sec=settings.config_ttl_sec)

    whale_config = new_config_cache()
    purge_config = new_config_cache()
    query_config = new_config_cache()

    hub = RoomHub()
    resolver = PoolMembershipResolver(db)
    if fetcher is None:
        fetcher = TronGridClient(settings.trongrid_url, settings.trongrid_api_key)
    discovery = PoolDiscoveryService(
        db,
        resolver,
        fetcher,
        interval_sec=settings.discovery_interval_sec,
        batch_size=settings.discovery_batch_size,
    )
    broadcaster = PoolUpdateBroadcaster(
        lambda: aggregate_pools(db),
        hub,
        backlog_threshold=settings.broadcast_backlog_threshold,
        max_workers=settings.broadcast_max_workers,
    )
    whale_detector = WhaleDetector(db, whale_config)
    pool_tracker = PoolDelegationTracker(
        db, resolver, broadcaster, block_interval_sec=settings.block_interval_sec
    )
    observer = TransactionObserver(db, whale_detector, pool_tracker)
    token_launches = TokenLaunchDetector(db)
    registry = build_registry(observer, token_launches)

    summation_job = SummationJob(db, hub)
    purge_job = PurgeJob(db, purge_config)
    scheduler = JobScheduler(
        summation_job,
        purge_job,
        summation_interval_sec=settings.summation_interval_sec,
        purge_hours=lambda: purge_config.get().purge_frequency_hours,
    )
    query_service = SummationQueryService(
        db,
        cache if cache is not None else build_cache(settings.redis_url),
        query_config,
        block_interval_sec=settings.block_interval_sec,
    )
    return Container(
        settings=settings,
        db=db,
        hub=hub,
        resolver=resolver,
        discovery=discovery,
        broadcaster=broadcaster,
        whale_detector=whale_detector,
        pool_tracker=pool_tracker,
        observer=observer,
        token_launches=token_launches,
        registry=registry,
        summation_job=summation_job,
        purge_job=purge_job,
        scheduler=scheduler,
        query_service=query_service,
        config_caches=[whale_config, purge_config, query_config],
    )
