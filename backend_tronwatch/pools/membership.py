"""
Pool membership: which pool address controls an account's custom permission.

PoolMembershipResolver answers get_pool_for_account() from an in-memory cache
backed by pool_members; it never blocks on the network. Misses are queued for
PoolDiscoveryService, a background thread that looks accounts up on TronGrid
and records every key of every active permission (id >= 2) as a pool.
"""

from __future__ import annotations

import threading
from collections import OrderedDict, deque
from typing import Any, Protocol

from backend_tronwatch.core.address import to_base58_address
from backend_tronwatch.core.exceptions import TronGridError
from backend_tronwatch.core.units import UNKNOWN_ADDRESS
from backend_tronwatch.database import Database
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

DEFAULT_DISCOVERY_INTERVAL_SEC = 30.0
DEFAULT_DISCOVERY_BATCH_SIZE = 10
DEFAULT_RESOLVER_CACHE_MAX = 50_000
# Discovery records permission slots from id 2 (first active permission) upward
DISCOVERY_MIN_PERMISSION_ID = 2
SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0

_MISSING = object()


class AccountFetcher(Protocol):
    def get_account(self, address: str) -> dict[str, Any] | None: ...


class DiscoveryQueue:
    """Thread-safe FIFO of accounts awaiting lookup; an account is queued at most once."""

    def __init__(self) -> None:
        self._items: deque[str] = deque()
        self._queued: set[str] = set()
        self._lock = threading.Lock()

    def push(self, account: str) -> bool:
        with self._lock:
            if account in self._queued:
                return False
            self._queued.add(account)
            self._items.append(account)
            return True

    def pop_batch(self, size: int) -> list[str]:
        with self._lock:
            batch: list[str] = []
            while self._items and len(batch) < size:
                account = self._items.popleft()
                self._queued.discard(account)
                batch.append(account)
            return batch

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class PoolMembershipResolver:
    """Cached (account, permission_id) -> pool lookups. None is a cached answer too."""

    def __init__(
        self,
        db: Database,
        queue: DiscoveryQueue | None = None,
        *,
        cache_max_entries: int = DEFAULT_RESOLVER_CACHE_MAX,
    ) -> None:
        self._db = db
        self.queue = queue or DiscoveryQueue()
        self._cache: OrderedDict[str, str | None] = OrderedDict()
        self._cache_max = max(1, cache_max_entries)
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(account: str, permission_id: int) -> str:
        return f"{account}:{permission_id}"

    def get_pool_for_account(self, account: str, permission_id: int) -> str | None:
        """
        Return the controlling pool address or None when unknown.

        A database hit refreshes the membership's last_seen_at. A miss queues
        the account for discovery and caches None until discovery forgets it.
        Missing or "unknown" accounts resolve to None without a lookup.
        """
        if not account or account == UNKNOWN_ADDRESS:
            return None
        key = self.cache_key(account, permission_id)
        with self._lock:
            cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        member = self._db.find_pool_membership(account, permission_id)
        pool = member.pool if member is not None else None
        if pool is None and self.queue.push(account):
            logger.debug("pool_discovery_queued", account=account, permission_id=permission_id)
        self._remember(key, pool)
        return pool

    def _remember(self, key: str, pool: str | None) -> None:
        with self._lock:
            self._cache[key] = pool
            self._cache.move_to_end(key)
            while len(self._cache) > self._cache_max:
                self._cache.popitem(last=False)

    def forget(self, account: str) -> None:
        """Drop cached answers for every permission id of account."""
        prefix = f"{account}:"
        with self._lock:
            for key in [k for k in self._cache if k.startswith(prefix)]:
                del self._cache[key]

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def queue_length(self) -> int:
        return len(self.queue)


class PoolDiscoveryService:
    """Background loop draining the resolver's queue into pool_members."""

    def __init__(
        self,
        db: Database,
        resolver: PoolMembershipResolver,
        fetcher: AccountFetcher,
        *,
        interval_sec: float = DEFAULT_DISCOVERY_INTERVAL_SEC,
        batch_size: int = DEFAULT_DISCOVERY_BATCH_SIZE,
    ) -> None:
        self._db = db
        self._resolver = resolver
        self._fetcher = fetcher
        self.interval_sec = max(0.1, float(interval_sec))
        self.batch_size = max(1, int(batch_size))
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def record_account(self, account: str, data: dict[str, Any]) -> int:
        """
        Record every key address of every active permission with id >= 2 as a pool
        of account. Returns number of memberships newly inserted.
        """
        inserted = 0
        for permission in data.get("active_permission") or []:
            if not isinstance(permission, dict):
                continue
            try:
                permission_id = int(permission.get("id", 0))
            except (TypeError, ValueError):
                continue
            if permission_id < DISCOVERY_MIN_PERMISSION_ID:
                continue
            name = permission.get("permission_name") or f"Permission {permission_id}"
            first_pool: str | None = None
            for key in permission.get("keys") or []:
                pool = to_base58_address(key.get("address")) if isinstance(key, dict) else None
                if not pool:
                    continue
                result = self._db.record_pool_membership(
                    account=account,
                    pool=pool,
                    permission_id=permission_id,
                    permission_name=name,
                    self_signed=pool == account,
                )
                if result.is_failed:
                    logger.warning(
                        "pool_membership_record_failed",
                        account=account,
                        pool=pool,
                        error=str(result.error),
                    )
                    continue
                if result.is_inserted:
                    inserted += 1
                if first_pool is None:
                    first_pool = pool
            if first_pool is not None:
                backfilled = self._db.backfill_pool_address(account, permission_id, first_pool)
                if backfilled:
                    logger.info(
                        "pool_delegations_backfilled",
                        account=account,
                        pool=first_pool,
                        permission_id=permission_id,
                        rows=backfilled,
                    )
        self._resolver.forget(account)
        return inserted

    def run_once(self) -> int:
        """Look up one batch of queued accounts. Returns memberships inserted."""
        accounts = self._resolver.queue.pop_batch(self.batch_size)
        inserted = 0
        for account in accounts:
            try:
                data = self._fetcher.get_account(account)
            except TronGridError as e:
                logger.warning("pool_discovery_fetch_failed", account=account, error=str(e))
                self._resolver.forget(account)
                continue
            if not data:
                logger.debug("pool_discovery_account_empty", account=account)
                self._resolver.forget(account)
                continue
            inserted += self.record_account(account, data)
        if accounts:
            logger.info(
                "pool_discovery_cycle_done",
                processed=len(accounts),
                inserted=inserted,
                remaining=self._resolver.queue_length,
            )
        return inserted

    def _run_loop(self) -> None:
        logger.info("pool_discovery_started", interval_sec=self.interval_sec, batch_size=self.batch_size)
        while not self._stop_event.wait(timeout=self.interval_sec):
            try:
                self.run_once()
            except Exception as e:
                logger.exception("pool_discovery_cycle_failed", error=str(e))
        logger.info("pool_discovery_stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="pool-discovery", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = SHUTDOWN_JOIN_TIMEOUT_SEC) -> None:
        self._stop_event.set()
        if self._thread is None:
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("pool_discovery_shutdown_timeout", timeout_sec=timeout)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
