"""
Cache backends for query responses.

RedisCache (redis-py) when REDIS_URL is set, MemoryCache otherwise. Both
store JSON-compatible values with a TTL and support glob-pattern deletion.
Backend failures surface as CacheUnavailable; callers decide how to degrade.
"""

from __future__ import annotations

import fnmatch
import json
import threading
import time
from typing import Any, Callable, Protocol

from redis import Redis
from redis.exceptions import RedisError

from backend_tronwatch.core.exceptions import CacheUnavailable
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

REDIS_SOCKET_TIMEOUT_SEC = 2.0
REDIS_KEY_PREFIX = "tronwatch:"


class CacheBackend(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_sec: float) -> None: ...

    def delete_pattern(self, pattern: str) -> int: ...


class MemoryCache:
    """Process-local TTL cache. Expired entries are dropped lazily on access."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_sec: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + max(0.0, ttl_sec), value)

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache:
    """JSON values in Redis under a namespace prefix."""

    def __init__(self, client: Redis, *, prefix: str = REDIS_KEY_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        client = Redis.from_url(
            url,
            socket_timeout=REDIS_SOCKET_TIMEOUT_SEC,
            socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SEC,
        )
        return cls(client)

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client.get(self._prefix + key)
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_value_corrupt", key=key)
            return None

    def set(self, key: str, value: Any, ttl_sec: float) -> None:
        try:
            self._client.setex(self._prefix + key, max(1, int(ttl_sec)), json.dumps(value))
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e

    def delete_pattern(self, pattern: str) -> int:
        try:
            keys = list(self._client.scan_iter(match=self._prefix + pattern))
            if not keys:
                return 0
            return int(self._client.delete(*keys))
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e


def build_cache(redis_url: str | None) -> CacheBackend:
    if redis_url:
        logger.info("query_cache_backend", backend="redis")
        return RedisCache.from_url(redis_url)
    logger.info("query_cache_backend", backend="memory")
    return MemoryCache()
