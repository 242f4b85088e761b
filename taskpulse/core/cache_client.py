"""Key/value cache backends with TTL support."""

import fnmatch
import logging
import threading
import time
from typing import Protocol

from taskpulse.core.config import Settings


logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """String key/value store used behind the paged cache."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool: ...

    async def delete(self, *keys: str) -> bool: ...

    async def keys(self, pattern: str) -> list[str]: ...

    async def close(self) -> None: ...


class InMemoryCache:
    """Thread-safe in-memory cache with TTL support."""

    def __init__(self) -> None:
        """Initialize in-memory cache."""
        self._data: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._lock = threading.Lock()

    def _cleanup_expired(self, keys: list[str] | None = None) -> None:
        """Drop expired entries.

        Args:
            keys: Specific keys to check. If None, checks all keys.
        """
        now = time.time()
        keys_to_check = list(self._expiry.keys()) if keys is None else keys

        for key in keys_to_check:
            expiry = self._expiry.get(key)
            if expiry and expiry < now:
                self._data.pop(key, None)
                self._expiry.pop(key, None)

    async def get(self, key: str) -> str | None:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found or expired
        """
        with self._lock:
            self._cleanup_expired([key])

            value = self._data.get(key)
            if value is not None:
                logger.debug("Cache hit for key: %s", key)
            return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl_seconds: Time-to-live in seconds; 0 keeps the entry until deleted

        Returns:
            True if successful
        """
        with self._lock:
            self._data[key] = value
            if ttl_seconds > 0:
                self._expiry[key] = time.time() + ttl_seconds
            else:
                self._expiry.pop(key, None)
            logger.debug("Cached key: %s (TTL: %ds)", key, ttl_seconds)
            return True

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from cache.

        Returns:
            True if successful, False when no keys were given
        """
        if not keys:
            return False

        with self._lock:
            for key in keys:
                self._data.pop(key, None)
                self._expiry.pop(key, None)
            logger.debug("Deleted %d cache key(s)", len(keys))
            return True

    async def keys(self, pattern: str) -> list[str]:
        """Find keys matching a glob pattern (e.g. 'taskpulse:tasks:*')."""
        with self._lock:
            self._cleanup_expired()
            return [key for key in self._data if fnmatch.fnmatch(key, pattern)]

    async def close(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._data.clear()
            self._expiry.clear()
        logger.info("In-memory cache closed")


def create_cache_backend(config: Settings) -> CacheBackend:
    """Redis when a URL is configured, otherwise an in-memory cache."""
    if config.redis_url:
        from taskpulse.core.redis_client import RedisClient  # noqa: PLC0415

        return RedisClient(config.redis_url)
    return InMemoryCache()
