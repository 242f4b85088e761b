"""Redis cache backend."""

import logging

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from taskpulse.core.config import Constants


logger = logging.getLogger(__name__)


class RedisClient:
    """Async Redis client wrapper with connection pooling.

    Errors are logged and reported as a miss or a failed write; callers fall back
    to the task API instead of failing the request.
    """

    def __init__(self, url: str) -> None:
        """Initialize Redis client."""
        self._client: Redis | None = None
        self._pool: ConnectionPool | None = None
        self._enabled = bool(url)

        if self._enabled:
            try:
                self._pool = ConnectionPool.from_url(
                    url,
                    decode_responses=True,
                    max_connections=Constants.REDIS_MAX_CONNECTIONS,
                )
                self._client = Redis(connection_pool=self._pool)
                logger.info("Redis client initialized")
            except (RedisError, ValueError) as e:
                logger.warning("Failed to initialize Redis client: %s. Running without cache.", e)
                self._enabled = False
                self._client = None
                self._pool = None

    @property
    def is_available(self) -> bool:
        """Check if Redis is available."""
        return self._enabled and self._client is not None

    async def get(self, key: str) -> str | None:
        """Get value from Redis, or None if not found or an error occurred."""
        if not self.is_available or not self._client:
            return None

        try:
            value = await self._client.get(key)
            if value is not None:
                logger.debug("Cache hit for key: %s", key)
            return value
        except RedisError as e:
            logger.warning("Redis GET error for key %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set value in Redis with TTL.

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available or not self._client:
            return False

        try:
            if ttl_seconds > 0:
                await self._client.setex(key, ttl_seconds, value)
            else:
                await self._client.set(key, value)
            logger.debug("Cached key: %s (TTL: %ds)", key, ttl_seconds)
            return True
        except RedisError as e:
            logger.warning("Redis SET error for key %s: %s", key, e)
            return False

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from Redis."""
        if not self.is_available or not self._client or not keys:
            return False

        try:
            await self._client.delete(*keys)
            logger.debug("Deleted %d cache key(s)", len(keys))
            return True
        except RedisError as e:
            logger.warning("Redis DELETE error: %s", e)
            return False

    async def keys(self, pattern: str) -> list[str]:
        """Find keys matching a pattern, empty on error."""
        if not self.is_available or not self._client:
            return []

        try:
            keys = await self._client.keys(pattern)
            return [k.decode() if isinstance(k, bytes) else k for k in keys]
        except RedisError as e:
            logger.warning("Redis KEYS error for pattern %s: %s", pattern, e)
            return []

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis client closed")
