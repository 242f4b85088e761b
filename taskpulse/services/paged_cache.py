"""TTL cache for paginated task listings.

Each entry stores one listing page together with the instant it was written.
An entry is fresh while `now - timestamp < ttl`; a stale or unreadable entry is
evicted the next time it is read and reported as a miss. There is no background
sweep.

A mutation patches the task in place on the given page and rewrites the entry,
which restarts its freshness window at the mutation instant. Other pages that may
hold a copy of the same task are left alone.
"""

import asyncio
import hashlib
import json
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from taskpulse.core.cache_client import CacheBackend
from taskpulse.core.config import Constants
from taskpulse.domain.task import Task
from taskpulse.models.service_models import CacheEntry, ListingPage


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def canonical_filters(filters: Mapping[str, Any]) -> str:
    """Order-independent JSON form of a filter set; None values are dropped."""
    present = {key: value for key, value in filters.items() if value is not None}
    return json.dumps(present, sort_keys=True, separators=(",", ":"), default=str)


class PagedCache:
    """Per-session cache of listing pages keyed by filters, page and page size."""

    def __init__(
        self,
        backend: CacheBackend,
        *,
        ttl_seconds: int,
        clock: Clock = utc_now,
        key_prefix: str = Constants.LISTING_CACHE_KEY_PREFIX,
    ) -> None:
        self._backend = backend
        self._ttl = timedelta(seconds=ttl_seconds)
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._key_prefix = key_prefix
        # key -> (lock, number of patches holding or waiting on it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def compute_key(self, filters: Mapping[str, Any], page: int, page_size: int) -> str:
        digest = hashlib.sha256(canonical_filters(filters).encode("utf-8")).hexdigest()[:16]
        return f"{self._key_prefix}:{digest}:{page}:{page_size}"

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(key) or (asyncio.Lock(), 0)
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            _, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp < self._ttl

    async def get(self, key: str) -> ListingPage | None:
        """Return the cached page if fresh; evict and miss otherwise."""
        raw = await self._backend.get(key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed cache entry %s: %s", key, e)
            await self._backend.delete(key)
            return None

        if not self.is_fresh(entry):
            logger.debug("Cache entry expired: %s", key)
            await self._backend.delete(key)
            return None

        return entry.payload

    async def put(self, key: str, payload: ListingPage) -> None:
        """Store a page stamped with the current instant, replacing any previous entry."""
        entry = CacheEntry(payload=payload, timestamp=self._clock())
        stored = await self._backend.set(key, entry.model_dump_json(by_alias=True), self._ttl_seconds)
        if not stored:
            logger.warning("Cache backend rejected write for key %s", key)

    async def evict(self, key: str) -> None:
        await self._backend.delete(key)

    async def invalidate_on_mutation(self, key: str, task_id: str, changes: Mapping[str, Any]) -> bool:
        """Merge `changes` into the task on the cached page at `key` and rewrite the entry.

        Patches to the same key run one at a time.

        Args:
            key: Cache key of the active page
            task_id: ID of the mutated task
            changes: Task fields keyed by attribute name

        Returns:
            True if the page held the task and was rewritten, False otherwise
        """
        async with self._key_lock(key):
            payload = await self.get(key)
            if payload is None:
                return False

            index = next((i for i, task in enumerate(payload.tasks) if task.id == task_id), None)
            if index is None:
                logger.debug("Task %s not on cached page %s", task_id, key)
                return False

            try:
                patched = Task.model_validate({**payload.tasks[index].model_dump(), **changes})
            except ValidationError as e:
                logger.warning("Patch for task %s produced an invalid task, evicting %s: %s", task_id, key, e)
                await self._backend.delete(key)
                return False

            tasks = list(payload.tasks)
            tasks[index] = patched
            await self.put(key, ListingPage(tasks=tasks, total_pages=payload.total_pages))
            logger.debug("Patched task %s on cached page %s", task_id, key)
            return True

    async def clear(self) -> None:
        """Remove every listing page written under this cache's prefix."""
        keys = await self._backend.keys(f"{self._key_prefix}:*")
        if keys:
            await self._backend.delete(*keys)

    async def close(self) -> None:
        await self._backend.close()
