"""Client-side paginated task listing backed by the paged cache.

Every load takes a new generation number. A response that resolves after a newer
load was issued is still cached under its own page key, but it is never applied
to the session's visible state, so a slow response cannot show a stale page.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from taskpulse.core.cache_client import create_cache_backend
from taskpulse.core.config import Settings, settings
from taskpulse.core.errors import ListingError, TaskUpdateError
from taskpulse.core.logging import log_with_context, span
from taskpulse.domain.task import Task, TaskPatch
from taskpulse.interface.task_api_client import TaskApi, TaskApiClient
from taskpulse.models.service_models import ListingPage
from taskpulse.services.paged_cache import PagedCache


logger = logging.getLogger(__name__)


def total_pages_for(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total > 0 else 0


class TaskListingSession:
    """Paginated view over the task API for one filter set."""

    def __init__(
        self,
        api: TaskApi,
        cache: PagedCache,
        *,
        filters: Mapping[str, Any] | None = None,
        page_size: int = 10,
    ) -> None:
        if page_size < 1:
            msg = f"page_size must be positive, got {page_size}"
            raise ValueError(msg)

        self._api = api
        self._cache = cache
        self.filters: dict[str, Any] = dict(filters or {})
        self.page_size = page_size

        self.tasks: list[Task] = []
        self.page = 1
        self.total_pages = 1
        self.loading = False
        self.error: str | None = None

        self._generation = 0

    @property
    def active_key(self) -> str:
        return self._cache.compute_key(self.filters, self.page, self.page_size)

    def _apply(self, page: int, payload: ListingPage) -> None:
        self.page = page
        self.tasks = list(payload.tasks)
        self.total_pages = payload.total_pages
        self.error = None
        self.loading = False

    async def load_page(self, page: int = 1) -> None:
        """Show `page`, from cache when fresh and from the task API otherwise.

        Fetch failures are recorded on `error`; nothing is retried.
        """
        self._generation += 1
        generation = self._generation
        self.loading = True
        key = self._cache.compute_key(self.filters, page, self.page_size)

        with span("task_listing.load_page"):
            cached = await self._cache.get(key)
            if cached is not None:
                if generation == self._generation:
                    self._apply(page, cached)
                logger.debug("Served page %d from cache", page)
                return

            try:
                response = await self._api.list_tasks(self.filters, page, self.page_size)
            except ListingError as e:
                if generation == self._generation:
                    self.error = str(e)
                    self.loading = False
                log_with_context(logger, "warning", "task_page_load_failed", page=page, error=str(e))
                return

            payload = ListingPage(tasks=response.tasks, total_pages=total_pages_for(response.total, self.page_size))
            await self._cache.put(key, payload)

            if generation != self._generation:
                logger.debug("Discarding superseded response for page %d (generation %d)", page, generation)
                return
            self._apply(page, payload)

    async def next_page(self) -> None:
        if self.page < self.total_pages:
            await self.load_page(self.page + 1)

    async def prev_page(self) -> None:
        if self.page > 1:
            await self.load_page(self.page - 1)

    async def refresh(self, *, force: bool = False) -> None:
        """Reload the active page; `force` drops its cache entry first."""
        if force:
            await self._cache.evict(self.active_key)
        await self.load_page(self.page)

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        """Write through the task API, then patch local state and the active cached page.

        Raises:
            TaskUpdateError: If the task API rejects the update
        """
        try:
            updated = await self._api.update_task(task_id, patch)
        except TaskUpdateError as e:
            self.error = str(e)
            raise

        changes = updated.model_dump()
        self.tasks = [
            Task.model_validate({**task.model_dump(), **changes}) if task.id == task_id else task
            for task in self.tasks
        ]
        await self._cache.invalidate_on_mutation(self.active_key, task_id, changes)
        return updated

    async def close(self) -> None:
        """Tear down the page cache and the task API connection."""
        await self._cache.close()
        await self._api.aclose()


def open_listing_session(
    *,
    token: str | None = None,
    filters: Mapping[str, Any] | None = None,
    config: Settings = settings,
) -> TaskListingSession:
    """Build a listing session wired to the configured task API and cache backend."""
    api = TaskApiClient(config.task_api_base_url, token=token)
    cache = PagedCache(create_cache_backend(config), ttl_seconds=config.listing_cache_ttl_seconds)
    return TaskListingSession(api, cache, filters=filters, page_size=config.listing_page_size)
