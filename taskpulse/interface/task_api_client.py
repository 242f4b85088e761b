"""HTTP client for the task listing and task update endpoints."""

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from taskpulse.core.config import constants
from taskpulse.core.errors import ListingError, TaskUpdateError
from taskpulse.domain.task import Task, TaskPatch
from taskpulse.models.service_models import TaskListResponse


logger = logging.getLogger(__name__)


class TaskApi(Protocol):
    """Task listing and task update operations consumed by the listing session."""

    async def list_tasks(self, filters: Mapping[str, Any], page: int, page_size: int) -> TaskListResponse: ...

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task: ...

    async def aclose(self) -> None: ...

class TaskApiClient:
    """Async client for `/api/tasks`, authenticated with a bearer token."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = constants.API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

    async def list_tasks(self, filters: Mapping[str, Any], page: int, page_size: int) -> TaskListResponse:
        """Fetch one page of tasks.

        Raises:
            ListingError: On transport errors, non-2xx responses or malformed bodies
        """
        params: dict[str, Any] = {key: value for key, value in filters.items() if value is not None}
        params["page"] = page
        params["pageSize"] = page_size

        try:
            response = await self._client.get("/api/tasks", params=params)
            response.raise_for_status()
            return TaskListResponse.model_validate(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("Task listing request failed", extra={"page": page, "error": str(e)})
            msg = f"Failed to fetch tasks: {e}"
            raise ListingError(msg) from e

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        """Apply a patch to a task and return the stored result.

        Raises:
            TaskUpdateError: On transport errors, non-2xx responses or malformed bodies
        """
        body = patch.model_dump(mode="json", by_alias=True, exclude_unset=True)
        try:
            response = await self._client.patch(f"/api/tasks/{task_id}", json=body)
            response.raise_for_status()
            return Task.model_validate(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("Task update request failed", extra={"task_id": task_id, "error": str(e)})
            msg = f"Failed to update task {task_id}: {e}"
            raise TaskUpdateError(msg) from e

    async def aclose(self) -> None:
        await self._client.aclose()
