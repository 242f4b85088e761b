"""Task listing and update endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskpulse.core import db_client
from taskpulse.core.config import Constants
from taskpulse.core.errors import InvalidTransitionError
from taskpulse.domain.task import Task, TaskPatch, TaskPriority, TaskStatus
from taskpulse.domain.user import User
from taskpulse.interface.auth import require_principal
from taskpulse.models.service_models import TaskListResponse
from taskpulse.services import task_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(  # noqa: PLR0913
    project_id: str | None = Query(default=None, alias="projectId"),
    user_id: str | None = Query(default=None, alias="userId"),
    task_status: TaskStatus | None = Query(default=None, alias="status"),
    priority: TaskPriority | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, alias="pageSize", ge=1, le=Constants.MAX_PAGE_SIZE),
    _principal: User = Depends(require_principal),
) -> TaskListResponse:
    """One page of tasks matching the filters."""
    query = task_service.build_listing_query(
        project_id=project_id,
        user_id=user_id,
        status=task_status,
        priority=priority,
    )
    try:
        return await task_service.list_tasks(query, page=page, page_size=page_size)
    except db_client.DatabaseError as e:
        logger.error("task_listing_failed", extra={"page": page, "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching tasks",
        ) from e


@router.patch("/{task_id}", response_model=Task)
async def update_task(task_id: str, patch: TaskPatch, principal: User = Depends(require_principal)) -> Task:
    """Apply a partial update to a task."""
    try:
        return await task_service.update_task(task_id, patch)
    except db_client.RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found") from e
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except db_client.DatabaseError as e:
        logger.error("task_update_failed", extra={"task_id": task_id, "user_id": principal.id, "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating task",
        ) from e
