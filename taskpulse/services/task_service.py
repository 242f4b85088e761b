"""Server-side task listing and lifecycle-checked updates."""

import logging
from datetime import UTC, datetime

from taskpulse.core import db_client
from taskpulse.core.errors import InvalidTransitionError
from taskpulse.core.logging import span
from taskpulse.domain.task import TERMINAL_STATUSES, Task, TaskPatch, TaskPriority, TaskStatus
from taskpulse.domain.task_query import TaskQuery
from taskpulse.models.service_models import TaskListResponse


logger = logging.getLogger(__name__)

# Forward order of the non-cancelled lifecycle
_STATUS_ORDER = {
    TaskStatus.PENDING: 0,
    TaskStatus.IN_PROGRESS: 1,
    TaskStatus.COMPLETED: 2,
}


def build_listing_query(
    *,
    project_id: str | None = None,
    user_id: str | None = None,
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
) -> TaskQuery:
    return TaskQuery(
        project_id=project_id,
        assignee_ids=frozenset({user_id}) if user_id is not None else None,
        statuses=frozenset({status}) if status is not None else None,
        priorities=frozenset({priority}) if priority is not None else None,
    )


async def list_tasks(query: TaskQuery, *, page: int, page_size: int) -> TaskListResponse:
    """One page of matching tasks, newest first, with the total match count."""
    with span("task_service.list_tasks"):
        tasks = await db_client.find_tasks(query, page=page, per_page=page_size, sort="-created_at")
        total = await db_client.count_tasks(query)
        return TaskListResponse(tasks=tasks, total=total)


def check_transition(current: TaskStatus, target: TaskStatus) -> None:
    """Reject status changes that would break the task lifecycle.

    Raises:
        InvalidTransitionError: If `current` is terminal or `target` moves backwards
    """
    if current == target:
        return
    if current in TERMINAL_STATUSES:
        msg = f"Cannot change status of a {current} task to {target}"
        raise InvalidTransitionError(msg)
    if target == TaskStatus.CANCELLED:
        return
    if _STATUS_ORDER[target] < _STATUS_ORDER[current]:
        msg = f"Cannot move task from {current} back to {target}"
        raise InvalidTransitionError(msg)


async def update_task(task_id: str, patch: TaskPatch, *, now: datetime | None = None) -> Task:
    """Apply a patch to a task, stamping completed_at on the transition to completed.

    completed_at is written once and never cleared or overwritten.

    Raises:
        RecordNotFoundError: If the task does not exist
        InvalidTransitionError: If the status change is not allowed
        DatabaseError: If the store write fails
    """
    with span("task_service.update_task"):
        current = await db_client.get_task(task_id=task_id)
        changes = patch.changes()

        target = changes.get("status", current.status)
        check_transition(current.status, target)

        if target == TaskStatus.COMPLETED and current.completed_at is None:
            changes["completed_at"] = now or datetime.now(UTC)

        if not changes:
            return current

        updated = await db_client.update_task(task_id=task_id, data=changes)
        logger.info(
            "Task updated",
            extra={"task_id": task_id, "fields": sorted(changes), "status": str(updated.status)},
        )
        return updated
