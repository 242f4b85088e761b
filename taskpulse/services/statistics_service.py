"""Status and priority breakdowns and completed-task detail.

All three views are computed from one snapshot read of the task store. The
status and priority breakdowns only count tasks created inside the window;
completed-task detail reports every completed task regardless of creation date.
"""

import logging
import math
from collections import Counter

from taskpulse.core import db_client
from taskpulse.core.errors import StatisticsError
from taskpulse.core.logging import span
from taskpulse.domain.task import Task, TaskStatus
from taskpulse.domain.task_query import TaskQuery
from taskpulse.domain.window import SECONDS_PER_HOUR, TimeWindow
from taskpulse.models.service_models import CompletedTaskDetail, TaskStatistics


logger = logging.getLogger(__name__)


def status_breakdown(tasks: list[Task], window: TimeWindow) -> dict[str, int]:
    query = TaskQuery(created_from=window.start, created_to=window.end)
    counts = Counter(str(task.status) for task in tasks if query.matches(task))
    return dict(counts)


def priority_breakdown(tasks: list[Task], window: TimeWindow) -> dict[str, int]:
    query = TaskQuery(
        created_from=window.start,
        created_to=window.end,
        exclude_statuses=frozenset({TaskStatus.CANCELLED}),
    )
    counts = Counter(str(task.priority) for task in tasks if query.matches(task))
    return dict(counts)


def completion_hours(task: Task) -> int | None:
    """Whole hours from creation to completion, halves rounded up, or None while open."""
    if task.completed_at is None:
        return None
    hours = (task.completed_at - task.created_at).total_seconds() / SECONDS_PER_HOUR
    return math.floor(hours + 0.5)


def completed_task_detail(tasks: list[Task]) -> list[CompletedTaskDetail]:
    query = TaskQuery(
        statuses=frozenset({TaskStatus.COMPLETED}),
        exclude_statuses=frozenset({TaskStatus.CANCELLED}),
        completed=True,
    )
    return [
        CompletedTaskDetail(**task.model_dump(), completion_time=completion_hours(task))
        for task in tasks
        if query.matches(task)
    ]


def average_completion_time(detail: list[CompletedTaskDetail]) -> float:
    """Mean hours from creation to completion across the given tasks, 0 when empty."""
    durations = [
        (task.completed_at - task.created_at).total_seconds() / SECONDS_PER_HOUR
        for task in detail
        if task.completed_at is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


async def get_task_statistics(window: TimeWindow) -> TaskStatistics:
    """Read the store once and build all task statistics for the window.

    Raises:
        StatisticsError: If the store read fails
    """
    with span("statistics_service.get_task_statistics"):
        try:
            snapshot = await db_client.find_tasks(TaskQuery())
        except Exception as e:
            logger.error("Task store read failed during statistics: %s", e)
            msg = "Failed to compute task statistics"
            raise StatisticsError(msg) from e

        statuses = status_breakdown(snapshot, window)
        result = TaskStatistics(
            status_breakdown=statuses,
            priority_breakdown=priority_breakdown(snapshot, window),
            completed_tasks=completed_task_detail(snapshot),
            total_tasks=sum(statuses.values()),
        )

        logger.info(
            "Computed task statistics",
            extra={"snapshot_size": len(snapshot), "total_tasks": result.total_tasks},
        )
        return result
