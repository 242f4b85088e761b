"""Per-user rollups over a time window.

For every user the aggregator reports:
- assigned_tasks: tasks created inside the window
- completed_tasks: those of them that are completed with a completion timestamp
- total_work_hours: complexity-weighted hours each non-cancelled task was open
  inside the window
- work_days: distinct weekday calendar dates on which in-window tasks were created

Work hours use the overlap [max(created, start), min(completed or now, end)],
clamped at zero and scaled by complexity / 5.0 so that the 1-10 complexity scale
centres on a multiplier of 1.0.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import UTC, date, datetime, tzinfo

from taskpulse.core import db_client
from taskpulse.core.config import Constants
from taskpulse.core.errors import AggregationError
from taskpulse.core.logging import span
from taskpulse.domain.task import Task, TaskStatus
from taskpulse.domain.task_query import TaskQuery
from taskpulse.domain.user import User
from taskpulse.domain.window import TimeWindow
from taskpulse.models.service_models import AggregateRecord


logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6


def _is_weekday(day: date) -> bool:
    return day.weekday() not in (SATURDAY, SUNDAY)


def weighted_work_hours(task: Task, window: TimeWindow, *, now: datetime) -> float:
    """Complexity-weighted hours a task was open inside the window."""
    if task.status == TaskStatus.CANCELLED:
        return 0.0
    open_until = task.completed_at or now
    hours = window.overlap_hours(task.created_at, open_until)
    return hours * (task.complexity / Constants.COMPLEXITY_NORMALIZER)


def count_work_days(tasks: list[Task], *, tz: tzinfo = UTC) -> int:
    """Distinct Monday-to-Friday creation dates in the given timezone."""
    dates = {task.created_at.astimezone(tz).date() for task in tasks}
    return sum(1 for day in dates if _is_weekday(day))


def build_record(
    user: User,
    window_tasks: list[Task],
    active_tasks: list[Task],
    window: TimeWindow,
    *,
    now: datetime,
    tz: tzinfo = UTC,
) -> AggregateRecord:
    """Fold one user's tasks into an AggregateRecord.

    Args:
        user: The user the record belongs to
        window_tasks: The user's tasks created inside the window
        active_tasks: The user's tasks that may have been open inside the window
        window: Aggregation window
        now: Stand-in end for tasks that are still open
        tz: Timezone used to bucket creation dates into calendar days
    """
    distinct = {task.id: task for task in window_tasks}.values()
    completed = [t for t in distinct if t.status == TaskStatus.COMPLETED and t.completed_at is not None]

    total_hours = sum(weighted_work_hours(task, window, now=now) for task in active_tasks)

    return AggregateRecord(
        user_id=user.id,
        user_name=user.username,
        assigned_tasks=len(distinct),
        completed_tasks=len(completed),
        total_work_hours=max(total_hours, 0.0),
        work_days=count_work_days(list(distinct), tz=tz),
    )


async def compute_rollups(
    window: TimeWindow,
    users: list[User],
    *,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> list[AggregateRecord]:
    """Compute one AggregateRecord per user, in the order given.

    Args:
        window: Aggregation window
        users: Users to report on; users without tasks get an all-zero record
        now: Current instant used for still-open tasks (default: wall clock)
        tz: Timezone of the store's calendar dates

    Returns:
        One record per user

    Raises:
        AggregationError: If any store read fails; no partial results are returned
    """
    with span("aggregation_service.compute_rollups"):
        current = now or datetime.now(UTC)
        user_ids = frozenset(user.id for user in users)
        if not user_ids:
            return []

        in_window = TaskQuery(assignee_ids=user_ids, created_from=window.start, created_to=window.end)
        open_in_window = TaskQuery(
            assignee_ids=user_ids,
            created_to=window.end,
            active_since=window.start,
            exclude_statuses=frozenset({TaskStatus.CANCELLED}),
        )

        try:
            window_tasks, active_tasks = await asyncio.gather(
                db_client.find_tasks(in_window),
                db_client.find_tasks(open_in_window),
            )
        except Exception as e:
            logger.error("Task store read failed during aggregation: %s", e)
            msg = "Failed to aggregate task rollups"
            raise AggregationError(msg) from e

        window_by_user: dict[str, list[Task]] = defaultdict(list)
        for task in window_tasks:
            window_by_user[task.assignee_id or ""].append(task)

        active_by_user: dict[str, list[Task]] = defaultdict(list)
        for task in active_tasks:
            active_by_user[task.assignee_id or ""].append(task)

        records = [
            build_record(
                user,
                window_by_user.get(user.id, []),
                active_by_user.get(user.id, []),
                window,
                now=current,
                tz=tz,
            )
            for user in users
        ]

        logger.info(
            "Computed rollups",
            extra={
                "users": len(records),
                "window_tasks": len(window_tasks),
                "active_tasks": len(active_tasks),
                "window_start": window.start.isoformat(),
                "window_end": window.end.isoformat(),
            },
        )
        return records
