"""Derived metrics computed from rollups and completed-task detail.

Pure functions with no I/O. Every ratio goes through safe_divide, so a zero
denominator yields 0.0 rather than NaN, infinity or an exception.
"""

import math
from collections.abc import Iterable

from taskpulse.models.service_models import AggregateMetrics, AggregateRecord, CompletedTaskDetail


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 when the denominator is zero or the result is not finite."""
    if denominator == 0:
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def _tasks_for(user_id: str, detail: Iterable[CompletedTaskDetail]) -> list[CompletedTaskDetail]:
    return [task for task in detail if task.assignee_id == user_id]


def completion_rate(record: AggregateRecord) -> float:
    return safe_divide(record.completed_tasks, record.assigned_tasks)


def efficiency(user_id: str, completed_detail: Iterable[CompletedTaskDetail], record: AggregateRecord) -> float:
    """Priority-weighted complexity completed per work hour.

    Work hours below one count as one so that a handful of quick tasks does not
    produce an unbounded score.
    """
    weighted = sum(task.complexity * task.priority_weight for task in _tasks_for(user_id, completed_detail))
    return safe_divide(weighted, max(record.total_work_hours, 1.0))


def projection(
    user_id: str,
    target_tasks: int,
    record: AggregateRecord,
    completed_detail: Iterable[CompletedTaskDetail],
) -> float:
    """Estimated work days to complete `target_tasks` at the user's complexity-adjusted pace.

    Returns 0 when the user has no work days or no completed tasks.
    """
    if record.work_days == 0 or record.completed_tasks == 0:
        return 0.0

    # Averaged over the in-window completion count, even though the detail may reach further back
    complexity = sum(task.complexity for task in _tasks_for(user_id, completed_detail))
    average_complexity = safe_divide(complexity, record.completed_tasks)
    tasks_per_day = safe_divide(record.completed_tasks, record.work_days)
    adjusted_tasks_per_day = safe_divide(tasks_per_day, average_complexity)
    return safe_divide(target_tasks, adjusted_tasks_per_day)


def aggregate_metrics(records: list[AggregateRecord]) -> AggregateMetrics:
    # Users with no work days count as one day so a fresh account still contributes its completions
    per_user_rates = [safe_divide(r.completed_tasks, max(r.work_days, 1)) for r in records]
    return AggregateMetrics(
        total_completed_tasks=sum(r.completed_tasks for r in records),
        total_work_hours=sum(r.total_work_hours for r in records),
        average_tasks_per_day=safe_divide(sum(per_user_rates), len(records)),
    )
