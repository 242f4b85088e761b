"""Domain models and DTOs."""

from taskpulse.domain.task import PRIORITY_WEIGHTS, Task, TaskPatch, TaskPriority, TaskStatus
from taskpulse.domain.task_query import TaskQuery
from taskpulse.domain.user import User
from taskpulse.domain.window import TimeWindow


__all__ = [
    "PRIORITY_WEIGHTS",
    "Task",
    "TaskPatch",
    "TaskPriority",
    "TaskQuery",
    "TaskStatus",
    "TimeWindow",
    "User",
]
