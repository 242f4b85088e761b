"""Typed task predicate shared by the SQLite store and in-memory evaluation.

A TaskQuery renders to a parameterized WHERE clause; values are always bound as
parameters and never interpolated into SQL text. `matches` evaluates the same
predicate against a Task so callers can partition an already-fetched snapshot.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from taskpulse.domain.task import Task, TaskPriority, TaskStatus, ensure_utc


DB_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def to_db_timestamp(value: datetime) -> str:
    """Fixed-width UTC text form, so lexical order equals chronological order."""
    return ensure_utc(value).strftime(DB_TIMESTAMP_FORMAT)


class TaskQuery(BaseModel):
    """Conjunction of optional task filters. Unset fields do not constrain."""

    model_config = ConfigDict(frozen=True)

    assignee_ids: frozenset[str] | None = None
    project_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    statuses: frozenset[TaskStatus] | None = None
    exclude_statuses: frozenset[TaskStatus] = frozenset()
    priorities: frozenset[TaskPriority] | None = None
    completed: bool | None = None
    active_since: datetime | None = None

    def to_sql(self) -> tuple[str, list[str]]:
        """Render the predicate as a WHERE clause body and its parameters.

        Returns an empty clause when nothing constrains the query.
        """
        conditions: list[str] = []
        params: list[str] = []

        if self.assignee_ids is not None:
            if not self.assignee_ids:
                conditions.append("0")
            else:
                ids = sorted(self.assignee_ids)
                conditions.append(f"assignee_id IN ({', '.join('?' for _ in ids)})")
                params.extend(ids)

        if self.project_id is not None:
            conditions.append("project_id = ?")
            params.append(self.project_id)

        if self.created_from is not None:
            conditions.append("created_at >= ?")
            params.append(to_db_timestamp(self.created_from))

        if self.created_to is not None:
            conditions.append("created_at <= ?")
            params.append(to_db_timestamp(self.created_to))

        if self.statuses is not None:
            if not self.statuses:
                conditions.append("0")
            else:
                values = sorted(self.statuses)
                conditions.append(f"status IN ({', '.join('?' for _ in values)})")
                params.extend(str(v) for v in values)

        if self.exclude_statuses:
            values = sorted(self.exclude_statuses)
            conditions.append(f"status NOT IN ({', '.join('?' for _ in values)})")
            params.extend(str(v) for v in values)

        if self.priorities is not None:
            if not self.priorities:
                conditions.append("0")
            else:
                values = sorted(self.priorities)
                conditions.append(f"priority IN ({', '.join('?' for _ in values)})")
                params.extend(str(v) for v in values)

        if self.completed is True:
            conditions.append("completed_at IS NOT NULL")
        elif self.completed is False:
            conditions.append("completed_at IS NULL")

        if self.active_since is not None:
            conditions.append("(completed_at IS NULL OR completed_at >= ?)")
            params.append(to_db_timestamp(self.active_since))

        return " AND ".join(conditions), params

    def matches(self, task: Task) -> bool:  # noqa: C901, PLR0911
        """Evaluate the predicate against a single task."""
        if self.assignee_ids is not None and task.assignee_id not in self.assignee_ids:
            return False
        if self.project_id is not None and task.project_id != self.project_id:
            return False
        if self.created_from is not None and task.created_at < ensure_utc(self.created_from):
            return False
        if self.created_to is not None and task.created_at > ensure_utc(self.created_to):
            return False
        if self.statuses is not None and task.status not in self.statuses:
            return False
        if task.status in self.exclude_statuses:
            return False
        if self.priorities is not None and task.priority not in self.priorities:
            return False
        if self.completed is not None and (task.completed_at is not None) != self.completed:
            return False
        if (
            self.active_since is not None
            and task.completed_at is not None
            and task.completed_at < ensure_utc(self.active_since)
        ):
            return False
        return True
