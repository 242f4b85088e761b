"""Pydantic models for service layer return types.

These models provide type safety at service boundaries and define the camelCase
JSON shapes served by the HTTP layer.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskpulse.domain.task import Task, ensure_utc


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AggregateRecord(CamelModel):
    """Per-user rollup over a time window."""

    user_id: str
    user_name: str
    assigned_tasks: int = 0
    completed_tasks: int = 0
    total_work_hours: float = Field(default=0.0, ge=0.0)
    work_days: int = 0


class CompletedTaskDetail(Task):
    """Completed task annotated with its completion time in whole hours."""

    completion_time: int | None = None


class TaskStatistics(CamelModel):
    """Status and priority breakdowns plus completed-task detail."""

    status_breakdown: dict[str, int]
    priority_breakdown: dict[str, int]
    completed_tasks: list[CompletedTaskDetail]
    total_tasks: int


class TeamPerformanceEntry(CamelModel):
    """One row of the team-performance payload."""

    id: str
    name: str
    assigned_tasks: int
    completed_tasks: int
    total_work_hours: float
    work_days: int
    completion_rate: float


class CompletionRateEntry(CamelModel):
    """Completion rate for one user."""

    team_id: str
    team_name: str
    completion_rate: float


class Timeframe(CamelModel):
    """Window bounds echoed back to the caller."""

    start: datetime
    end: datetime


class AggregateMetrics(CamelModel):
    """Totals and averages across all users."""

    total_completed_tasks: int
    total_work_hours: float
    average_tasks_per_day: float


class TeamPerformance(CamelModel):
    """Payload of the team-performance endpoint."""

    teams: list[TeamPerformanceEntry]
    timeframe: Timeframe
    completion_rates: list[CompletionRateEntry]
    metrics: AggregateMetrics


class UserInsight(CamelModel):
    """Derived metrics for one user."""

    user_id: str
    user_name: str
    completion_rate: float
    efficiency: float
    projected_days: float


class AnalyticsDashboard(CamelModel):
    """Combined analytics view with derived per-user metrics."""

    timeframe: Timeframe
    users: list[UserInsight]
    metrics: AggregateMetrics
    average_completion_time: float
    target_tasks: int


class TaskListResponse(CamelModel):
    """One page of tasks and the total number of matches."""

    tasks: list[Task]
    total: int


class ListingPage(CamelModel):
    """Cached payload for one listing page."""

    tasks: list[Task]
    total_pages: int


class CacheEntry(CamelModel):
    """Stored form of a cached listing page."""

    payload: ListingPage
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)
