"""Task domain models and enums."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 10


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


PRIORITY_WEIGHTS: dict[TaskPriority, float] = {
    TaskPriority.LOW: 1.0,
    TaskPriority.MEDIUM: 1.5,
    TaskPriority.HIGH: 2.0,
    TaskPriority.URGENT: 3.0,
}

# Statuses a task can never leave once reached
TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Task(BaseModel):
    """Task data transfer object."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique task ID from database")
    title: str = Field(default="", description="Task title")
    project_id: str | None = Field(default=None, description="Owning project ID")
    assignee_id: str | None = Field(default=None, description="Assigned user ID")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    complexity: int = Field(default=5, ge=MIN_COMPLEXITY, le=MAX_COMPLEXITY, description="Complexity on a 1-10 scale")
    created_at: datetime = Field(..., description="Creation timestamp")
    completed_at: datetime | None = Field(default=None, description="Completion timestamp, set iff completed")

    @field_validator("id", "assignee_id", "project_id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        """SQLite hands back integer keys; IDs are strings everywhere else."""
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("created_at", "completed_at")
    @classmethod
    def normalise_timestamp(cls, v: datetime | None) -> datetime | None:
        """Store and compare every timestamp in UTC."""
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def check_completion_timestamp(self) -> "Task":
        """completed_at is only meaningful on completed tasks."""
        if self.completed_at is not None and self.status != TaskStatus.COMPLETED:
            msg = f"Task {self.id} has completed_at but status is {self.status}"
            raise ValueError(msg)
        return self

    @property
    def priority_weight(self) -> float:
        return PRIORITY_WEIGHTS.get(self.priority, 1.0)


class TaskPatch(BaseModel):
    """Partial update accepted by the task update path."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str | None = None
    project_id: str | None = None
    assignee_id: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    complexity: int | None = Field(default=None, ge=MIN_COMPLEXITY, le=MAX_COMPLEXITY)

    @field_validator("assignee_id", "project_id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        if isinstance(v, int):
            return str(v)
        return v

    def changes(self) -> dict[str, object]:
        """Fields explicitly set on the patch, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)
