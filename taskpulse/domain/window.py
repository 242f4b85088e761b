"""Time window value type used to scope analytics."""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from taskpulse.domain.task import ensure_utc


SECONDS_PER_HOUR = 3600


class TimeWindow(BaseModel):
    """Immutable interval between two UTC instants.

    Membership checks include both bounds, matching a SQL BETWEEN.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalise(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindow":
        if self.start >= self.end:
            msg = f"Window start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            raise ValueError(msg)
        return self

    @classmethod
    def last_days(cls, days: int, *, now: datetime | None = None) -> "TimeWindow":
        """Window covering the `days` days up to `now`."""
        end = ensure_utc(now) if now is not None else datetime.now(UTC)
        return cls(start=end - timedelta(days=days), end=end)

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) <= self.end

    def overlap_hours(self, start: datetime, end: datetime) -> float:
        """Hours of [start, end] that fall inside the window, never negative."""
        lower = max(ensure_utc(start), self.start)
        upper = min(ensure_utc(end), self.end)
        if upper <= lower:
            return 0.0
        return (upper - lower).total_seconds() / SECONDS_PER_HOUR
