"""Analytics service assembling the team-performance, statistics and dashboard views.

Key Concepts:
- Window: the last `analytics_window_days` days up to now, built fresh per request.
- Rollups: per-user AggregateRecords from the aggregation service.
- Dashboard: rollups and task statistics fetched concurrently, then combined into
  per-user completion rate, efficiency and projection. If either read fails the
  whole view fails; nothing partial is returned.
"""

import asyncio
import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from taskpulse.core import db_client
from taskpulse.core.config import Constants, settings
from taskpulse.core.errors import AggregationError
from taskpulse.core.logging import span
from taskpulse.domain.window import TimeWindow
from taskpulse.models.service_models import (
    AggregateRecord,
    AnalyticsDashboard,
    CompletionRateEntry,
    TaskStatistics,
    TeamPerformance,
    TeamPerformanceEntry,
    Timeframe,
    UserInsight,
)
from taskpulse.services import aggregation_service, metrics_service, statistics_service


logger = logging.getLogger(__name__)


def current_window(*, now: datetime | None = None) -> TimeWindow:
    """Default analytics window ending at `now`."""
    return TimeWindow.last_days(settings.analytics_window_days, now=now)


async def _rollups(window: TimeWindow, *, now: datetime) -> list[AggregateRecord]:
    try:
        users = await db_client.list_users()
    except Exception as e:
        logger.error("Failed to load users for rollups: %s", e)
        msg = "Failed to load users"
        raise AggregationError(msg) from e

    return await aggregation_service.compute_rollups(
        window,
        users,
        now=now,
        tz=ZoneInfo(settings.store_timezone),
    )


def build_team_performance(records: list[AggregateRecord], window: TimeWindow) -> TeamPerformance:
    """Shape rollups into the team-performance payload."""
    teams = [
        TeamPerformanceEntry(
            id=record.user_id,
            name=record.user_name,
            assigned_tasks=record.assigned_tasks,
            completed_tasks=record.completed_tasks,
            total_work_hours=record.total_work_hours,
            work_days=record.work_days,
            completion_rate=metrics_service.completion_rate(record),
        )
        for record in records
    ]
    return TeamPerformance(
        teams=teams,
        timeframe=Timeframe(start=window.start, end=window.end),
        completion_rates=[
            CompletionRateEntry(team_id=team.id, team_name=team.name, completion_rate=team.completion_rate)
            for team in teams
        ],
        metrics=metrics_service.aggregate_metrics(records),
    )


async def get_team_performance(*, now: datetime | None = None) -> TeamPerformance:
    """Per-user rollups and aggregate metrics for the current window.

    Raises:
        AggregationError: If the store cannot be read
    """
    with span("analytics_service.get_team_performance"):
        current = now or datetime.now(UTC)
        window = current_window(now=current)
        records = await _rollups(window, now=current)
        result = build_team_performance(records, window)

        logger.info("Team performance computed", extra={"users": len(result.teams)})
        return result


async def get_task_statistics(*, now: datetime | None = None) -> TaskStatistics:
    """Task statistics for the current window.

    Raises:
        StatisticsError: If the store cannot be read
    """
    with span("analytics_service.get_task_statistics"):
        return await statistics_service.get_task_statistics(current_window(now=now))


async def get_dashboard(
    *,
    target_tasks: int = Constants.DEFAULT_PROJECTION_TARGET,
    now: datetime | None = None,
) -> AnalyticsDashboard:
    """Rollups and statistics fetched concurrently, combined into derived metrics.

    Args:
        target_tasks: Completed-task target used for day projections
        now: Current instant (default: wall clock)

    Raises:
        AggregationError: If the rollup read fails
        StatisticsError: If the statistics read fails
    """
    with span("analytics_service.get_dashboard"):
        current = now or datetime.now(UTC)
        window = current_window(now=current)

        records, statistics = await asyncio.gather(
            _rollups(window, now=current),
            statistics_service.get_task_statistics(window),
        )

        detail = statistics.completed_tasks
        insights = [
            UserInsight(
                user_id=record.user_id,
                user_name=record.user_name,
                completion_rate=metrics_service.completion_rate(record),
                efficiency=metrics_service.efficiency(record.user_id, detail, record),
                projected_days=metrics_service.projection(record.user_id, target_tasks, record, detail),
            )
            for record in records
        ]

        return AnalyticsDashboard(
            timeframe=Timeframe(start=window.start, end=window.end),
            users=insights,
            metrics=metrics_service.aggregate_metrics(records),
            average_completion_time=statistics_service.average_completion_time(detail),
            target_tasks=target_tasks,
        )
