"""Tests for per-user rollups."""

from datetime import UTC, timedelta, timezone

import pytest

from taskpulse.core.errors import AggregationError
from taskpulse.domain.task import Task, TaskStatus
from taskpulse.domain.window import TimeWindow
from taskpulse.services import aggregation_service, metrics_service
from tests.conftest import utc


WINDOW = TimeWindow(start=utc(2024, 1, 1), end=utc(2024, 1, 8))
NOW = utc(2024, 1, 8)


@pytest.fixture
async def seeded_user(patched_db):
    """User U with the three tasks of the reference rollup."""
    user = await patched_db.create_user(username="U")
    await patched_db.create_task(
        data={
            "assignee_id": user.id,
            "status": TaskStatus.COMPLETED,
            "complexity": 5,
            "created_at": utc(2024, 1, 1),
            "completed_at": utc(2024, 1, 2),
        }
    )
    await patched_db.create_task(
        data={
            "assignee_id": user.id,
            "status": TaskStatus.IN_PROGRESS,
            "complexity": 10,
            "created_at": utc(2024, 1, 3),
        }
    )
    await patched_db.create_task(
        data={
            "assignee_id": user.id,
            "status": TaskStatus.CANCELLED,
            "complexity": 3,
            "created_at": utc(2024, 1, 5),
        }
    )
    return user


@pytest.mark.unit
class TestComputeRollups:
    async def test_reference_rollup(self, seeded_user):
        """Reference rollup for one user."""
        records = await aggregation_service.compute_rollups(WINDOW, [seeded_user], now=NOW)

        assert len(records) == 1
        record = records[0]
        assert record.user_id == seeded_user.id
        assert record.user_name == "U"
        assert record.assigned_tasks == 3
        assert record.completed_tasks == 1
        assert record.total_work_hours == pytest.approx(264.0)
        assert record.work_days == 3
        assert metrics_service.completion_rate(record) == pytest.approx(1 / 3)

    async def test_user_without_tasks_gets_zero_record(self, patched_db, seeded_user):
        """Test that a user without tasks gets a zero record."""
        idle = await patched_db.create_user(username="idle")

        records = await aggregation_service.compute_rollups(WINDOW, [seeded_user, idle], now=NOW)

        assert [r.user_id for r in records] == [seeded_user.id, idle.id]
        empty = records[1]
        assert empty.assigned_tasks == 0
        assert empty.completed_tasks == 0
        assert empty.total_work_hours == 0.0
        assert empty.work_days == 0
        assert metrics_service.completion_rate(empty) == 0.0

    async def test_no_users_returns_empty_without_reading(self, patched_db):
        """Test that no users returns empty without reading tasks."""
        records = await aggregation_service.compute_rollups(WINDOW, [], now=NOW)

        assert records == []
        assert patched_db.read_count == 0

    async def test_tasks_outside_window_are_not_assigned(self, patched_db):
        """Test that tasks outside the window are not counted as assigned."""
        user = await patched_db.create_user(username="late")
        await patched_db.create_task(data={"assignee_id": user.id, "created_at": utc(2024, 1, 9)})
        await patched_db.create_task(data={"assignee_id": user.id, "created_at": utc(2023, 12, 20)})

        [record] = await aggregation_service.compute_rollups(WINDOW, [user], now=NOW)

        assert record.assigned_tasks == 0
        assert record.work_days == 0

    async def test_task_opened_before_window_counts_overlap_hours(self, patched_db):
        """Test that a task opened before the window counts only overlapping hours."""
        user = await patched_db.create_user(username="carry")
        await patched_db.create_task(
            data={
                "assignee_id": user.id,
                "status": TaskStatus.COMPLETED,
                "complexity": 5,
                "created_at": utc(2023, 12, 30),
                "completed_at": utc(2024, 1, 2),
            }
        )

        [record] = await aggregation_service.compute_rollups(WINDOW, [user], now=NOW)

        # Not created in the window, but open for its first 24 hours
        assert record.assigned_tasks == 0
        assert record.total_work_hours == pytest.approx(24.0)

    async def test_weekend_creation_dates_are_not_work_days(self, patched_db):
        """Test that weekend creation dates are not work days."""
        user = await patched_db.create_user(username="weekend")
        # 2024-01-06 is a Saturday and 2024-01-07 a Sunday
        for day in (6, 7):
            await patched_db.create_task(data={"assignee_id": user.id, "created_at": utc(2024, 1, day, 10)})
        await patched_db.create_task(data={"assignee_id": user.id, "created_at": utc(2024, 1, 2, 10)})
        await patched_db.create_task(data={"assignee_id": user.id, "created_at": utc(2024, 1, 2, 15)})

        [record] = await aggregation_service.compute_rollups(WINDOW, [user], now=NOW)

        assert record.assigned_tasks == 4
        assert record.work_days == 1

    async def test_store_failure_raises_aggregation_error(self, patched_db, seeded_user):
        """Test that a store failure raises AggregationError."""
        patched_db.fail_reads = True

        with pytest.raises(AggregationError, match="Failed to aggregate"):
            await aggregation_service.compute_rollups(WINDOW, [seeded_user], now=NOW)


@pytest.mark.unit
class TestCountWorkDays:
    def test_dates_follow_store_timezone(self):
        """Test that work dates follow the store timezone."""
        # Friday 23:00 UTC is Saturday morning at UTC+9
        task = Task(id="1", created_at=utc(2024, 1, 5, 23))

        assert aggregation_service.count_work_days([task], tz=UTC) == 1
        assert aggregation_service.count_work_days([task], tz=timezone(timedelta(hours=9))) == 0
