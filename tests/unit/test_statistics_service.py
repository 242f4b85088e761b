"""Tests for task statistics."""

from datetime import timedelta

import pytest

from taskpulse.core.errors import StatisticsError
from taskpulse.domain.task import Task, TaskPriority, TaskStatus
from taskpulse.domain.window import TimeWindow
from taskpulse.services import statistics_service
from tests.conftest import utc


WINDOW = TimeWindow(start=utc(2024, 1, 1), end=utc(2024, 1, 8))


@pytest.fixture
async def seeded_store(patched_db):
    tasks = [
        {"status": TaskStatus.PENDING, "priority": TaskPriority.LOW, "created_at": utc(2024, 1, 2)},
        {"status": TaskStatus.IN_PROGRESS, "priority": TaskPriority.HIGH, "created_at": utc(2024, 1, 3)},
        {
            "status": TaskStatus.COMPLETED,
            "priority": TaskPriority.HIGH,
            "created_at": utc(2024, 1, 4),
            "completed_at": utc(2024, 1, 4, 6),
        },
        {"status": TaskStatus.CANCELLED, "priority": TaskPriority.URGENT, "created_at": utc(2024, 1, 5)},
        # Created before the window but completed inside it
        {
            "status": TaskStatus.COMPLETED,
            "priority": TaskPriority.MEDIUM,
            "created_at": utc(2023, 12, 1),
            "completed_at": utc(2023, 12, 2),
        },
    ]
    for data in tasks:
        await patched_db.create_task(data={"assignee_id": "u1", **data})
    return patched_db


@pytest.mark.unit
class TestGetTaskStatistics:
    async def test_breakdowns_count_only_window_tasks(self, seeded_store):
        """Test that breakdowns count only window tasks."""
        stats = await statistics_service.get_task_statistics(WINDOW)

        assert stats.status_breakdown == {"pending": 1, "in_progress": 1, "completed": 1, "cancelled": 1}
        assert stats.total_tasks == 4

    async def test_priority_breakdown_excludes_cancelled(self, seeded_store):
        """Test that the priority breakdown excludes cancelled tasks."""
        stats = await statistics_service.get_task_statistics(WINDOW)

        assert stats.priority_breakdown == {"low": 1, "high": 2}
        assert "urgent" not in stats.priority_breakdown

    async def test_completed_detail_is_not_window_bounded(self, seeded_store):
        """Test that completed detail is not window-bounded."""
        stats = await statistics_service.get_task_statistics(WINDOW)

        assert sorted(t.completion_time for t in stats.completed_tasks) == [6, 24]
        assert all(t.status == TaskStatus.COMPLETED for t in stats.completed_tasks)

    async def test_reads_store_once(self, seeded_store):
        """Test that the store is read once."""
        seeded_store.read_count = 0

        await statistics_service.get_task_statistics(WINDOW)

        assert seeded_store.read_count == 1

    async def test_empty_store(self, patched_db):
        """Empty store."""
        stats = await statistics_service.get_task_statistics(WINDOW)

        assert stats.status_breakdown == {}
        assert stats.priority_breakdown == {}
        assert stats.completed_tasks == []
        assert stats.total_tasks == 0

    async def test_store_failure_raises_statistics_error(self, patched_db):
        """Test that a store failure raises StatisticsError."""
        patched_db.fail_reads = True

        with pytest.raises(StatisticsError):
            await statistics_service.get_task_statistics(WINDOW)


@pytest.mark.unit
class TestCompletionHelpers:
    def test_completion_hours_rounds_to_whole_hours(self):
        """Test that completion hours round to whole hours."""
        task = Task(
            id="1",
            status=TaskStatus.COMPLETED,
            created_at=utc(2024, 1, 1),
            completed_at=utc(2024, 1, 1, 2).replace(minute=40),
        )

        assert statistics_service.completion_hours(task) == 3

    @pytest.mark.parametrize(("minutes", "hours"), [(30, 1), (150, 3), (210, 4)])
    def test_completion_hours_rounds_halves_up(self, minutes, hours):
        """Exact half-hour durations round up, not to even."""
        task = Task(
            id="1",
            status=TaskStatus.COMPLETED,
            created_at=utc(2024, 1, 1),
            completed_at=utc(2024, 1, 1) + timedelta(minutes=minutes),
        )

        assert statistics_service.completion_hours(task) == hours

    def test_completion_hours_of_open_task(self):
        """Test that an open task has no completion hours."""
        assert statistics_service.completion_hours(Task(id="1", created_at=utc(2024, 1, 1))) is None

    def test_average_completion_time(self):
        """Average completion time over completed tasks."""
        detail = statistics_service.completed_task_detail(
            [
                Task(id="1", status=TaskStatus.COMPLETED, created_at=utc(2024, 1, 1), completed_at=utc(2024, 1, 1, 4)),
                Task(id="2", status=TaskStatus.COMPLETED, created_at=utc(2024, 1, 1), completed_at=utc(2024, 1, 1, 8)),
                Task(id="3", created_at=utc(2024, 1, 1)),
            ]
        )

        assert len(detail) == 2
        assert statistics_service.average_completion_time(detail) == pytest.approx(6.0)

    def test_average_completion_time_of_nothing_is_zero(self):
        """Average completion time of no tasks is zero."""
        assert statistics_service.average_completion_time([]) == 0.0
