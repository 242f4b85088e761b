"""Tests for server-side task listing and lifecycle-checked updates."""

import pytest

from taskpulse.core.db_client import RecordNotFoundError
from taskpulse.core.errors import InvalidTransitionError
from taskpulse.domain.task import TaskPatch, TaskPriority, TaskStatus
from taskpulse.services import task_service
from tests.conftest import utc


@pytest.mark.unit
class TestCheckTransition:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.PENDING, TaskStatus.COMPLETED),
            (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
            (TaskStatus.PENDING, TaskStatus.CANCELLED),
            (TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED),
            (TaskStatus.COMPLETED, TaskStatus.COMPLETED),
        ],
    )
    def test_allowed(self, current, target):
        """Allowed transitions."""
        task_service.check_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.IN_PROGRESS, TaskStatus.PENDING),
            (TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS),
            (TaskStatus.COMPLETED, TaskStatus.CANCELLED),
            (TaskStatus.CANCELLED, TaskStatus.PENDING),
        ],
    )
    def test_rejected(self, current, target):
        """Rejected transitions."""
        with pytest.raises(InvalidTransitionError):
            task_service.check_transition(current, target)


@pytest.mark.unit
class TestBuildListingQuery:
    def test_unset_filters_do_not_constrain(self):
        """Test that unset filters do not constrain."""
        query = task_service.build_listing_query()

        assert query.to_sql() == ("", [])

    def test_filters_become_single_value_sets(self):
        """Test that filters become single-value sets."""
        query = task_service.build_listing_query(
            project_id="p1", user_id="u1", status=TaskStatus.PENDING, priority=TaskPriority.HIGH
        )

        assert query.project_id == "p1"
        assert query.assignee_ids == frozenset({"u1"})
        assert query.statuses == frozenset({TaskStatus.PENDING})
        assert query.priorities == frozenset({TaskPriority.HIGH})


@pytest.mark.unit
class TestListTasks:
    async def test_newest_first_with_total(self, patched_db):
        """Newest first, with the total."""
        for day in range(1, 6):
            await patched_db.create_task(data={"title": f"day {day}", "project_id": "p1", "created_at": utc(2024, 1, day)})
        await patched_db.create_task(data={"title": "other", "project_id": "p2", "created_at": utc(2024, 1, 9)})

        result = await task_service.list_tasks(task_service.build_listing_query(project_id="p1"), page=1, page_size=2)

        assert [t.title for t in result.tasks] == ["day 5", "day 4"]
        assert result.total == 5

    async def test_page_past_end_is_empty(self, patched_db):
        """Test that a page past the end is empty."""
        await patched_db.create_task(data={"created_at": utc(2024, 1, 1)})

        result = await task_service.list_tasks(task_service.build_listing_query(), page=3, page_size=10)

        assert result.tasks == []
        assert result.total == 1


@pytest.mark.unit
class TestUpdateTask:
    async def test_completion_stamps_completed_at(self, patched_db):
        """Test that completion stamps completed_at."""
        task = await patched_db.create_task(data={"status": TaskStatus.IN_PROGRESS, "created_at": utc(2024, 1, 1)})

        updated = await task_service.update_task(
            task.id, TaskPatch(status=TaskStatus.COMPLETED), now=utc(2024, 1, 2, 9)
        )

        assert updated.status == TaskStatus.COMPLETED
        assert updated.completed_at == utc(2024, 1, 2, 9)

    async def test_completed_at_is_not_overwritten(self, patched_db):
        """Test that completed_at is not overwritten once stamped."""
        task = await patched_db.create_task(
            data={"status": TaskStatus.COMPLETED, "created_at": utc(2024, 1, 1), "completed_at": utc(2024, 1, 2)}
        )

        updated = await task_service.update_task(task.id, TaskPatch(title="renamed"), now=utc(2024, 2, 1))

        assert updated.title == "renamed"
        assert updated.completed_at == utc(2024, 1, 2)

    async def test_cancelling_does_not_stamp_completion(self, patched_db):
        """Test that cancelling does not stamp completed_at."""
        task = await patched_db.create_task(data={"created_at": utc(2024, 1, 1)})

        updated = await task_service.update_task(task.id, TaskPatch(status=TaskStatus.CANCELLED))

        assert updated.status == TaskStatus.CANCELLED
        assert updated.completed_at is None

    async def test_invalid_transition_leaves_task_unchanged(self, patched_db):
        """Test that an invalid transition leaves the task unchanged."""
        task = await patched_db.create_task(data={"status": TaskStatus.CANCELLED, "created_at": utc(2024, 1, 1)})

        with pytest.raises(InvalidTransitionError):
            await task_service.update_task(task.id, TaskPatch(status=TaskStatus.PENDING, title="revived"))

        stored = await patched_db.get_task(task_id=task.id)
        assert stored.status == TaskStatus.CANCELLED
        assert stored.title == ""

    async def test_empty_patch_returns_current(self, patched_db):
        """Test that an empty patch returns the current task."""
        task = await patched_db.create_task(data={"title": "same", "created_at": utc(2024, 1, 1)})

        assert await task_service.update_task(task.id, TaskPatch()) == task

    async def test_missing_task(self, patched_db):
        """Test that updating a missing task raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            await task_service.update_task("404", TaskPatch(title="x"))
