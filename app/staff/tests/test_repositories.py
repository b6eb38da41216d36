"""
Tests for TaskRepository.

This module tests:
- Owner / status / due-date filters composed over the generic repository
- Status transitions stamping completed_at
- Per-status counts
"""

from datetime import date

import pytest

from core.exceptions import NotFoundError, ValidationError
from staff.models import TaskStatus
from staff.repositories import TaskRepository
from staff.tests.factories import EmployeeTaskFactory


@pytest.fixture
def tasks():
    return TaskRepository()


class TestFilters:
    """Tests for composed list filters."""

    def test_list_by_owner(self, tasks, db):
        """Only the employee's tasks should be listed."""
        mine = EmployeeTaskFactory(employee_id="emp-1")
        EmployeeTaskFactory(employee_id="emp-2")

        page = tasks.list_by_owner("emp-1")

        assert page.items == [mine]
        assert page.meta.total == 1

    def test_list_by_status_keeps_pagination(self, tasks, db):
        """Status filtering should not change the pagination contract."""
        EmployeeTaskFactory.create_batch(3, employee_id="emp-1")
        EmployeeTaskFactory(employee_id="emp-1", completed=True)

        page = tasks.list_by_status(TaskStatus.PENDING, page=2, page_size=2)

        assert len(page) == 1
        assert page.meta.to_dict() == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}

    def test_list_since_uses_due_date(self, tasks, db):
        """list_since should filter on due_date."""
        EmployeeTaskFactory(due_date=date(2024, 1, 1))
        later = EmployeeTaskFactory(due_date=date(2024, 3, 1))

        assert tasks.list_since(date(2024, 2, 1)).items == [later]

    def test_list_due_between(self, tasks, db):
        """Both bounds should be inclusive."""
        first = EmployeeTaskFactory(due_date=date(2024, 1, 1))
        last = EmployeeTaskFactory(due_date=date(2024, 1, 31))
        EmployeeTaskFactory(due_date=date(2024, 2, 1))

        page = tasks.list_due_between(date(2024, 1, 1), date(2024, 1, 31), sort=["due_date"])

        assert page.items == [first, last]

    def test_invalid_page_size(self, tasks, db):
        """A non-positive page size should be rejected."""
        with pytest.raises(ValidationError) as exc_info:
            tasks.list_by_owner("emp-1", page_size=0)

        assert exc_info.value.error_code == "INVALID_PAGE_SIZE"


class TestTransitionStatus:
    """Tests for transition_status."""

    def test_completing_stamps_completed_at(self, tasks, db):
        """Becoming completed should stamp completed_at."""
        task = EmployeeTaskFactory()

        updated = tasks.transition_status(task.id, TaskStatus.COMPLETED)

        assert updated.status == TaskStatus.COMPLETED
        assert updated.completed_at is not None

    def test_recompleting_keeps_stamp(self, tasks, db):
        """Completing a completed task should keep the original stamp."""
        task = EmployeeTaskFactory(completed=True)
        stamp = task.completed_at

        updated = tasks.transition_status(task.id, TaskStatus.COMPLETED)

        assert updated.completed_at == stamp

    def test_other_status_does_not_stamp(self, tasks, db):
        """Non-completed statuses should leave completed_at empty."""
        task = EmployeeTaskFactory()

        updated = tasks.transition_status(task.id, TaskStatus.IN_PROGRESS)

        assert updated.completed_at is None

    def test_missing_task(self, tasks, db):
        """An unknown id should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            tasks.transition_status("00000000-0000-0000-0000-000000000000", TaskStatus.COMPLETED)


class TestCountByStatus:
    """Tests for count_by_status."""

    def test_zero_filled(self, tasks, db):
        """Every status should be present, including empty ones."""
        EmployeeTaskFactory(employee_id="emp-1")
        EmployeeTaskFactory(employee_id="emp-1", completed=True)

        assert tasks.count_by_status("emp-1") == {
            "pending": 1,
            "in_progress": 0,
            "completed": 1,
            "cancelled": 0,
        }
