"""
Data access for employee tasks.

Usage:
    from staff.repositories import TaskRepository

    tasks = TaskRepository()
    tasks.list_by_owner("emp-1", sort=["due_date"])
    tasks.transition_status(task.id, "completed")  # stamps completed_at
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.filters import in_range
from core.repositories import EntityRepository, Repository
from staff.models import EmployeeTask, TaskStatus

if TYPE_CHECKING:
    from datetime import date
    from typing import Any

    from core.pagination import Page


class TaskRepository:
    """
    Task access composed from an EntityRepository.

    Owner is employee_id; list_since() filters on due_date. Everything
    else (list_by_status, transition_status, create, count, ...) is
    delegated to the composed EntityRepository.
    """

    def __init__(self):
        self.repository: Repository[EmployeeTask] = Repository(EmployeeTask.objects)
        self.entities: EntityRepository[EmployeeTask] = EntityRepository(
            self.repository,
            owner_field="employee_id",
            date_field="due_date",
            completed_status=TaskStatus.COMPLETED,
        )

    def __getattr__(self, name: str) -> Any:
        return getattr(self.entities, name)

    def list_due_between(
        self, start: date | None, end: date | None, **options: Any
    ) -> Page[EmployeeTask]:
        """Tasks whose due_date lies in [start, end]."""
        return self.repository.list(in_range(start, end, field="due_date"), **options)

    def count_by_status(self, employee_id: str) -> dict[str, int]:
        """Number of the employee's tasks in each status (zero-filled)."""
        return {
            status: self.repository.count({"employee_id": employee_id, "status": status})
            for status in TaskStatus.values
        }
