"""
Employee task service.

Usage:
    from staff.services import TaskService

    result = TaskService.assign_task("Reconcile March", employee_id="emp-1")
    TaskService.update_status(result.data.id, "completed")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.utils import timezone

from core.exceptions import BaseApplicationError, StorageUnavailableError
from core.services import BaseService, ServiceResult
from staff.models import EmployeeTask, TaskPriority, TaskStatus
from staff.repositories import TaskRepository

if TYPE_CHECKING:
    from datetime import date
    from typing import Any

    from core.pagination import Page


class TaskService(BaseService):
    """
    Business logic for employee tasks.

    Expected failures (unknown status, missing task, invalid fields) come
    back as ServiceResult failures; storage outages raise.
    """

    tasks = TaskRepository()

    @classmethod
    def assign_task(
        cls,
        title: str,
        employee_id: str,
        assigned_by: str | None = None,
        due_date: date | None = None,
        priority: str = TaskPriority.MEDIUM,
        notes: str = "",
    ) -> ServiceResult[EmployeeTask]:
        """Create a pending task for an employee."""
        validation = cls.validate_required(title=title, employee_id=employee_id)
        if validation is not None:
            return validation

        try:
            task = cls.tasks.create(
                title=title,
                employee_id=str(employee_id),
                assigned_by=str(assigned_by) if assigned_by is not None else None,
                due_date=due_date,
                priority=priority,
                notes=notes,
            )
        except StorageUnavailableError:
            raise
        except BaseApplicationError as e:
            return cls.handle_exception(e, "assign_task", log_level=logging.INFO)

        cls.get_logger().info(
            f"Assigned task {task.id} to {employee_id}",
            extra={"task_id": str(task.id), "employee_id": str(employee_id)},
        )
        return ServiceResult.success(task)

    @classmethod
    def update_status(cls, task_id: Any, status: str) -> ServiceResult[EmployeeTask]:
        """
        Move a task to a new status.

        Completing a task stamps completed_at (kept if it was already
        completed).
        """
        if status not in TaskStatus.values:
            return ServiceResult.failure(
                f"Unrecognized task status '{status}'",
                error_code="INVALID_STATUS",
                errors={"status": [f"Must be one of: {', '.join(TaskStatus.values)}"]},
            )

        try:
            with cls.atomic():
                task = cls.tasks.transition_status(task_id, status)
        except StorageUnavailableError:
            raise
        except BaseApplicationError as e:
            return cls.handle_exception(e, "update_status", log_level=logging.INFO)

        cls.get_logger().info(
            f"Task {task.id} -> {status}",
            extra={"task_id": str(task.id), "status": status},
        )
        return ServiceResult.success(task)

    @classmethod
    def list_for_employee(
        cls,
        employee_id: str,
        status: str | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page[EmployeeTask]:
        """Page of an employee's tasks, soonest due first."""
        filters = {"status": status} if status else None
        return cls.tasks.list_by_owner(
            str(employee_id),
            filters,
            sort=["due_date", "-created_at"],
            page=page,
            page_size=page_size,
        )

    @classmethod
    def get_task_stats(cls, employee_id: str) -> dict[str, Any]:
        """
        Total, per-status counts and the number of overdue open tasks.

        A task is overdue when it is pending or in progress and its
        due_date is before today.
        """
        overdue = cls.tasks.count(
            {
                "employee_id": str(employee_id),
                "status__in": [TaskStatus.PENDING, TaskStatus.IN_PROGRESS],
                "due_date__lt": timezone.localdate(),
            }
        )
        by_status = cls.tasks.count_by_status(str(employee_id))
        return {"total": sum(by_status.values()), "by_status": by_status, "overdue": overdue}
