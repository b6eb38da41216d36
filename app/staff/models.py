"""
Employee task model.

Usage:
    from staff.models import EmployeeTask, TaskStatus

    EmployeeTask.objects.filter(employee_id="emp-1", status=TaskStatus.PENDING)
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class TaskStatus(models.TextChoices):
    """Lifecycle of an employee task."""

    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class TaskPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class EmployeeTask(UUIDPrimaryKeyMixin, BaseModel):
    """
    A task assigned to an employee.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        title: Short description of the work
        employee_id: Identifier of the assignee
        assigned_by: Identifier of the assigner
        status: pending / in_progress / completed / cancelled
        priority: low / medium / high / urgent
        due_date: Optional deadline
        completed_at: Stamped when the task becomes completed
        notes: Free-text notes
        created_at, updated_at: Timestamps (BaseModel)
    """

    title = models.CharField(max_length=200, help_text="Short description of the work")
    employee_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Identifier of the employee the task is assigned to",
    )
    assigned_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of the actor who assigned the task",
    )
    status = models.CharField(
        max_length=20,
        choices=TaskStatus.choices,
        default=TaskStatus.PENDING,
        help_text="Current lifecycle status",
    )
    priority = models.CharField(
        max_length=10,
        choices=TaskPriority.choices,
        default=TaskPriority.MEDIUM,
        help_text="Task priority",
    )
    due_date = models.DateField(null=True, blank=True, help_text="Optional deadline")
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the task was completed",
    )
    notes = models.TextField(blank=True, default="", help_text="Free-text notes")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["employee_id", "status"], name="staff_task_employee_status_idx"),
            models.Index(fields=["employee_id", "due_date"], name="staff_task_employee_due_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.get_status_display()})"
