import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="EmployeeTask",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "title",
                    models.CharField(help_text="Short description of the work", max_length=200),
                ),
                (
                    "employee_id",
                    models.CharField(
                        db_index=True,
                        help_text="Identifier of the employee the task is assigned to",
                        max_length=255,
                    ),
                ),
                (
                    "assigned_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the actor who assigned the task",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        help_text="Current lifecycle status",
                        max_length=20,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("urgent", "Urgent"),
                        ],
                        default="medium",
                        help_text="Task priority",
                        max_length=10,
                    ),
                ),
                (
                    "due_date",
                    models.DateField(blank=True, help_text="Optional deadline", null=True),
                ),
                (
                    "completed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the task was completed",
                        null=True,
                    ),
                ),
                (
                    "notes",
                    models.TextField(blank=True, default="", help_text="Free-text notes"),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.AddIndex(
            model_name="employeetask",
            index=models.Index(
                fields=["employee_id", "status"], name="staff_task_employee_status_idx"
            ),
        ),
        migrations.AddIndex(
            model_name="employeetask",
            index=models.Index(
                fields=["employee_id", "due_date"], name="staff_task_employee_due_idx"
            ),
        ),
    ]
