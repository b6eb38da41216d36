"""
Staff app configuration.

This app provides employee task tracking built on the shared
collection-access layer in core.repositories.
"""

from django.apps import AppConfig


class StaffConfig(AppConfig):
    """Configuration for the staff application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "staff"
    verbose_name = "Staff"
