"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    SoftDeleteMixin: One-way soft delete (is_deleted, deleted_at, deleted_by)

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
    from core.managers import SoftDeleteManager

    class Transaction(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()  # Default: excludes deleted
        all_objects = models.Manager()  # Audit access, includes deleted

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
    - SoftDeleteMixin requires SoftDeleteManager (see core.managers)
"""

from __future__ import annotations

import uuid

from django.db import models


class RecordState(models.TextChoices):
    """
    Lifecycle state of a soft-deletable record.

    The only transition is ACTIVE -> DELETED. There is no restore.
    """

    ACTIVE = "active", "Active"
    DELETED = "deleted", "Deleted"


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class SoftDeleteMixin(models.Model):
    """
    One-way soft delete support for models.

    Instead of removing records, marks them as deleted and stamps who
    deleted them and when. Deleted records are preserved for auditing
    and are hidden from the default manager.

    Fields:
        is_deleted: Boolean flag indicating soft delete status
        deleted_at: Timestamp when the record was soft deleted
        deleted_by: Identifier of the actor who deleted the record

    Usage:
        transaction.soft_delete(actor_id="admin-42")
        assert transaction.state == RecordState.DELETED

    Note:
        Soft delete is terminal. Calling soft_delete() on a record that is
        already deleted leaves the original audit stamps untouched.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )
    deleted_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of the actor who soft deleted this record",
    )

    class Meta:
        abstract = True

    @property
    def state(self) -> RecordState:
        """Return the explicit lifecycle state derived from is_deleted."""
        return RecordState.DELETED if self.is_deleted else RecordState.ACTIVE

    def soft_delete(self, actor_id: str | None = None) -> bool:
        """
        Mark this record as deleted.

        Args:
            actor_id: Identifier of the actor performing the delete

        Returns:
            True if the record transitioned, False if it was already deleted
        """
        if self.is_deleted:
            return False

        from django.utils import timezone

        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.deleted_by = str(actor_id) if actor_id is not None else None
        update_fields = ["is_deleted", "deleted_at", "deleted_by"]
        if any(f.name == "updated_at" for f in self._meta.concrete_fields):
            update_fields.append("updated_at")
        self.save(update_fields=update_fields)
        return True
