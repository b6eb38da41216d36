"""
Custom QuerySet and Manager classes for soft-deletable models.

Manager vs QuerySet:
    - QuerySet: Defines chainable methods (filter, exclude, etc.)
    - Manager: Attaches QuerySet to model, defines table-level operations

Usage:
    from core.managers import SoftDeleteManager

    class Transaction(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()  # Default: excludes deleted
        all_objects = models.Manager()  # Includes deleted

    Transaction.objects.all()        # Only active transactions
    Transaction.objects.deleted()    # Only deleted transactions
    Transaction.all_objects.all()    # Everything

Related:
    - core.model_mixins.SoftDeleteMixin: Model mixin for soft delete fields
"""

from __future__ import annotations

from django.db import models


class SoftDeleteQuerySet(models.QuerySet):
    """
    QuerySet that provides soft delete operations.

    Methods:
        delete(): Soft delete (marks is_deleted=True)
        deleted(): Filter to only deleted records
        active(): Filter to only active records

    Note:
        There is intentionally no restore(); soft delete is one-way.
        The default filtering of deleted records happens in
        SoftDeleteManager, not in this QuerySet.
    """

    def delete(self, actor_id: str | None = None) -> tuple[int, dict[str, int]]:
        """
        Soft delete all active objects in queryset.

        Args:
            actor_id: Identifier of the actor performing the delete

        Returns:
            Tuple of (count, {model_name: count}) matching Django's delete()
        """
        from django.utils import timezone

        now = timezone.now()
        changes = {
            "is_deleted": True,
            "deleted_at": now,
            "deleted_by": str(actor_id) if actor_id is not None else None,
        }
        if any(f.name == "updated_at" for f in self.model._meta.concrete_fields):
            changes["updated_at"] = now
        count = self.filter(is_deleted=False).update(**changes)
        return count, {self.model._meta.label: count}

    def deleted(self) -> SoftDeleteQuerySet:
        """Filter to only soft-deleted records."""
        return self.filter(is_deleted=True)

    def active(self) -> SoftDeleteQuerySet:
        """Filter to only active (non-deleted) records."""
        return self.filter(is_deleted=False)


class SoftDeleteManager(models.Manager):
    """
    Manager that filters out soft-deleted records by default.

    The filtering happens in get_queryset(), so every query through this
    manager (filter, get, count, exists, aggregate) excludes deleted rows.
    """

    def get_queryset(self) -> SoftDeleteQuerySet:
        """Return queryset excluding soft-deleted records."""
        return SoftDeleteQuerySet(self.model, using=self._db).filter(is_deleted=False)

    def deleted(self) -> SoftDeleteQuerySet:
        """Shortcut to get only deleted records."""
        return SoftDeleteQuerySet(self.model, using=self._db).filter(is_deleted=True)

    def with_deleted(self) -> SoftDeleteQuerySet:
        """Get queryset including deleted records."""
        return SoftDeleteQuerySet(self.model, using=self._db)
