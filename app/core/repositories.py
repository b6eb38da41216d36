"""
Generic collection access for Django models.

This module provides the data-access contract reused by every collection:
- Repository: filter + sort + paginate + populate + select reads, plus
  create / update / delete / exists / count / bulk_update
- EntityRepository: composes a Repository with status, owner and date
  filters and a status-transition helper

Repositories are composed around a manager rather than extended per
model. Whatever predicate the manager applies (for example
SoftDeleteManager hiding deleted rows) is applied to every read.

Usage:
    from core.repositories import EntityRepository, Repository

    tasks = Repository(EmployeeTask.objects)
    page = tasks.list({"status": "pending"}, sort=["due_date"], page=2, page_size=20)
    page.items       # up to 20 EmployeeTask instances
    page.meta.total  # total matching rows

    entity = EntityRepository(tasks, owner_field="employee_id")
    entity.transition_status(task.id, "completed")  # stamps completed_at
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Generic, TypeVar

from django.core.exceptions import FieldDoesNotExist
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, models, transaction
from django.utils import timezone

from core.decorators import translate_storage_errors
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.filters import as_q, by_owner, by_status, combine, on_or_after
from core.pagination import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, Page, PageMeta, PageRequest

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date, datetime
    from typing import Any

    from django.db.models import Q

M = TypeVar("M", bound=models.Model)

logger = logging.getLogger(__name__)


class Repository(Generic[M]):
    """
    Generic data access over a single model manager.

    Args:
        manager: Manager that defines the visible rows (e.g. Model.objects)
        default_sort: Ordering used when a read does not pass one

    Note:
        The data query and the total-count query behind list() are
        independent; under concurrent writes the page and the total may
        disagree by the writes committed between them.
    """

    def __init__(
        self,
        manager: models.Manager,
        default_sort: Sequence[str] = ("-created_at",),
    ):
        self.manager = manager
        self.model = manager.model
        self.default_sort = tuple(default_sort)

    @classmethod
    def for_model(cls, model: type[M], **kwargs) -> Repository[M]:
        """Build a repository over the model's default manager."""
        return cls(model._default_manager, **kwargs)

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def _query(
        self,
        filters: Q | dict[str, Any] | None = None,
        populate: Sequence[str] | None = None,
        select: Sequence[str] | None = None,
    ) -> models.QuerySet:
        queryset = self.manager.filter(as_q(filters))
        if populate:
            queryset = self._apply_populate(queryset, populate)
        if select:
            queryset = queryset.only(*select)
        return queryset

    def _apply_populate(
        self, queryset: models.QuerySet, populate: Sequence[str]
    ) -> models.QuerySet:
        for path in populate:
            try:
                field = self.model._meta.get_field(path.split("__")[0])
            except FieldDoesNotExist as exc:
                raise ValidationError(
                    f"Cannot populate unknown relation '{path}'",
                    error_code="INVALID_POPULATE",
                    details={"populate": path, "model": self.model._meta.label},
                ) from exc
            if not field.is_relation:
                raise ValidationError(
                    f"Cannot populate non-relational field '{path}'",
                    error_code="INVALID_POPULATE",
                    details={"populate": path, "model": self.model._meta.label},
                )
            if field.many_to_many or field.one_to_many:
                queryset = queryset.prefetch_related(path)
            else:
                queryset = queryset.select_related(path)
        return queryset

    def _check_fields(self, names: Sequence[str]) -> None:
        for name in names:
            try:
                self.model._meta.get_field(name)
            except FieldDoesNotExist as exc:
                raise ValidationError(
                    f"Unknown field '{name}' for {self.model._meta.label}",
                    error_code="INVALID_FIELD",
                    details={"field": name},
                ) from exc

    def _has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.model._meta.concrete_fields)

    @staticmethod
    def _validate(instance: M) -> None:
        # Uniqueness is left to the database so violations surface as conflicts.
        try:
            instance.full_clean(validate_unique=False, validate_constraints=False)
        except DjangoValidationError as exc:
            raise ValidationError(
                "Invalid field values",
                error_code="VALIDATION_ERROR",
                details=exc.message_dict,
            ) from exc

    def _conflict(self, exc: IntegrityError) -> ConflictError:
        logger.warning(
            f"Integrity conflict on {self.model._meta.label}: {exc}",
            extra={"model": self.model._meta.label},
        )
        return ConflictError(
            f"{self.model._meta.verbose_name.capitalize()} conflicts with an existing record",
            details={"model": self.model._meta.label, "reason": str(exc)},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @translate_storage_errors
    def list(
        self,
        filters: Q | dict[str, Any] | None = None,
        sort: Sequence[str] | None = None,
        page: int = DEFAULT_PAGE,
        page_size: int = DEFAULT_PAGE_SIZE,
        populate: Sequence[str] | None = None,
        select: Sequence[str] | None = None,
    ) -> Page[M]:
        """
        Return one page of matching records plus pagination metadata.

        Args:
            filters: Q object or dict of lookups
            sort: Field names, '-' prefix for descending
            page: 1-based page number (default 1)
            page_size: Items per page (default 10)
            populate: Relations to load alongside each record
            select: Restrict loaded columns

        Returns:
            Page with at most page_size items and meta.total_pages =
            ceil(total / page_size)

        Raises:
            ValidationError: If page < 1 or page_size <= 0
        """
        request = PageRequest(page=page, page_size=page_size)
        ordering = tuple(sort) if sort else self.default_sort

        queryset = self._query(filters, populate, select).order_by(*ordering)
        items = list(queryset[request.offset : request.offset + request.page_size])
        total = self.manager.filter(as_q(filters)).count()

        return Page(items=items, meta=PageMeta.build(request, total))

    @translate_storage_errors
    def get_by_id(
        self,
        pk: Any,
        populate: Sequence[str] | None = None,
        select: Sequence[str] | None = None,
    ) -> M | None:
        """Return the record with this primary key, or None."""
        try:
            return self._query({"pk": pk}, populate, select).first()
        except (DjangoValidationError, ValueError):
            # Malformed ids (e.g. a non-UUID string) cannot match anything
            return None

    @translate_storage_errors
    def get_one(
        self,
        filters: Q | dict[str, Any] | None,
        populate: Sequence[str] | None = None,
        select: Sequence[str] | None = None,
    ) -> M | None:
        """Return the first record matching filters in default order, or None."""
        return self._query(filters, populate, select).order_by(*self.default_sort).first()

    @translate_storage_errors
    def exists(self, filters: Q | dict[str, Any] | None = None) -> bool:
        return self.manager.filter(as_q(filters)).exists()

    @translate_storage_errors
    def count(self, filters: Q | dict[str, Any] | None = None) -> int:
        return self.manager.filter(as_q(filters)).count()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @translate_storage_errors
    def create(self, **data: Any) -> M:
        """
        Validate and insert a new record.

        Raises:
            ValidationError: If field values are invalid
            ConflictError: If a storage uniqueness constraint is violated
        """
        self._check_fields(list(data))
        instance = self.model(**data)
        self._validate(instance)
        try:
            with transaction.atomic():
                instance.save(force_insert=True)
        except IntegrityError as exc:
            raise self._conflict(exc) from exc
        return instance

    @translate_storage_errors
    def update(self, pk: Any, **patch: Any) -> M:
        """
        Apply a patch to a visible record and return the updated record.

        Raises:
            NotFoundError: If no visible record has this id
            ValidationError: If the patch names unknown fields or is invalid
            ConflictError: If a storage uniqueness constraint is violated
        """
        self._check_fields(list(patch))
        instance = self.get_by_id(pk)
        if instance is None:
            raise NotFoundError(
                f"{self.model._meta.verbose_name.capitalize()} {pk} not found",
                details={"id": str(pk), "model": self.model._meta.label},
            )
        if not patch:
            return instance

        for name, value in patch.items():
            setattr(instance, name, value)
        self._validate(instance)

        update_fields = list(patch)
        if self._has_field("updated_at") and "updated_at" not in update_fields:
            update_fields.append("updated_at")
        try:
            with transaction.atomic():
                instance.save(update_fields=update_fields)
        except IntegrityError as exc:
            raise self._conflict(exc) from exc
        return instance

    @translate_storage_errors
    def delete(self, pk: Any) -> M:
        """
        Physically remove a visible record and return it.

        Raises:
            NotFoundError: If no visible record has this id
        """
        instance = self.get_by_id(pk)
        if instance is None:
            raise NotFoundError(
                f"{self.model._meta.verbose_name.capitalize()} {pk} not found",
                details={"id": str(pk), "model": self.model._meta.label},
            )
        instance.delete()
        return instance

    @translate_storage_errors
    def bulk_update(self, filters: Q | dict[str, Any] | None, **patch: Any) -> int:
        """
        Apply a patch to every visible record matching filters.

        Returns:
            Number of affected records
        """
        self._check_fields(list(patch))
        if not patch:
            return 0
        if self._has_field("updated_at") and "updated_at" not in patch:
            patch["updated_at"] = timezone.now()
        try:
            with transaction.atomic():
                return self.manager.filter(as_q(filters)).update(**patch)
        except IntegrityError as exc:
            raise self._conflict(exc) from exc


class EntityRepository(Generic[M]):
    """
    Entity-specific access composed over a Repository.

    Adds status, owner and "on or after" filters on top of the generic
    list() without changing its pagination contract, plus a status
    transition helper that stamps a completion timestamp.

    Args:
        repository: The generic repository to compose
        status_field: Name of the status field
        owner_field: Name of the owner field
        date_field: Field used by list_since()
        completed_field: Timestamp stamped when status becomes completed
        completed_status: Status value that counts as completed

    Any other attribute (get_by_id, create, count, ...) is delegated to
    the wrapped repository.
    """

    def __init__(
        self,
        repository: Repository[M],
        *,
        status_field: str = "status",
        owner_field: str = "owner_id",
        date_field: str = "created_at",
        completed_field: str = "completed_at",
        completed_status: str = "completed",
    ):
        self.repository = repository
        self.status_field = status_field
        self.owner_field = owner_field
        self.date_field = date_field
        self.completed_field = completed_field
        self.completed_status = completed_status

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not defined here
        return getattr(self.repository, name)

    def list(self, filters: Q | dict[str, Any] | None = None, **options: Any) -> Page[M]:
        return self.repository.list(filters, **options)

    def list_by_status(
        self, status: str, filters: Q | dict[str, Any] | None = None, **options: Any
    ) -> Page[M]:
        """Page of records with status equal to `status`."""
        return self.repository.list(
            combine(filters, by_status(status, field=self.status_field)), **options
        )

    def list_by_owner(
        self, owner_id: Any, filters: Q | dict[str, Any] | None = None, **options: Any
    ) -> Page[M]:
        """Page of records owned by `owner_id`."""
        return self.repository.list(
            combine(filters, by_owner(owner_id, field=self.owner_field)), **options
        )

    def list_since(
        self,
        since: date | datetime,
        filters: Q | dict[str, Any] | None = None,
        **options: Any,
    ) -> Page[M]:
        """Page of records whose date field is on or after `since`."""
        return self.repository.list(
            combine(filters, on_or_after(since, field=self.date_field)), **options
        )

    def transition_status(self, pk: Any, status: str) -> M:
        """
        Move a record to `status`.

        Stamps completed_field with the current time when the record
        becomes completed. Re-completing a completed record keeps the
        original stamp.

        Raises:
            NotFoundError: If no visible record has this id
        """
        instance = self.repository.get_by_id(pk)
        if instance is None:
            raise NotFoundError(
                f"{self.repository.model._meta.verbose_name.capitalize()} {pk} not found",
                details={"id": str(pk)},
            )

        patch: dict[str, Any] = {self.status_field: status}
        current = getattr(instance, self.status_field)
        if status == self.completed_status and current != self.completed_status:
            patch[self.completed_field] = timezone.now()

        return self.repository.update(pk, **patch)
