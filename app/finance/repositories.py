"""
Data access for ledger transactions.

TransactionRepository is the ledger store: every read goes through
Transaction.objects (SoftDeleteManager), so deleted rows never appear in
list, get, count, exists or aggregate results. Deleted rows are only
reachable through include_deleted(), which exists for audits.

Usage:
    from finance.repositories import TransactionRepository

    transactions = TransactionRepository()
    page = transactions.find_by_type("expense", page=1, page_size=20)
    transactions.has_auto_entry("P1")
    transactions.soft_delete(txn.id, actor_id="admin-1")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError

from core.decorators import translate_storage_errors
from core.exceptions import ValidationError
from core.filters import as_q, combine, in_range
from core.repositories import EntityRepository, Repository
from finance.exceptions import TransactionAlreadyDeleted, TransactionNotFound
from finance.models import Transaction, TransactionSource, TransactionType
from finance.types import LedgerFilter

if TYPE_CHECKING:
    from datetime import date, datetime
    from typing import Any

    from django.db.models import Q, QuerySet

    from core.pagination import Page

logger = logging.getLogger(__name__)

AUDIT_FIELDS = frozenset({"is_deleted", "deleted_at", "deleted_by"})


def to_q(filters: LedgerFilter | Q | dict[str, Any] | None) -> Q:
    """Normalize a LedgerFilter, Q, dict or None into a Q object."""
    if isinstance(filters, LedgerFilter):
        return filters.to_q()
    return as_q(filters)


class TransactionRepository:
    """
    Ledger store over non-deleted transactions.

    Composes an EntityRepository (owner = created_by, dates =
    transaction_date) around a Repository built on the soft-delete
    manager. Generic reads and create are delegated unchanged; delete is
    always a soft delete and patches may not touch the deletion fields.
    """

    default_sort = ("-transaction_date", "-created_at")

    def __init__(self):
        self.repository: Repository[Transaction] = Repository(
            Transaction.objects, default_sort=self.default_sort
        )
        self.entities: EntityRepository[Transaction] = EntityRepository(
            self.repository,
            owner_field="created_by",
            date_field="transaction_date",
        )

    def __getattr__(self, name: str) -> Any:
        return getattr(self.entities, name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(
        self, filters: LedgerFilter | Q | dict[str, Any] | None = None, **options: Any
    ) -> Page[Transaction]:
        """Page of non-deleted transactions (newest transaction_date first)."""
        return self.repository.list(to_q(filters), **options)

    def count(self, filters: LedgerFilter | Q | dict[str, Any] | None = None) -> int:
        return self.repository.count(to_q(filters))

    def exists(self, filters: LedgerFilter | Q | dict[str, Any] | None = None) -> bool:
        return self.repository.exists(to_q(filters))

    def find_by_type(
        self,
        type: str,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
        **options: Any,
    ) -> Page[Transaction]:
        """
        Page of transactions of one type.

        Raises:
            ValidationError: If type is not income, expense or adjustment
        """
        if type not in TransactionType.values:
            raise ValidationError(
                f"Unrecognized transaction type '{type}'",
                error_code="INVALID_TYPE",
                details={"type": type, "allowed": list(TransactionType.values)},
            )
        return self.list(combine(to_q(filters), {"type": type}), **options)

    def find_by_category(
        self,
        category: str,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
        **options: Any,
    ) -> Page[Transaction]:
        """Page of transactions in one category."""
        return self.list(combine(to_q(filters), {"category": category}), **options)

    def find_by_date_range(
        self,
        start: date | datetime | None,
        end: date | datetime | None,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
        **options: Any,
    ) -> Page[Transaction]:
        """
        Page of transactions whose transaction_date lies in [start, end].

        Raises:
            ValidationError: If start is after end
        """
        return self.list(
            combine(to_q(filters), in_range(start, end, field="transaction_date")),
            **options,
        )

    def find_by_reference(
        self,
        reference_id: str,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
        **options: Any,
    ) -> Page[Transaction]:
        """Page of transactions linked to one external record."""
        return self.list(
            combine(to_q(filters), {"reference_id": str(reference_id)}), **options
        )

    def list_since(self, since: date | datetime, **options: Any) -> Page[Transaction]:
        """Page of transactions dated on or after `since`."""
        return self.entities.list_since(since, **options)

    def queryset(self, filters: LedgerFilter | Q | dict[str, Any] | None = None) -> QuerySet:
        """
        Filtered queryset of non-deleted transactions.

        Used by the aggregation engine; deleted rows are already excluded
        by the manager.
        """
        return Transaction.objects.filter(to_q(filters))

    def include_deleted(
        self, filters: LedgerFilter | Q | dict[str, Any] | None = None
    ) -> QuerySet:
        """Audit access: filtered queryset including soft-deleted rows."""
        return Transaction.all_objects.filter(to_q(filters))

    @translate_storage_errors
    def has_auto_entry(self, reference_id: str) -> bool:
        """
        Whether a non-deleted automatic payment entry exists for reference_id.

        This is the fast-path idempotency guard for payment posting; the
        conditional unique constraint on the table is the real guarantee.
        """
        return Transaction.objects.filter(
            reference_id=str(reference_id),
            source=TransactionSource.PAYMENT_AUTO,
        ).exists()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _check_patch(self, patch: dict[str, Any]) -> None:
        protected = sorted(AUDIT_FIELDS.intersection(patch))
        if protected:
            raise ValidationError(
                "Deletion fields can only be set through soft_delete()",
                error_code="PROTECTED_FIELD",
                details={"fields": protected},
            )

    def update(self, pk: Any, **patch: Any) -> Transaction:
        """
        Patch a visible transaction.

        Raises:
            ValidationError: If the patch touches is_deleted, deleted_at or deleted_by
        """
        self._check_patch(patch)
        return self.repository.update(pk, **patch)

    def bulk_update(
        self, filters: LedgerFilter | Q | dict[str, Any] | None, **patch: Any
    ) -> int:
        """Patch every visible transaction matching filters."""
        self._check_patch(patch)
        return self.repository.bulk_update(to_q(filters), **patch)

    def delete(self, pk: Any, actor_id: str | None = None) -> Transaction:
        """Transactions are never physically removed; same as soft_delete()."""
        return self.soft_delete(pk, actor_id)

    @translate_storage_errors
    def soft_delete(self, pk: Any, actor_id: str | None) -> Transaction:
        """
        Mark a transaction deleted and stamp deleted_at / deleted_by.

        The state change is a single conditional update, so of two
        concurrent deletes exactly one succeeds. There is no reverse
        operation.

        Returns:
            The deleted transaction (loaded through all_objects)

        Raises:
            TransactionNotFound: If no transaction has this id
            TransactionAlreadyDeleted: If the transaction is already deleted
        """
        try:
            count, _ = Transaction.objects.filter(pk=pk).delete(actor_id=actor_id)
            instance = Transaction.all_objects.filter(pk=pk).first()
        except (DjangoValidationError, ValueError):
            instance = None
            count = 0

        if instance is None:
            raise TransactionNotFound(
                f"Transaction {pk} not found",
                details={"id": str(pk)},
            )
        if count == 0:
            raise TransactionAlreadyDeleted(
                f"Transaction {pk} is already deleted",
                details={
                    "id": str(pk),
                    "deleted_at": instance.deleted_at.isoformat() if instance.deleted_at else None,
                    "deleted_by": instance.deleted_by,
                },
            )

        logger.info(
            f"Soft deleted transaction {pk}",
            extra={"transaction_id": str(pk), "actor_id": actor_id},
        )
        return instance

