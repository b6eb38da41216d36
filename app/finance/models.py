"""
Ledger transaction model.

A Transaction records one monetary movement (income, expense or
adjustment) already converted to USD. Transactions are created either
manually by an administrator or automatically when a payment completes,
and are only ever mutated by a one-way soft delete.

Usage:
    from finance.models import Transaction, TransactionType

    Transaction.objects.filter(type=TransactionType.INCOME)  # Active rows only
    Transaction.all_objects.filter(is_deleted=True)          # Audit access

Related:
    - finance.repositories: TransactionRepository (read/write access)
    - finance.services: LedgerService (aggregation and posting)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from typing import Any


class TransactionType(models.TextChoices):
    """
    Kind of monetary movement.

    Values:
        INCOME: Money received (stored positive)
        EXPENSE: Money spent (conventionally stored negative)
        ADJUSTMENT: Manual correction (either sign)
    """

    INCOME = "income", "Income"
    EXPENSE = "expense", "Expense"
    ADJUSTMENT = "adjustment", "Adjustment"


class TransactionSource(models.TextChoices):
    """
    How the transaction came to exist.

    Values:
        MANUAL: Entered by an administrator
        PAYMENT_AUTO: Posted automatically from a completed payment
    """

    MANUAL = "manual", "Manual"
    PAYMENT_AUTO = "payment_auto", "Payment (automatic)"


class TransactionCategory(models.TextChoices):
    """Reporting category for a transaction."""

    # Income
    PRODUCT_SALE = "product_sale", "Product Sale"
    SERVICE_PAYMENT = "service_payment", "Service Payment"
    SUBSCRIPTION = "subscription", "Subscription"
    COMMISSION = "commission", "Commission"
    # Expense
    REFUND = "refund", "Refund"
    SALARY = "salary", "Salary"
    RENT = "rent", "Rent"
    UTILITIES = "utilities", "Utilities"
    MARKETING = "marketing", "Marketing"
    SOFTWARE = "software", "Software"
    EQUIPMENT = "equipment", "Equipment"
    TAXES = "taxes", "Taxes"
    # Other
    ADJUSTMENT = "adjustment", "Adjustment"
    OTHER = "other", "Other"


class Transaction(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    A single ledger entry in USD.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        type: income / expense / adjustment
        category: Reporting category
        amount_in_usd: Signed USD amount (expenses conventionally negative)
        transaction_date: When the movement happened (may differ from created_at)
        reference_id: Identifier of a related external record (e.g. payment id)
        reference_type: Kind of related record (e.g. 'payment')
        source: manual / payment_auto
        description: Free-text note
        created_by: Actor that created the entry
        metadata: Arbitrary JSON data
        is_deleted, deleted_at, deleted_by: Soft delete stamps (SoftDeleteMixin)
        created_at, updated_at: Timestamps (BaseModel)

    Constraints:
        - At most one non-deleted payment_auto row per reference_id

    Managers:
        objects: Excludes soft-deleted rows (used by every default read)
        all_objects: Includes soft-deleted rows (audit only)
    """

    type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        help_text="Kind of monetary movement",
    )
    category = models.CharField(
        max_length=50,
        choices=TransactionCategory.choices,
        default=TransactionCategory.OTHER,
        help_text="Reporting category",
    )
    amount_in_usd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Signed amount in USD (expenses stored negative)",
    )
    transaction_date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the movement happened",
    )
    reference_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of the related external record",
    )
    reference_type = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Kind of related record (e.g. 'payment')",
    )
    source = models.CharField(
        max_length=20,
        choices=TransactionSource.choices,
        default=TransactionSource.MANUAL,
        help_text="How the transaction was created",
    )
    description = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Free-text note",
    )
    created_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of the actor that created this entry",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON data",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-transaction_date", "-created_at"]
        indexes = [
            models.Index(
                fields=["type", "-transaction_date"],
                name="finance_txn_type_date_idx",
            ),
            models.Index(
                fields=["category", "-transaction_date"],
                name="finance_txn_category_date_idx",
            ),
            models.Index(fields=["source"], name="finance_txn_source_idx"),
            models.Index(fields=["reference_id"], name="finance_txn_reference_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference_id", "source"],
                condition=Q(source="payment_auto", is_deleted=False),
                name="finance_unique_active_auto_entry",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.get_type_display()}: {self.amount_in_usd} USD ({self.category})"

    @property
    def reference(self) -> dict[str, str | None] | None:
        """Related external record as {id, type}, or None."""
        if self.reference_id is None:
            return None
        return {"id": self.reference_id, "type": self.reference_type}

    def to_document(self) -> dict[str, Any]:
        """
        Return the persisted logical shape of this transaction.

        Keys are camelCase; timestamps stay datetime objects and the amount
        stays a Decimal so callers choose their own serialization.
        """
        return {
            "id": str(self.id),
            "type": self.type,
            "category": self.category,
            "amountInUSD": self.amount_in_usd,
            "transactionDate": self.transaction_date,
            "reference": self.reference,
            "source": self.source,
            "isDeleted": self.is_deleted,
            "deletedAt": self.deleted_at,
            "deletedBy": self.deleted_by,
            "createdAt": self.created_at,
        }
