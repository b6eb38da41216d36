"""
Ledger service layer: aggregation and posting.

This module provides the LedgerService class which encapsulates the
business rules of the USD ledger. All ledger reads that aggregate and
all ledger writes should go through this service.

Monetary rules:
    - Expenses are conventionally stored negative; every aggregate treats
      them as a magnitude (|amount|)
    - Every monetary output is rounded to 2 decimals, half-up
    - Soft-deleted rows never contribute (the store's manager excludes them)

Usage:
    from finance.services import ledger
    from finance.types import LedgerFilter, PaymentCompletedEvent

    summary = ledger.get_financial_summary(LedgerFilter(start_date=date(2024, 1, 1)))
    months = ledger.get_monthly_breakdown(2024)
    categories = ledger.get_category_breakdown("expense")

    # Safe to call again for the same payment
    ledger.post_payment_entry(PaymentCompletedEvent(payment_id="P1", amount_in_usd="49.99"))
"""

from __future__ import annotations

import csv
import io
import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Count, Q, Sum, Value
from django.db.models.functions import Abs, Coalesce, ExtractMonth
from django.utils import timezone

from core.decorators import translate_storage_errors
from core.exceptions import ConflictError, ValidationError
from core.services import BaseService
from finance.exceptions import (
    DuplicateAutoEntry,
    ImmutableTransaction,
    TransactionNotFound,
)
from finance.models import (
    Transaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
)
from finance.repositories import TransactionRepository
from finance.types import (
    ZERO,
    CategoryBreakdown,
    FinancialSummary,
    LedgerFilter,
    MonthlyBreakdown,
    PaymentCompletedEvent,
    quantize_usd,
    to_decimal,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from typing import Any

    from core.pagination import Page

logger = logging.getLogger(__name__)

MONEY = models.DecimalField(max_digits=20, decimal_places=2)

EXPORT_HEADERS = [
    "Date",
    "Type",
    "Category",
    "Description",
    "Amount (USD)",
    "Source",
    "Reference",
]

EDITABLE_FIELDS = {"description", "category", "transaction_date", "amount_in_usd", "metadata"}

SYSTEM_ACTOR = "system"


def _money_sum(expression: Any, **extra: Any) -> Coalesce:
    return Coalesce(Sum(expression, **extra), Value(ZERO), output_field=MONEY)


def _normalize_filters(filters: LedgerFilter | Q | dict[str, Any] | None) -> LedgerFilter | Q | None:
    # Loose query params are validated into a LedgerFilter
    if isinstance(filters, dict):
        return LedgerFilter.from_params(filters)
    return filters


def _signed_amount(type: str, amount: Any) -> Any:
    """Income is stored positive, expense negative, adjustment as given."""
    value = to_decimal(amount, "amount_in_usd")
    if type == TransactionType.INCOME:
        return abs(value)
    if type == TransactionType.EXPENSE:
        return -abs(value)
    return value


def _check_type(type: str | None) -> None:
    if type is not None and type not in TransactionType.values:
        raise ValidationError(
            f"Unrecognized transaction type '{type}'",
            error_code="INVALID_TYPE",
            details={"type": type, "allowed": list(TransactionType.values)},
        )


class LedgerService(BaseService):
    """
    Service class for ledger operations.

    Key features:
    - Single-query aggregates for summary, monthly and category views
    - Idempotent posting of completed payments (fast-path check plus a
      conditional unique constraint on the table)
    - One-way soft delete with audit stamps

    All methods are classmethods - no instance state is maintained.
    """

    transactions = TransactionRepository()

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    @classmethod
    @translate_storage_errors
    def get_financial_summary(
        cls, filters: LedgerFilter | Q | dict[str, Any] | None = None
    ) -> FinancialSummary:
        """
        Totals, balance and counts over non-deleted transactions.

        balance = round(income + adjustment - expense, 2), where expense is
        the sum of magnitudes. No matching rows gives an all-zero summary.

        Args:
            filters: LedgerFilter, Q object, or dict of query params
        """
        queryset = cls.transactions.queryset(_normalize_filters(filters))
        totals = queryset.aggregate(
            income=_money_sum("amount_in_usd", filter=Q(type=TransactionType.INCOME)),
            expense=_money_sum(Abs("amount_in_usd"), filter=Q(type=TransactionType.EXPENSE)),
            adjustment=_money_sum("amount_in_usd", filter=Q(type=TransactionType.ADJUSTMENT)),
            transaction_count=Count("id"),
            income_count=Count("id", filter=Q(type=TransactionType.INCOME)),
            expense_count=Count("id", filter=Q(type=TransactionType.EXPENSE)),
            adjustment_count=Count("id", filter=Q(type=TransactionType.ADJUSTMENT)),
        )

        if not totals["transaction_count"]:
            return FinancialSummary.empty()

        income = totals["income"] or ZERO
        expense = totals["expense"] or ZERO
        adjustment = totals["adjustment"] or ZERO

        return FinancialSummary(
            total_income_usd=quantize_usd(income),
            total_expense_usd=quantize_usd(expense),
            total_adjustment_usd=quantize_usd(adjustment),
            balance_usd=quantize_usd(income + adjustment - expense),
            transaction_count=totals["transaction_count"],
            income_count=totals["income_count"],
            expense_count=totals["expense_count"],
            adjustment_count=totals["adjustment_count"],
        )

    @classmethod
    @translate_storage_errors
    def get_monthly_breakdown(
        cls,
        year: int | None = None,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
    ) -> list[MonthlyBreakdown]:
        """
        Income, expense and net per calendar month of `year`.

        Only income and expense rows are grouped, so a month holding only
        adjustments does not appear. Months without rows are absent.
        Ordered by month ascending.

        Args:
            year: Calendar year of transaction_date (default: current year)
            filters: LedgerFilter, Q object, or dict of query params

        Raises:
            ValidationError: If year is not an integer in 1..9999
        """
        if year is None:
            year = timezone.now().year
        if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
            raise ValidationError(
                "year must be an integer between 1 and 9999",
                error_code="INVALID_YEAR",
                details={"year": repr(year)},
            )

        rows = (
            cls.transactions.queryset(_normalize_filters(filters))
            .filter(
                transaction_date__year=year,
                type__in=[TransactionType.INCOME, TransactionType.EXPENSE],
            )
            .annotate(month=ExtractMonth("transaction_date"))
            .values("month")
            .annotate(
                income=_money_sum("amount_in_usd", filter=Q(type=TransactionType.INCOME)),
                expense=_money_sum(
                    Abs("amount_in_usd"), filter=Q(type=TransactionType.EXPENSE)
                ),
            )
            .order_by("month")
        )

        return [
            MonthlyBreakdown(
                month=row["month"],
                income=quantize_usd(row["income"]),
                expense=quantize_usd(row["expense"]),
                net=quantize_usd((row["income"] or ZERO) - (row["expense"] or ZERO)),
            )
            for row in rows
        ]

    @classmethod
    @translate_storage_errors
    def get_category_breakdown(
        cls,
        type: str | None = None,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
    ) -> list[CategoryBreakdown]:
        """
        Sum of |amount| and row count per category.

        Ordered by total descending; equal totals are ordered by category
        name ascending.

        Args:
            type: Optional income / expense / adjustment restriction
            filters: LedgerFilter, Q object, or dict of query params

        Raises:
            ValidationError: If type is not a recognized transaction type
        """
        _check_type(type)
        queryset = cls.transactions.queryset(_normalize_filters(filters))
        if type is not None:
            queryset = queryset.filter(type=type)

        rows = (
            queryset.values("category")
            .annotate(total=_money_sum(Abs("amount_in_usd")), count=Count("id"))
            .order_by()
        )

        breakdown = [
            CategoryBreakdown(
                category=row["category"],
                total=quantize_usd(row["total"]),
                count=row["count"],
            )
            for row in rows
        ]
        # Sorted after rounding so equal cent totals tie-break on category
        breakdown.sort(key=lambda item: (-item.total, item.category))
        return breakdown

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    @classmethod
    def post_payment_entry(
        cls, event: PaymentCompletedEvent | dict[str, Any], strict: bool = False
    ) -> Transaction | None:
        """
        Post the income entry for a completed payment, at most once.

        A second delivery of the same payment is a no-op: either the
        fast-path lookup finds the existing entry, or a concurrent insert
        loses on the table's unique constraint.

        Args:
            event: PaymentCompletedEvent or its payload dict
            strict: Raise DuplicateAutoEntry instead of returning None

        Returns:
            The created Transaction, or None when the payment was already posted

        Raises:
            ValidationError: If the event or its category is invalid
            DuplicateAutoEntry: If strict and the payment was already posted
        """
        if not isinstance(event, PaymentCompletedEvent):
            event = PaymentCompletedEvent.from_payload(event)

        if cls.transactions.has_auto_entry(event.payment_id):
            logger.info(
                f"Ledger entry already exists for payment {event.payment_id}",
                extra={"payment_id": event.payment_id},
            )
            return cls._duplicate(event, strict)

        try:
            entry = cls.transactions.create(
                type=TransactionType.INCOME,
                category=event.category,
                amount_in_usd=event.amount_in_usd,
                transaction_date=event.transaction_date or timezone.now(),
                reference_id=event.payment_id,
                reference_type="payment",
                source=TransactionSource.PAYMENT_AUTO,
                description=event.description or f"Payment {event.payment_id}",
                created_by=SYSTEM_ACTOR,
                metadata=event.metadata,
            )
        except ConflictError:
            logger.info(
                f"Concurrent posting for payment {event.payment_id} lost the race",
                extra={"payment_id": event.payment_id},
            )
            return cls._duplicate(event, strict)

        logger.info(
            f"Posted ledger entry {entry.id} for payment {event.payment_id}",
            extra={
                "transaction_id": str(entry.id),
                "payment_id": event.payment_id,
                "amount_in_usd": str(entry.amount_in_usd),
            },
        )
        return entry

    @staticmethod
    def _duplicate(event: PaymentCompletedEvent, strict: bool) -> None:
        if strict:
            raise DuplicateAutoEntry(
                f"Payment {event.payment_id} already has a ledger entry",
                details={"payment_id": event.payment_id},
            )
        return None

    # ------------------------------------------------------------------
    # Manual entries
    # ------------------------------------------------------------------

    @classmethod
    def record_transaction(
        cls,
        type: str,
        amount: Any,
        category: str = TransactionCategory.OTHER,
        description: str = "",
        transaction_date: datetime | None = None,
        actor_id: str | None = None,
        reference_id: str | None = None,
        reference_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Transaction:
        """
        Record a manual transaction.

        The sign of the amount is normalized by type: income is stored
        positive, expense negative, adjustment keeps the given sign.

        Raises:
            ValidationError: If type, category or amount is invalid
        """
        _check_type(type)
        entry = cls.transactions.create(
            type=type,
            category=category,
            amount_in_usd=quantize_usd(_signed_amount(type, amount)),
            transaction_date=transaction_date or timezone.now(),
            reference_id=str(reference_id) if reference_id is not None else None,
            reference_type=reference_type,
            source=TransactionSource.MANUAL,
            description=description or "",
            created_by=str(actor_id) if actor_id is not None else None,
            metadata=metadata or {},
        )
        cls.get_logger().info(
            f"Recorded {type} transaction {entry.id}: {entry.amount_in_usd} USD",
            extra={"transaction_id": str(entry.id), "actor_id": actor_id},
        )
        return entry

    @classmethod
    def adjust_balance(
        cls,
        amount: Any,
        actor_id: str | None = None,
        description: str = "Manual balance adjustment",
    ) -> Transaction:
        """Record a signed adjustment (positive or negative)."""
        return cls.record_transaction(
            TransactionType.ADJUSTMENT,
            amount,
            category=TransactionCategory.ADJUSTMENT,
            description=description,
            actor_id=actor_id,
        )

    @classmethod
    def update_transaction(cls, pk: Any, **changes: Any) -> Transaction:
        """
        Edit a manual transaction.

        Only description, category, transaction_date, amount_in_usd and
        metadata can change. A new amount is re-signed by the transaction
        type.

        Raises:
            TransactionNotFound: If no visible transaction has this id
            ImmutableTransaction: If the transaction was posted from a payment
            ValidationError: If a field cannot be edited or is invalid
        """
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                "These fields cannot be edited",
                error_code="INVALID_FIELD",
                details={name: ["This field cannot be edited."] for name in unknown},
            )

        entry = cls.get_transaction(pk)
        if entry.source != TransactionSource.MANUAL:
            raise ImmutableTransaction(
                "Cannot edit automatically posted transactions. Record an adjustment instead.",
                details={"id": str(pk), "source": entry.source},
            )

        if "amount_in_usd" in changes:
            changes["amount_in_usd"] = quantize_usd(
                _signed_amount(entry.type, changes["amount_in_usd"])
            )
        return cls.transactions.update(entry.pk, **changes)

    @classmethod
    def delete_transaction(cls, pk: Any, actor_id: str | None) -> Transaction:
        """
        Soft delete a manual transaction.

        Raises:
            TransactionNotFound: If no transaction has this id
            TransactionAlreadyDeleted: If it is already deleted
            ImmutableTransaction: If it was posted from a payment
        """
        entry = cls.transactions.get_by_id(pk)
        if entry is not None and entry.source == TransactionSource.PAYMENT_AUTO:
            raise ImmutableTransaction(
                "Cannot delete payment entries. Record a refund or adjustment instead.",
                details={"id": str(pk), "source": entry.source},
            )
        return cls.transactions.soft_delete(pk, actor_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @classmethod
    def list_transactions(
        cls,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
        page: int = 1,
        page_size: int | None = None,
        sort: Sequence[str] | None = None,
    ) -> Page[Transaction]:
        """Page of non-deleted transactions, newest transaction_date first by default."""
        if page_size is None:
            page_size = settings.LEDGER_DEFAULT_PAGE_SIZE
        return cls.transactions.list(
            _normalize_filters(filters),
            sort=sort,
            page=page,
            page_size=page_size,
        )

    @classmethod
    def get_transaction(cls, pk: Any) -> Transaction:
        """
        Return a non-deleted transaction.

        Raises:
            TransactionNotFound: If no visible transaction has this id
        """
        entry = cls.transactions.get_by_id(pk)
        if entry is None:
            raise TransactionNotFound(
                f"Transaction {pk} not found",
                details={"id": str(pk)},
            )
        return entry

    @classmethod
    def get_recent_transactions(
        cls,
        filters: LedgerFilter | Q | dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        """The most recent transactions by transaction_date (default 5)."""
        if limit is None:
            limit = settings.LEDGER_RECENT_TRANSACTIONS
        return cls.transactions.list(
            _normalize_filters(filters), page=1, page_size=limit
        ).items

    @classmethod
    @translate_storage_errors
    def export_transactions(
        cls, filters: LedgerFilter | Q | dict[str, Any] | None = None
    ) -> str:
        """
        CSV export of non-deleted transactions, newest first.

        At most LEDGER_EXPORT_LIMIT rows are written.
        """
        rows = cls.transactions.queryset(_normalize_filters(filters)).order_by(
            *TransactionRepository.default_sort
        )[: settings.LEDGER_EXPORT_LIMIT]

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_HEADERS)
        for entry in rows:
            writer.writerow(
                [
                    timezone.localtime(entry.transaction_date).date().isoformat(),
                    entry.type,
                    entry.category,
                    entry.description,
                    f"{entry.amount_in_usd:.2f}",
                    entry.source,
                    entry.reference_id or "",
                ]
            )
        return buffer.getvalue()


# Singleton instance for convenient access
ledger = LedgerService()
