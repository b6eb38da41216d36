"""
Tests for LedgerService.

This module tests:
- Financial summary (totals, balance, counts, empty selection)
- Monthly and category breakdowns
- Idempotent payment posting
- Manual entries, edits and soft deletes
- Listing, recent transactions and CSV export
"""

from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.db.models import Q, QuerySet
from freezegun import freeze_time

from core.exceptions import StorageUnavailableError, ValidationError
from finance.exceptions import (
    DuplicateAutoEntry,
    ImmutableTransaction,
    TransactionAlreadyDeleted,
    TransactionNotFound,
)
from finance.models import Transaction, TransactionCategory, TransactionSource
from finance.services import LedgerService, ledger
from finance.tests.factories import TransactionFactory
from finance.types import (
    CategoryBreakdown,
    FinancialSummary,
    LedgerFilter,
    MonthlyBreakdown,
    PaymentCompletedEvent,
)


# =============================================================================
# Summary
# =============================================================================


class TestFinancialSummary:
    """Tests for LedgerService.get_financial_summary."""

    def test_totals_balance_and_counts(self, mixed_ledger):
        """Should total each type and compute the balance."""
        summary = ledger.get_financial_summary()

        assert summary == FinancialSummary(
            total_income_usd=Decimal("100.00"),
            total_expense_usd=Decimal("40.00"),
            total_adjustment_usd=Decimal("5.00"),
            balance_usd=Decimal("65.00"),
            transaction_count=3,
            income_count=1,
            expense_count=1,
            adjustment_count=1,
        )

    def test_balance_is_income_plus_adjustment_minus_expense(self, mixed_ledger):
        """The balance identity should hold."""
        summary = ledger.get_financial_summary()

        assert summary.balance_usd == (
            summary.total_income_usd
            + summary.total_adjustment_usd
            - summary.total_expense_usd
        )

    def test_empty_selection(self, db):
        """No matching rows should give the all-zero summary."""
        assert ledger.get_financial_summary() == FinancialSummary.empty()

    def test_deleted_rows_do_not_contribute(self, mixed_ledger):
        """Soft-deleted rows should be excluded from every total."""
        TransactionFactory(amount_in_usd=Decimal("1000.00"), deleted=True)

        summary = ledger.get_financial_summary()

        assert summary.total_income_usd == Decimal("100.00")
        assert summary.transaction_count == 3

    def test_expense_stored_positive_counts_as_magnitude(self, db, jan):
        """Expenses should count by magnitude whatever their stored sign."""
        TransactionFactory(expense=True, amount_in_usd=Decimal("40.00"), transaction_date=jan)
        TransactionFactory(expense=True, amount_in_usd=Decimal("-10.00"), transaction_date=jan)

        summary = ledger.get_financial_summary()

        assert summary.total_expense_usd == Decimal("50.00")
        assert summary.balance_usd == Decimal("-50.00")

    def test_negative_adjustment_reduces_balance(self, income):
        """Adjustments should be summed with their sign."""
        TransactionFactory(adjustment=True, amount_in_usd=Decimal("-30.00"))

        summary = ledger.get_financial_summary()

        assert summary.total_adjustment_usd == Decimal("-30.00")
        assert summary.balance_usd == Decimal("70.00")

    def test_date_filter_from_params(self, mixed_ledger):
        """Loose query params should be validated and applied."""
        summary = ledger.get_financial_summary({"startDate": "2024-02-01"})

        assert summary.transaction_count == 1
        assert summary.total_adjustment_usd == Decimal("5.00")
        assert summary.balance_usd == Decimal("5.00")

    def test_end_date_covers_whole_day(self, db, jan):
        """A bare end date should include rows later that day."""
        TransactionFactory(amount_in_usd=Decimal("7.00"), transaction_date=jan)

        summary = ledger.get_financial_summary(
            LedgerFilter(start_date=jan.date(), end_date=jan.date())
        )

        assert summary.total_income_usd == Decimal("7.00")

    def test_invalid_filter(self, db):
        """An inverted range should raise INVALID_DATE_RANGE."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.get_financial_summary({"startDate": "2024-03-01", "endDate": "2024-01-01"})

        assert exc_info.value.error_code == "INVALID_DATE_RANGE"

    def test_unknown_param_is_rejected(self, db):
        """Dict filters only accept filter params; other keys raise INVALID_FILTER."""
        TransactionFactory(amount_in_usd=Decimal("10.00"), created_by="alice")
        TransactionFactory(amount_in_usd=Decimal("90.00"), created_by="bob")

        with pytest.raises(ValidationError) as exc_info:
            ledger.get_financial_summary({"created_by": "alice"})

        assert exc_info.value.error_code == "INVALID_FILTER"

    def test_q_filter_on_any_field(self, db):
        """Field lookups outside the filter params go through a Q object."""
        TransactionFactory(amount_in_usd=Decimal("10.00"), created_by="alice")
        TransactionFactory(amount_in_usd=Decimal("90.00"), created_by="bob")

        summary = ledger.get_financial_summary(Q(created_by="alice"))

        assert summary.total_income_usd == Decimal("10.00")
        assert summary.transaction_count == 1

    def test_storage_failure_is_translated(self, income):
        """A failing aggregate query should raise StorageUnavailableError."""
        with patch.object(QuerySet, "aggregate", side_effect=OperationalError("down")):
            with pytest.raises(StorageUnavailableError) as exc_info:
                ledger.get_financial_summary()

        assert isinstance(exc_info.value.__cause__, OperationalError)


# =============================================================================
# Breakdowns
# =============================================================================


class TestMonthlyBreakdown:
    """Tests for LedgerService.get_monthly_breakdown."""

    def test_adjustment_only_month_is_absent(self, mixed_ledger, year):
        """Adjustments are not grouped, so February should not appear."""
        assert ledger.get_monthly_breakdown(year) == [
            MonthlyBreakdown(
                month=1,
                income=Decimal("100.00"),
                expense=Decimal("40.00"),
                net=Decimal("60.00"),
            )
        ]

    def test_ordered_by_month(self, db, year, jan, feb):
        """Months should be returned in ascending order."""
        TransactionFactory(amount_in_usd=Decimal("20.00"), transaction_date=feb)
        TransactionFactory(amount_in_usd=Decimal("10.00"), transaction_date=jan)
        TransactionFactory(
            expense=True,
            amount_in_usd=Decimal("-25.00"),
            transaction_date=datetime(year, 11, 3, tzinfo=dt_timezone.utc),
        )

        months = ledger.get_monthly_breakdown(year)

        assert [m.month for m in months] == [1, 2, 11]
        assert months[2].net == Decimal("-25.00")

    def test_other_years_excluded(self, mixed_ledger, year):
        """Only the requested calendar year should be grouped."""
        TransactionFactory(
            amount_in_usd=Decimal("500.00"),
            transaction_date=datetime(year - 1, 1, 20, tzinfo=dt_timezone.utc),
        )

        assert ledger.get_monthly_breakdown(year)[0].income == Decimal("100.00")

    @freeze_time("2024-06-01 12:00:00")
    def test_defaults_to_current_year(self, mixed_ledger):
        """Without a year, the current calendar year should be used."""
        assert [m.month for m in ledger.get_monthly_breakdown()] == [1]

    def test_empty_year(self, db):
        """A year without rows should give an empty list."""
        assert ledger.get_monthly_breakdown(1999) == []

    @pytest.mark.parametrize("year", [0, 10000, "2024", 2024.0, True])
    def test_invalid_year(self, db, year):
        """Non-integer or out-of-range years should raise INVALID_YEAR."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.get_monthly_breakdown(year)

        assert exc_info.value.error_code == "INVALID_YEAR"


class TestCategoryBreakdown:
    """Tests for LedgerService.get_category_breakdown."""

    def test_totals_by_category(self, category_expenses):
        """Categories should be ordered by total magnitude descending."""
        assert ledger.get_category_breakdown("expense") == [
            CategoryBreakdown(category="rent", total=Decimal("150.00"), count=2),
            CategoryBreakdown(category="utilities", total=Decimal("30.00"), count=1),
        ]

    def test_type_restriction(self, category_expenses, income):
        """Only rows of the given type should be grouped."""
        income_rows = ledger.get_category_breakdown("income")

        assert income_rows == [
            CategoryBreakdown(category="service_payment", total=Decimal("100.00"), count=1)
        ]

    def test_ties_ordered_by_name(self, db):
        """Equal totals should be ordered by category name."""
        TransactionFactory(expense=True, category=TransactionCategory.TAXES)
        TransactionFactory(expense=True, category=TransactionCategory.RENT)

        rows = ledger.get_category_breakdown()

        assert [row.category for row in rows] == ["rent", "taxes"]

    def test_ties_on_fractional_totals(self, db):
        """Totals equal to the cent should tie-break on name whatever the summing order."""
        TransactionFactory(
            expense=True, category=TransactionCategory.RENT, amount_in_usd=Decimal("-0.30")
        )
        TransactionFactory(
            expense=True, category=TransactionCategory.TAXES, amount_in_usd=Decimal("-0.10")
        )
        TransactionFactory(
            expense=True, category=TransactionCategory.TAXES, amount_in_usd=Decimal("-0.20")
        )

        assert ledger.get_category_breakdown("expense") == [
            CategoryBreakdown(category="rent", total=Decimal("0.30"), count=1),
            CategoryBreakdown(category="taxes", total=Decimal("0.30"), count=2),
        ]

    def test_rejects_unknown_type(self, db):
        """Unknown types should raise INVALID_TYPE."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.get_category_breakdown("transfer")

        assert exc_info.value.error_code == "INVALID_TYPE"


# =============================================================================
# Posting
# =============================================================================


class TestPostPaymentEntry:
    """Tests for LedgerService.post_payment_entry."""

    def test_creates_income_entry(self, db):
        """A completed payment should become one automatic income entry."""
        entry = ledger.post_payment_entry(
            PaymentCompletedEvent(payment_id="P1", amount_in_usd=Decimal("49.99"))
        )

        assert entry.type == "income"
        assert entry.category == "service_payment"
        assert entry.amount_in_usd == Decimal("49.99")
        assert entry.source == TransactionSource.PAYMENT_AUTO
        assert entry.reference == {"id": "P1", "type": "payment"}
        assert entry.description == "Payment P1"
        assert entry.created_by == "system"

    def test_second_posting_is_a_no_op(self, db):
        """Posting the same payment twice should keep a single entry."""
        first = ledger.post_payment_entry({"paymentId": "P1", "amountInUSD": "49.99"})
        second = ledger.post_payment_entry({"paymentId": "P1", "amountInUSD": "49.99"})

        assert first is not None
        assert second is None
        assert Transaction.objects.filter(reference_id="P1", source="payment_auto").count() == 1

    def test_strict_posting_raises_on_duplicate(self, auto_entry):
        """strict=True should surface the duplicate as an error."""
        with pytest.raises(DuplicateAutoEntry):
            ledger.post_payment_entry(
                {"paymentId": "P-AUTO", "amountInUSD": "25.00"}, strict=True
            )

    def test_lost_race_is_a_no_op(self, auto_entry):
        """A constraint conflict after the guard passes should return None."""
        with patch.object(LedgerService.transactions, "has_auto_entry", return_value=False):
            result = ledger.post_payment_entry({"paymentId": "P-AUTO", "amountInUSD": "25.00"})

        assert result is None
        assert Transaction.objects.filter(reference_id="P-AUTO").count() == 1

    def test_repost_after_delete(self, auto_entry):
        """A payment whose entry was deleted may be posted again."""
        LedgerService.transactions.soft_delete(auto_entry.id, actor_id="admin-1")

        entry = ledger.post_payment_entry({"paymentId": "P-AUTO", "amountInUSD": "25.00"})

        assert entry is not None
        assert Transaction.all_objects.filter(reference_id="P-AUTO").count() == 2

    def test_rejects_invalid_category(self, db):
        """An unknown category should fail field validation."""
        with pytest.raises(ValidationError):
            ledger.post_payment_entry(
                {"paymentId": "P1", "amountInUSD": "10.00", "category": "lottery"}
            )

        assert not Transaction.all_objects.exists()


# =============================================================================
# Manual entries
# =============================================================================


class TestRecordTransaction:
    """Tests for record_transaction and adjust_balance."""

    def test_expense_is_stored_negative(self, db):
        """Expense amounts should be stored negative."""
        entry = ledger.record_transaction(
            "expense", "40", category=TransactionCategory.RENT, actor_id="admin-1"
        )

        assert entry.amount_in_usd == Decimal("-40.00")
        assert entry.source == TransactionSource.MANUAL
        assert entry.created_by == "admin-1"

    def test_income_is_stored_positive(self, db):
        """Income amounts should be stored positive."""
        entry = ledger.record_transaction("income", "-12.345")

        assert entry.amount_in_usd == Decimal("12.35")

    def test_rejects_bad_amount(self, db):
        """Non-numeric amounts should raise INVALID_AMOUNT."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.record_transaction("income", "lots")

        assert exc_info.value.error_code == "INVALID_AMOUNT"

    def test_rejects_bad_category(self, db):
        """Unknown categories should fail with field errors."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.record_transaction("income", "5", category="lottery")

        assert "category" in exc_info.value.details

    def test_adjust_balance_keeps_sign(self, db):
        """Adjustments should be recorded with the given sign."""
        entry = ledger.adjust_balance("-12.5", actor_id="admin-1")

        assert entry.type == "adjustment"
        assert entry.category == "adjustment"
        assert entry.amount_in_usd == Decimal("-12.50")
        assert entry.description == "Manual balance adjustment"


class TestUpdateTransaction:
    """Tests for update_transaction."""

    def test_updates_editable_fields(self, expense):
        """Amounts should be re-signed by the stored type."""
        updated = ledger.update_transaction(
            expense.id, amount_in_usd="25", description="Office rent"
        )

        assert updated.amount_in_usd == Decimal("-25.00")
        expense.refresh_from_db()
        assert expense.description == "Office rent"

    def test_rejects_non_editable_field(self, income):
        """Fields outside the editable set should raise INVALID_FIELD."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.update_transaction(income.id, source="payment_auto")

        assert exc_info.value.error_code == "INVALID_FIELD"

    def test_rejects_automatic_entries(self, auto_entry):
        """Payment entries should be immutable."""
        with pytest.raises(ImmutableTransaction):
            ledger.update_transaction(auto_entry.id, description="edited")

    def test_deleted_entry_is_not_found(self, income):
        """A deleted entry should not be editable."""
        ledger.delete_transaction(income.id, actor_id="admin-1")

        with pytest.raises(TransactionNotFound):
            ledger.update_transaction(income.id, description="edited")


class TestDeleteTransaction:
    """Tests for delete_transaction."""

    def test_soft_deletes_manual_entry(self, income):
        """The entry should disappear from reads but stay in storage."""
        ledger.delete_transaction(income.id, actor_id="admin-1")

        with pytest.raises(TransactionNotFound):
            ledger.get_transaction(income.id)
        assert Transaction.all_objects.get(pk=income.pk).deleted_by == "admin-1"

    def test_second_delete_raises_already_deleted(self, income):
        """Deleting twice should raise TransactionAlreadyDeleted."""
        ledger.delete_transaction(income.id, actor_id="admin-1")

        with pytest.raises(TransactionAlreadyDeleted):
            ledger.delete_transaction(income.id, actor_id="admin-1")

    def test_refuses_automatic_entries(self, auto_entry):
        """Payment entries should be corrected with an adjustment instead."""
        with pytest.raises(ImmutableTransaction):
            ledger.delete_transaction(auto_entry.id, actor_id="admin-1")

        assert Transaction.objects.filter(pk=auto_entry.pk).exists()


# =============================================================================
# Reads
# =============================================================================


class TestListing:
    """Tests for list_transactions and get_recent_transactions."""

    def test_list_with_params(self, income, expense):
        """Dict params should filter the page."""
        page = ledger.list_transactions({"type": "income"})

        assert page.items == [income]
        assert page.meta.limit == 10

    def test_list_custom_sort(self, db, jan, feb):
        """An explicit sort should override the default ordering."""
        older = TransactionFactory(transaction_date=jan)
        newer = TransactionFactory(transaction_date=feb)

        page = ledger.list_transactions(sort=["transaction_date"])

        assert page.items == [older, newer]

    def test_recent_defaults_to_five(self, db):
        """Recent transactions should be capped at five."""
        TransactionFactory.create_batch(7)

        assert len(ledger.get_recent_transactions()) == 5

    def test_recent_with_limit(self, mixed_ledger):
        """The newest rows should come first."""
        recent = ledger.get_recent_transactions(limit=1)

        assert recent == [mixed_ledger[2]]


class TestExport:
    """Tests for export_transactions."""

    def test_csv_rows(self, db, jan):
        """Export should write a header and one row per transaction."""
        TransactionFactory(
            expense=True,
            category=TransactionCategory.RENT,
            amount_in_usd=Decimal("-40.00"),
            transaction_date=jan,
            description="January rent",
        )
        TransactionFactory(
            auto=True,
            reference_id="P1",
            amount_in_usd=Decimal("49.99"),
            transaction_date=jan.replace(day=20),
            description="Payment P1",
        )

        lines = ledger.export_transactions().splitlines()

        assert lines == [
            "Date,Type,Category,Description,Amount (USD),Source,Reference",
            "2024-01-20,income,service_payment,Payment P1,49.99,payment_auto,P1",
            "2024-01-15,expense,rent,January rent,-40.00,manual,",
        ]

    def test_export_excludes_deleted(self, db):
        """Deleted rows should not be exported."""
        TransactionFactory(deleted=True)

        assert ledger.export_transactions().splitlines() == [
            "Date,Type,Category,Description,Amount (USD),Source,Reference"
        ]


# =============================================================================
# Storage failures
# =============================================================================


class TestStorageFailures:
    """Reports and exports surface driver failures as StorageUnavailableError."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda: ledger.get_financial_summary(),
            lambda: ledger.get_monthly_breakdown(2024),
            lambda: ledger.get_category_breakdown("expense"),
            lambda: ledger.export_transactions(),
        ],
        ids=["summary", "monthly", "category", "export"],
    )
    def test_driver_error_is_translated(self, db, call):
        """Driver errors raised while querying should be translated."""
        with patch.object(
            Transaction.objects, "filter", side_effect=OperationalError("connection lost")
        ):
            with pytest.raises(StorageUnavailableError) as exc_info:
                call()

        assert exc_info.value.details["reason"] == "connection lost"
