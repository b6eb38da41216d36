"""
Pytest fixtures for finance tests.

Sections:
    - Date Fixtures: Fixed points in a reporting year
    - Transaction Fixtures: Pre-configured ledger data
    - Scenario Fixtures: Data sets shared by aggregation tests
"""

from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest

from finance.models import TransactionCategory
from finance.repositories import TransactionRepository
from finance.tests.factories import TransactionFactory


# ==========================================================================
# Date Fixtures
# ==========================================================================


@pytest.fixture
def year():
    """Reporting year used by the aggregation tests."""
    return 2024


@pytest.fixture
def jan(year):
    """Mid-January of the reporting year (UTC)."""
    return datetime(year, 1, 15, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def feb(year):
    """Mid-February of the reporting year (UTC)."""
    return datetime(year, 2, 10, 9, 30, tzinfo=dt_timezone.utc)


# ==========================================================================
# Transaction Fixtures
# ==========================================================================


@pytest.fixture
def transactions():
    """A fresh TransactionRepository."""
    return TransactionRepository()


@pytest.fixture
def income(db, jan):
    """Manual income of $100.00 in January."""
    return TransactionFactory(amount_in_usd=Decimal("100.00"), transaction_date=jan)


@pytest.fixture
def expense(db, jan):
    """Expense stored as -$40.00 in January."""
    return TransactionFactory(
        expense=True,
        category=TransactionCategory.RENT,
        amount_in_usd=Decimal("-40.00"),
        transaction_date=jan,
    )


@pytest.fixture
def auto_entry(db, jan):
    """Automatic entry posted for payment P-AUTO."""
    return TransactionFactory(
        auto=True,
        reference_id="P-AUTO",
        amount_in_usd=Decimal("25.00"),
        transaction_date=jan,
    )


# ==========================================================================
# Scenario Fixtures
# ==========================================================================


@pytest.fixture
def mixed_ledger(db, jan, feb):
    """
    Income $100.00 (Jan), expense -$40.00 (Jan), adjustment $5.00 (Feb).

    Expected summary: income 100.00, expense 40.00, adjustment 5.00,
    balance 65.00, 3 transactions.
    """
    return [
        TransactionFactory(amount_in_usd=Decimal("100.00"), transaction_date=jan),
        TransactionFactory(
            expense=True, amount_in_usd=Decimal("-40.00"), transaction_date=jan
        ),
        TransactionFactory(
            adjustment=True, amount_in_usd=Decimal("5.00"), transaction_date=feb
        ),
    ]


@pytest.fixture
def category_expenses(db, jan):
    """Rent 100 + 50 and utilities 30, all expenses."""
    return [
        TransactionFactory(
            expense=True,
            category=TransactionCategory.RENT,
            amount_in_usd=Decimal("-100.00"),
            transaction_date=jan,
        ),
        TransactionFactory(
            expense=True,
            category=TransactionCategory.RENT,
            amount_in_usd=Decimal("-50.00"),
            transaction_date=jan,
        ),
        TransactionFactory(
            expense=True,
            category=TransactionCategory.UTILITIES,
            amount_in_usd=Decimal("-30.00"),
            transaction_date=jan,
        ),
    ]
