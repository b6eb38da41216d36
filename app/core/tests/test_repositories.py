"""
Tests for core/repositories.py.

The generic Repository is exercised over EmployeeTask (hard deletes,
no soft delete) and Transaction (soft-delete manager), since any
predicate the manager applies must hold for every read.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import OperationalError

from core.exceptions import (
    ConflictError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from core.repositories import EntityRepository, Repository
from finance.models import Transaction
from finance.tests.factories import TransactionFactory
from staff.models import EmployeeTask, TaskStatus
from staff.tests.factories import EmployeeTaskFactory


@pytest.fixture
def tasks():
    return Repository.for_model(EmployeeTask)


@pytest.fixture
def ledger_rows():
    return Repository(Transaction.objects, default_sort=("-transaction_date",))


# =============================================================================
# Reads
# =============================================================================


@pytest.mark.django_db
class TestList:
    """Tests for Repository.list()."""

    def test_returns_page_and_meta(self, tasks):
        """list() should return at most page_size items plus totals."""
        EmployeeTaskFactory.create_batch(5)

        page = tasks.list(page=1, page_size=2)

        assert len(page.items) == 2
        assert page.meta.total == 5
        assert page.meta.total_pages == 3

    def test_filters_and_sort(self, tasks):
        """Dict filters and explicit sort should both apply."""
        b = EmployeeTaskFactory(employee_id="emp-1", title="b")
        a = EmployeeTaskFactory(employee_id="emp-1", title="a")
        EmployeeTaskFactory(employee_id="emp-2")

        page = tasks.list({"employee_id": "emp-1"}, sort=["title"])

        assert page.items == [a, b]

    def test_page_past_end_is_empty(self, tasks):
        """A page beyond the data should be empty, with the real total."""
        EmployeeTaskFactory.create_batch(2)

        page = tasks.list(page=4, page_size=10)

        assert page.items == []
        assert page.meta.total == 2

    def test_select_restricts_columns(self, tasks):
        """select should load only the named columns."""
        task = EmployeeTaskFactory()

        loaded = tasks.list(select=["title"]).items[0]

        assert loaded.get_deferred_fields() >= {"notes", "employee_id"}
        assert loaded.title == task.title

    def test_populate_rejects_non_relations(self, tasks):
        """
        populate only accepts relations.

        Why it matters: a typo must fail loudly instead of silently
        returning unpopulated rows.
        """
        with pytest.raises(ValidationError) as exc_info:
            tasks.list(populate=["title"])

        assert exc_info.value.error_code == "INVALID_POPULATE"

    def test_populate_rejects_unknown(self, tasks):
        """Unknown populate paths should raise INVALID_POPULATE."""
        with pytest.raises(ValidationError) as exc_info:
            tasks.list(populate=["owner"])

        assert exc_info.value.error_code == "INVALID_POPULATE"

    def test_soft_deleted_rows_never_listed(self, ledger_rows):
        """The manager's predicate should apply to list() and its total."""
        kept = TransactionFactory()
        TransactionFactory(deleted=True)

        page = ledger_rows.list()

        assert page.items == [kept]
        assert page.meta.total == 1


@pytest.mark.django_db
class TestSingleReads:
    """Tests for get_by_id / get_one / exists / count."""

    def test_get_by_id(self, tasks):
        """get_by_id should return the record or None."""
        task = EmployeeTaskFactory()

        assert tasks.get_by_id(task.id) == task
        assert tasks.get_by_id("00000000-0000-0000-0000-000000000000") is None
        assert tasks.get_by_id("garbage") is None

    def test_get_one_uses_default_sort(self, tasks):
        """get_one should return the first match in default order."""
        EmployeeTaskFactory(employee_id="emp-1")
        newest = EmployeeTaskFactory(employee_id="emp-1")

        assert tasks.get_one({"employee_id": "emp-1"}) == newest

    def test_exists_and_count(self, ledger_rows):
        """exists/count should ignore soft-deleted rows."""
        TransactionFactory(deleted=True)

        assert ledger_rows.exists() is False
        assert ledger_rows.count() == 0


# =============================================================================
# Writes
# =============================================================================


@pytest.mark.django_db
class TestWrites:
    """Tests for create / update / delete / bulk_update."""

    def test_create_validates(self, tasks):
        """Invalid field values should raise with field details."""
        with pytest.raises(ValidationError) as exc_info:
            tasks.create(title="x", employee_id="emp-1", status="archived")

        assert "status" in exc_info.value.details
        assert not EmployeeTask.objects.exists()

    def test_create_rejects_unknown_field(self, tasks):
        """Unknown fields should raise INVALID_FIELD."""
        with pytest.raises(ValidationError) as exc_info:
            tasks.create(title="x", employee_id="emp-1", colour="red")

        assert exc_info.value.error_code == "INVALID_FIELD"

    def test_create_conflict(self, ledger_rows):
        """A storage uniqueness violation should raise ConflictError."""
        TransactionFactory(auto=True, reference_id="P1")

        with pytest.raises(ConflictError):
            ledger_rows.create(
                type="income",
                amount_in_usd=Decimal("1.00"),
                source="payment_auto",
                reference_id="P1",
                reference_type="payment",
            )

    def test_update_applies_patch(self, tasks):
        """update() should persist the patch and bump updated_at."""
        task = EmployeeTaskFactory()
        before = task.updated_at

        updated = tasks.update(task.id, notes="call supplier")

        task.refresh_from_db()
        assert updated.notes == "call supplier"
        assert task.notes == "call supplier"
        assert task.updated_at >= before

    def test_update_missing_raises(self, tasks):
        """Updating an unknown id should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            tasks.update("00000000-0000-0000-0000-000000000000", notes="x")

    def test_update_soft_deleted_raises(self, ledger_rows):
        """Deleted rows are not visible, so updates should not find them."""
        txn = TransactionFactory(deleted=True)

        with pytest.raises(NotFoundError):
            ledger_rows.update(txn.id, description="edited")

    def test_delete_removes_row(self, tasks):
        """delete() should physically remove the record."""
        task = EmployeeTaskFactory()

        tasks.delete(task.id)

        assert not EmployeeTask.objects.filter(pk=task.pk).exists()

    def test_bulk_update(self, tasks):
        """bulk_update should patch every match and report the count."""
        EmployeeTaskFactory.create_batch(2, employee_id="emp-1")
        EmployeeTaskFactory(employee_id="emp-2")

        count = tasks.bulk_update({"employee_id": "emp-1"}, status=TaskStatus.CANCELLED)

        assert count == 2
        assert EmployeeTask.objects.filter(status=TaskStatus.CANCELLED).count() == 2

    def test_bulk_update_skips_soft_deleted(self, ledger_rows):
        """Soft-deleted rows should not be patched."""
        TransactionFactory(deleted=True, description="old")

        assert ledger_rows.bulk_update(None, description="new") == 0
        assert Transaction.all_objects.get().description == "old"


# =============================================================================
# EntityRepository
# =============================================================================


@pytest.mark.django_db
class TestEntityRepository:
    """Tests for composed entity filters."""

    def test_entity_filters_compose_with_caller_filters(self, tasks):
        """Status and owner filters should AND with caller filters."""
        entities = EntityRepository(tasks, owner_field="employee_id", date_field="due_date")
        match = EmployeeTaskFactory(employee_id="emp-1", due_date=date(2024, 5, 1))
        EmployeeTaskFactory(employee_id="emp-1", due_date=date(2024, 5, 1), completed=True)
        EmployeeTaskFactory(employee_id="emp-2", due_date=date(2024, 5, 1))

        page = entities.list_by_status(TaskStatus.PENDING, {"employee_id": "emp-1"})

        assert page.items == [match]
        assert entities.list_by_owner("emp-1").meta.total == 2

    def test_delegates_generic_operations(self, tasks):
        """Unknown attributes should fall through to the repository."""
        entities = EntityRepository(tasks)
        task = EmployeeTaskFactory()

        assert entities.get_by_id(task.id) == task
        assert entities.count() == 1


# =============================================================================
# Storage errors
# =============================================================================


@pytest.mark.django_db
class TestStorageErrors:
    """Tests for driver failure translation."""

    def test_driver_errors_are_translated(self, tasks):
        """Driver errors should surface as StorageUnavailableError with the cause chained."""
        with patch.object(
            EmployeeTask.objects, "filter", side_effect=OperationalError("server closed")
        ):
            with pytest.raises(StorageUnavailableError) as exc_info:
                tasks.count()

        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert exc_info.value.details["operation"] == "Repository.count"
