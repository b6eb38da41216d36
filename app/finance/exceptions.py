"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base, BaseApplicationError)
    ├── ImmutableTransaction - Deleting an automatically posted entry
    └── DuplicateAutoEntry - A payment already has an active automatic entry
    NotFoundError (core)
    └── TransactionNotFound - No visible transaction with this id
        └── TransactionAlreadyDeleted - The transaction exists but is deleted

Usage:
    from finance.exceptions import TransactionNotFound

    try:
        ledger.delete_transaction(txn_id, actor_id="admin-1")
    except TransactionAlreadyDeleted:
        ...  # audit-sensitive callers can tell the two apart
    except TransactionNotFound:
        ...
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, ConflictError, NotFoundError


class LedgerError(BaseApplicationError):
    """
    Base exception for ledger business-rule failures.

    Example:
        try:
            ledger.delete_transaction(txn_id, actor_id)
        except LedgerError as e:
            logger.warning(f"Ledger operation refused: {e}")
            payload = e.to_dict()
    """

    default_error_code: str = "LEDGER_ERROR"


class TransactionNotFound(NotFoundError):
    """
    Raised when no visible (non-deleted) transaction has the given id.

    Example:
        raise TransactionNotFound(
            f"Transaction {pk} not found",
            details={"id": str(pk)},
        )
    """

    default_error_code: str = "TRANSACTION_NOT_FOUND"


class TransactionAlreadyDeleted(TransactionNotFound):
    """
    Raised when the transaction exists but has been soft deleted.

    Subclasses TransactionNotFound so callers that treat both the same
    keep working; audit-sensitive callers can catch this one first.
    """

    default_error_code: str = "TRANSACTION_ALREADY_DELETED"


class ImmutableTransaction(LedgerError):
    """
    Raised when deleting an automatically posted payment entry.

    Payment entries are corrected with a refund or adjustment instead.
    """

    default_error_code: str = "IMMUTABLE_TRANSACTION"


class DuplicateAutoEntry(ConflictError):
    """
    Raised when a payment already has an active automatic entry.

    Only surfaced by callers that ask for strict posting; the default
    posting path treats duplicates as a no-op.
    """

    default_error_code: str = "DUPLICATE_AUTO_ENTRY"
