"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error payloads for whichever layer sits above the core
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Invalid arguments (page size, date range, type filter)
    ├── NotFoundError - Record not found (or not visible through default reads)
    ├── ConflictError - Uniqueness violations at the storage layer
    └── StorageUnavailableError - Database driver/transport failures

Usage:
    from core.exceptions import ValidationError, NotFoundError

    # Raise with message only
    raise ValidationError("page_size must be positive")

    # Raise with error code and details
    raise NotFoundError(
        f"Transaction {pk} not found",
        error_code="TRANSACTION_NOT_FOUND",
        details={"id": str(pk)},
    )

    # Convert to dict for a response payload
    try:
        ...
    except BaseApplicationError as e:
        payload = e.to_dict()

Note:
    The core performs no local recovery. These errors surface unmodified
    to the caller, which translates them into user-facing behavior.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)

    Example:
        try:
            repository.update(pk, category="rent")
        except NotFoundError as e:
            logger.warning(f"Update skipped: {e.error_code}")
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for a response payload.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "Transaction not found",
                "error_code": "TRANSACTION_NOT_FOUND",
                "details": {"id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when an argument is invalid.

    Use for:
    - Non-positive page size or page number
    - Malformed date ranges (start after end)
    - Unrecognized type or source filters

    Example:
        raise ValidationError(
            "page_size must be a positive integer",
            error_code="INVALID_PAGE_SIZE",
            details={"page_size": page_size},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested record is not found.

    Soft-deleted records are not visible through default reads, so an
    update against a deleted record raises this error too.

    Example:
        instance = manager.filter(pk=pk).first()
        if instance is None:
            raise NotFoundError(
                f"{model_name} {pk} not found",
                details={"id": str(pk)},
            )
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when a write conflicts with a storage-level uniqueness constraint.

    Example:
        try:
            manager.create(**data)
        except IntegrityError as exc:
            raise ConflictError(str(exc), details={"model": label}) from exc
    """

    default_error_code: str = "CONFLICT"


class StorageUnavailableError(BaseApplicationError):
    """
    Raised when the database driver or transport fails.

    The original driver exception is always chained as __cause__ so
    callers and logs keep the full failure.

    Example:
        try:
            return list(queryset)
        except OperationalError as exc:
            raise StorageUnavailableError("Database unavailable") from exc
    """

    default_error_code: str = "STORAGE_UNAVAILABLE"
