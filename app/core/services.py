"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class TaskService(BaseService):
        @classmethod
        def assign(cls, title: str, employee_id: str) -> ServiceResult[EmployeeTask]:
            validation = cls.validate_required(title=title, employee_id=employee_id)
            if validation is not None:
                return validation

            with cls.atomic():
                task = tasks.create(title=title, employee_id=employee_id)

            cls.get_logger().info(f"Assigned task {task.id}")
            return ServiceResult.success(task)

    result = TaskService.assign("Close books", "emp-1")
    if not result.success:
        logger.warning(f"{result.error} ({result.error_code})")

Related:
    - core.exceptions: For unexpected/exceptional errors
    - core.repositories: Data access used by services
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        task = tasks.create(title=title, employee_id=employee_id)
        return ServiceResult.success(task)

        # Failure case
        return ServiceResult.failure("Task already completed", "TASK_COMPLETED")

        # Validation errors with field details
        return ServiceResult.failure(
            "Validation failed",
            error_code="VALIDATION_ERROR",
            errors={"title": ["This field is required."]}
        )

        # Check result
        result = TaskService.update_status(task_id, "completed")
        if result.success:
            task = result.data
        else:
            logger.warning(f"{result.error} ({result.error_code})")

    Note:
        Makes expected failures explicit without try/except blocks.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set

        Example:
            task = tasks.create(title=title, employee_id=employee_id)
            return ServiceResult.success(task)
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details

        Example:
            # Simple error
            return ServiceResult.failure("Task not found", "TASK_NOT_FOUND")

            # Validation errors
            return ServiceResult.failure(
                "Validation failed",
                error_code="VALIDATION_ERROR",
                errors={"due_date": ["Enter a valid date."]}
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Useful for converting caught exceptions to ServiceResult.

        Args:
            exc: The caught exception
            error_code: Optional error code (defaults to exception class name)

        Returns:
            ServiceResult with error details from exception

        Example:
            try:
                ledger.record_transaction(...)
            except ValidationError as e:
                return ServiceResult.from_exception(e, "INVALID_TRANSACTION")
        """
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    - Exception-to-result conversion

    Usage:
        class TaskService(BaseService):
            @classmethod
            def update_status(cls, task_id, status) -> ServiceResult[EmployeeTask]:
                with cls.atomic():
                    task = cls.tasks.transition_status(task_id, status)

                cls.get_logger().info(f"Task {task.id} -> {status}")
                return ServiceResult.success(task)

    Design Notes:
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Example:
            with cls.atomic():
                task = tasks.create(title=title, employee_id=employee_id)
                tasks.transition_status(task.id, "in_progress")
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Application errors keep their own error code and details; anything
        else is reported under the exception class name.

        Args:
            exc: The caught exception
            context: Additional context for logging
            log_level: Logging level (default ERROR)
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)
        logger.log(log_level, message, exc_info=log_level >= logging.ERROR)

        if isinstance(exc, BaseApplicationError):
            errors = None
            if isinstance(exc.details, dict) and all(
                isinstance(v, list) for v in exc.details.values()
            ):
                errors = exc.details or None
            return ServiceResult.failure(exc.message, exc.error_code, errors=errors)
        return ServiceResult.from_exception(exc)

    @classmethod
    def validate_required(cls, **kwargs) -> ServiceResult | None:
        """
        Validate that required fields are provided.

        Returns a failure result if any required field is None or blank,
        None if all fields are present.

        Example:
            validation = cls.validate_required(title=title, employee_id=employee_id)
            if validation is not None:
                return validation
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            return ServiceResult.failure(
                "Required fields missing",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )
        return None
