"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by every domain app:

- Generic, reusable base classes (no domain-specific logic)
- Clear extension points for domain apps
- Infrastructure concerns separated from business logic

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - SoftDeleteMixin: One-way soft delete (is_deleted, deleted_at, deleted_by)
    - RecordState: Explicit ACTIVE / DELETED lifecycle state

Managers (import from core.managers):
    - SoftDeleteManager: Filter deleted records by default
    - SoftDeleteQuerySet: QuerySet with soft delete operations

Repositories (import from core.repositories):
    - Repository: Generic list/get/create/update/delete/count over a manager
    - EntityRepository: Status, owner and date filters plus status transitions

Pagination (import from core.pagination):
    - PageRequest, PageMeta, Page

Filters (import from core.filters):
    - as_q, combine, by_status, by_owner, on_or_after, in_range

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Invalid arguments
    - NotFoundError: Record not found
    - ConflictError: Uniqueness violations
    - StorageUnavailableError: Database driver/transport failures

Note:
    Django models, managers and repositories are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)

# Pagination (no Django dependencies)
from .pagination import Page, PageMeta, PageRequest

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Pagination
    "Page",
    "PageMeta",
    "PageRequest",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageUnavailableError",
]
