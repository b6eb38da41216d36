"""
Page request and page result types for collection reads.

Usage:
    from core.pagination import PageRequest

    request = PageRequest(page=2, page_size=20)
    request.offset  # 20

    page = repository.list(page=2, page_size=20)
    page.meta.to_dict()
    # {"page": 2, "limit": 20, "total": 45, "totalPages": 3}
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from core.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class PageRequest:
    """
    A validated 1-based page request.

    Raises:
        ValidationError: If page < 1 or page_size <= 0
    """

    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        """Validate page and page size."""
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int):
            raise ValidationError(
                "page_size must be an integer",
                error_code="INVALID_PAGE_SIZE",
                details={"page_size": repr(self.page_size)},
            )
        if self.page_size <= 0:
            raise ValidationError(
                "page_size must be a positive integer",
                error_code="INVALID_PAGE_SIZE",
                details={"page_size": self.page_size},
            )
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValidationError(
                "page must be an integer >= 1",
                error_code="INVALID_PAGE",
                details={"page": repr(self.page)},
            )

    @property
    def offset(self) -> int:
        """Number of rows to skip: (page - 1) * page_size."""
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class PageMeta:
    """
    Pagination metadata returned alongside a page of items.

    Attributes:
        page: Current page number (1-indexed)
        limit: Page size used for the query
        total: Total number of matching records
        total_pages: ceil(total / limit)
    """

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, request: PageRequest, total: int) -> PageMeta:
        """Compute metadata for a request and a total count."""
        return cls(
            page=request.page,
            limit=request.page_size,
            total=total,
            total_pages=math.ceil(total / request.page_size),
        )

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict[str, int]:
        """Return the metadata in the external {page, limit, total, totalPages} shape."""
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


@dataclass
class Page(Generic[T]):
    """A page of items plus its pagination metadata."""

    items: list[T] = field(default_factory=list)
    meta: PageMeta | None = None

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
