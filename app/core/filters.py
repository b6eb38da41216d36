"""
Reusable filter builders for entity-specific collection access.

Each builder returns a Django Q object so filters compose with `&` and
can be handed to any Repository read without touching its pagination.

Usage:
    from core.filters import by_owner, by_status, combine, on_or_after

    filters = combine(
        by_status("pending"),
        by_owner(employee_id, field="employee_id"),
        on_or_after(week_start, field="due_date"),
    )
    page = repository.list(filters, page=1, page_size=20)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db.models import Q

from core.exceptions import ValidationError

if TYPE_CHECKING:
    from datetime import date, datetime
    from typing import Any


def as_q(filters: Q | dict[str, Any] | None) -> Q:
    """
    Normalize a filter argument into a Q object.

    Args:
        filters: A Q object, a dict of field lookups, or None

    Returns:
        Q object (empty Q matches everything)
    """
    if filters is None:
        return Q()
    if isinstance(filters, Q):
        return filters
    if isinstance(filters, dict):
        return Q(**filters)
    raise ValidationError(
        "filters must be a Q object, a dict of lookups, or None",
        error_code="INVALID_FILTER",
        details={"type": type(filters).__name__},
    )


def combine(*filters: Q | dict[str, Any] | None) -> Q:
    """AND together any number of filters, skipping empty ones."""
    result = Q()
    for item in filters:
        result &= as_q(item)
    return result


def by_status(status: str, field: str = "status") -> Q:
    """Status equality."""
    return Q(**{field: status})


def by_owner(owner_id: Any, field: str = "owner_id") -> Q:
    """Owner equality."""
    return Q(**{field: owner_id})


def on_or_after(since: date | datetime, field: str = "created_at") -> Q:
    """Records whose `field` is on or after `since`."""
    return Q(**{f"{field}__gte": since})


def in_range(
    start: date | datetime | None,
    end: date | datetime | None,
    field: str = "created_at",
) -> Q:
    """
    Inclusive range filter; either bound may be omitted.

    Raises:
        ValidationError: If both bounds are given and start is after end
    """
    if start is not None and end is not None and start > end:
        raise ValidationError(
            "start must not be after end",
            error_code="INVALID_DATE_RANGE",
            details={"start": str(start), "end": str(end)},
        )
    q = Q()
    if start is not None:
        q &= Q(**{f"{field}__gte": start})
    if end is not None:
        q &= Q(**{f"{field}__lte": end})
    return q
