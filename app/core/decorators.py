"""
Decorators for data-access functions.

Usage:
    from core.decorators import translate_storage_errors

    class Repository:
        @translate_storage_errors
        def count(self, filters=None) -> int:
            ...
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from django.db import InterfaceError, OperationalError

from core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


def translate_storage_errors(func: Callable) -> Callable:
    """
    Re-raise database driver/transport failures as StorageUnavailableError.

    The driver exception is chained as __cause__. No retry is attempted;
    callers apply their own recovery policy.

    Example:
        @translate_storage_errors
        def exists(self, filters=None) -> bool:
            return self.manager.filter(as_q(filters)).exists()
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error(
                f"Storage failure in {func.__qualname__}: {exc}",
                extra={"operation": func.__qualname__},
            )
            raise StorageUnavailableError(
                "Storage is unavailable",
                details={"operation": func.__qualname__, "reason": str(exc)},
            ) from exc

    return wrapper
