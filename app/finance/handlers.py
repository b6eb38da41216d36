"""
Ledger event handlers.

This module provides a handler registry for events that produce ledger
entries (currently completed payments). Event producers hand a payload to
dispatch_event(); the handler turns it into ledger writes.

Usage:
    from finance.handlers import dispatch_event, register_handler

    # Register a custom handler
    @register_handler("refund.completed")
    def handle_refund_completed(payload: dict) -> ServiceResult:
        ...

    # Dispatch an event to its handler
    result = dispatch_event("payment.completed", {"paymentId": "P1", "amountInUSD": "49.99"})
    result.data  # {"status": "posted", "transaction_id": "..."}
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from core.exceptions import ValidationError
from core.services import ServiceResult
from finance.services import LedgerService

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
EVENT_HANDLERS: dict[str, Callable[[dict[str, Any]], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a ledger event handler.

    Args:
        event_type: The event type (e.g., "payment.completed")

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Callable[[dict[str, Any]], ServiceResult]) -> Callable:
        EVENT_HANDLERS[event_type] = func
        logger.debug(f"Registered ledger handler for {event_type}")
        return func

    return decorator


def dispatch_event(event_type: str, payload: dict[str, Any]) -> ServiceResult:
    """
    Dispatch an event to the appropriate handler.

    If no handler is registered, logs and returns success so unknown
    events never fail the producer.

    Returns:
        ServiceResult from the handler, or success(None) if no handler
    """
    handler = EVENT_HANDLERS.get(event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {event_type}",
            extra={"event_type": event_type},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {event_type} to handler",
        extra={"event_type": event_type},
    )

    return handler(payload)


# =============================================================================
# Payment Handlers
# =============================================================================


@register_handler("payment.completed")
def handle_payment_completed(payload: dict[str, Any]) -> ServiceResult:
    """
    Post the income entry for a completed payment.

    Duplicate deliveries succeed with status "duplicate". Invalid payloads
    fail with the validation error. Storage failures propagate so the
    caller can retry.

    Returns:
        ServiceResult with {"status": "posted" | "duplicate", ...}
    """
    try:
        entry = LedgerService.post_payment_entry(payload)
    except ValidationError as e:
        logger.warning(
            f"payment.completed: rejected payload: {e}",
            extra={"payment_id": payload.get("payment_id", payload.get("paymentId"))},
        )
        return LedgerService.handle_exception(e, "payment.completed", log_level=logging.DEBUG)

    if entry is None:
        return ServiceResult.success({"status": "duplicate"})

    return ServiceResult.success(
        {
            "status": "posted",
            "transaction_id": str(entry.id),
            "payment_id": entry.reference_id,
        }
    )
