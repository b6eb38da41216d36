"""
Celery tasks for ledger posting.

This module provides async tasks for:
- Posting the ledger entry of a completed payment

Usage:
    from finance.tasks import process_payment_completed

    # Queue a completed payment for posting (safe to deliver twice)
    process_payment_completed.delay({"paymentId": "P1", "amountInUSD": "49.99"})
"""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

from core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_POSTING_RETRIES = 5


# =============================================================================
# Posting Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(StorageUnavailableError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_POSTING_RETRIES},
    acks_late=True,
)
def process_payment_completed(self, payload: dict[str, Any]) -> dict:
    """
    Post the ledger entry for a completed payment.

    Redelivery is harmless: a payment that already has its automatic
    entry comes back as "duplicate". Only storage outages are retried;
    an invalid payload fails without retry.

    Args:
        payload: Event payload (paymentId / amountInUSD / category / ...)

    Returns:
        Dict with status "posted", "duplicate" or "failed"
    """
    # Import here to avoid circular imports
    from finance.handlers import dispatch_event

    payment_id = payload.get("payment_id", payload.get("paymentId"))
    logger.info(
        "Processing payment.completed",
        extra={"payment_id": payment_id, "attempt": self.request.retries},
    )

    result = dispatch_event("payment.completed", payload)

    if not result.success:
        logger.error(
            f"payment.completed failed: {result.error}",
            extra={"payment_id": payment_id, "error_code": result.error_code},
        )
        return {
            "status": "failed",
            "payment_id": payment_id,
            "error": result.error,
            "error_code": result.error_code,
        }

    return {"payment_id": payment_id, **result.data}
