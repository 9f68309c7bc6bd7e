"""
Celery tasks for ticketing.

- send_order_confirmation: Email the buyer their tickets after fulfillment

Fulfillment schedules this task with transaction.on_commit, so the order
is visible to the worker and a rolled-back fulfillment never emails.

Usage:
    from ticketing.tasks import send_order_confirmation

    transaction.on_commit(partial(send_order_confirmation.delay, str(order.id)))
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.adapters import backoff_delay

logger = logging.getLogger(__name__)


# Failure codes worth another attempt; anything else is permanent
RETRYABLE_ERROR_CODES = frozenset({"EMAIL_SEND_FAILED"})


@shared_task(bind=True, max_retries=3)
def send_order_confirmation(self, order_id: str) -> dict:
    """
    Send the order confirmation email with QR-coded tickets.

    Delivery failures are retried with exponential backoff. Once retries
    are exhausted the order is left unconfirmed and an error is logged;
    the tickets themselves are unaffected.

    Args:
        order_id: UUID of the fulfilled Order

    Returns:
        Dict with the outcome status
    """
    from ticketing.services import EnrichmentService

    result = EnrichmentService.send_order_confirmation(order_id)
    if result.success:
        return {"order_id": order_id, **result.data}

    if result.error_code in RETRYABLE_ERROR_CODES:
        if self.request.retries < self.max_retries:
            logger.warning(
                "Retrying order confirmation email",
                extra={
                    "order_id": order_id,
                    "attempt": self.request.retries + 1,
                    "error": result.error,
                },
            )
            raise self.retry(countdown=backoff_delay(self.request.retries))

        logger.error(
            "Order confirmation email retries exhausted",
            extra={"order_id": order_id, "error": result.error},
        )

    return {
        "order_id": order_id,
        "status": "failed",
        "error_code": result.error_code,
    }
