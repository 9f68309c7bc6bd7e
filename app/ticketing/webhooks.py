"""
Stripe webhook handlers for ticket fulfillment.

Registered with the payments handler registry when the ticketing app is
ready (see TicketingConfig.ready). The payments webhook view verifies and
records each event, then dispatches it here.

Handled events:
- checkout.session.completed: Fulfill the session if it is paid
- checkout.session.async_payment_succeeded: Fulfill a delayed-payment session
- checkout.session.async_payment_failed: Logged, nothing to fulfill
- payment_intent.payment_failed: Logged, nothing to fulfill
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction

from core.services import ServiceResult
from payments.webhooks.handlers import register_handler

from ticketing.exceptions import FulfillmentFailedError
from ticketing.services import FulfillmentService
from ticketing.tasks import send_order_confirmation

if TYPE_CHECKING:
    from payments.models import WebhookEvent
    from ticketing.services import FulfillmentResult


logger = logging.getLogger(__name__)


@register_handler("checkout.session.completed")
@register_handler("checkout.session.async_payment_succeeded")
def handle_checkout_session_paid(
    webhook_event: WebhookEvent,
) -> ServiceResult[FulfillmentResult | None]:
    """
    Fulfill a Checkout Session reported by Stripe.

    Duplicate and concurrent deliveries return the existing order. A
    failure is returned (not raised) so the WebhookEvent is marked FAILED
    and re-driven by payments.tasks.retry_failed_webhooks.
    """
    session = webhook_event.get_data_object()

    try:
        result = FulfillmentService.fulfill_checkout_session(session)
    except FulfillmentFailedError as e:
        return ServiceResult.failure(e.message, error_code=e.error_code)

    if result is not None and result.created:
        order_id = str(result.order.id)
        transaction.on_commit(lambda: queue_order_confirmation(order_id), robust=True)

    return ServiceResult.success(result)


def queue_order_confirmation(order_id: str) -> None:
    """
    Enqueue the confirmation email for a fulfilled order.

    Broker errors are logged and dropped. The order stands either way, and
    the email can be re-sent with reconcile_checkout_session --send-email.
    """
    try:
        send_order_confirmation.delay(order_id)
    except Exception:
        logger.error(
            "Could not queue order confirmation",
            exc_info=True,
            extra={"order_id": order_id},
        )


@register_handler("checkout.session.async_payment_failed")
def handle_checkout_session_async_payment_failed(
    webhook_event: WebhookEvent,
) -> ServiceResult[None]:
    session = webhook_event.get_data_object()
    logger.warning(
        "Delayed payment failed for checkout session, no tickets issued",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "checkout_session_id": session.get("id"),
        },
    )
    return ServiceResult.success(None)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult[None]:
    payment_intent = webhook_event.get_data_object()
    last_error = payment_intent.get("last_payment_error") or {}
    logger.warning(
        "Payment failed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent.get("id"),
            "failure_code": last_error.get("code"),
            "failure_message": last_error.get("message"),
        },
    )
    return ServiceResult.success(None)
