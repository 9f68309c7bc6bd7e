"""
Webhook event handlers for Stripe events.

This module provides a handler registry, the processing routine shared by
the webhook view and the retry task, and the handlers owned by the payments
app itself. Other apps register their own handlers from AppConfig.ready()
(see ticketing.webhooks).

Usage:
    from payments.webhooks.handlers import process_webhook, register_handler

    @register_handler("checkout.session.completed")
    def handle_checkout_completed(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = process_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.db import transaction

from core.services import ServiceResult

from payments.models import ConnectedAccount, WebhookEvent
from payments.state_machines import OnboardingStatus


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "checkout.session.completed")

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are acknowledged as successful so Stripe stops
    redelivering events we never subscribed to handle.

    Args:
        webhook_event: The WebhookEvent to process

    Returns:
        ServiceResult from the handler, or success if no handler
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event)


def process_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Run a stored webhook event through its handler and record the outcome.

    Marks the event PROCESSING, dispatches it, then marks it PROCESSED or
    FAILED. Handler exceptions are caught and recorded so the caller can
    always acknowledge the delivery; FAILED events are picked up again by
    payments.tasks.retry_failed_webhooks.

    Args:
        webhook_event: A persisted WebhookEvent

    Returns:
        ServiceResult from the handler, or a failure describing the exception
    """
    webhook_event.mark_processing()
    webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": str(webhook_event.id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "event_type": webhook_event.event_type,
                "error": error_msg,
            },
        )
        return ServiceResult.failure(error_msg, error_code="WEBHOOK_HANDLER_ERROR")

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save(
            update_fields=["status", "processed_at", "error_message", "updated_at"]
        )
        logger.info(
            "Webhook processed successfully",
            extra={
                "webhook_event_id": str(webhook_event.id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
    else:
        error_msg = result.error or "Handler returned failure"
        webhook_event.mark_failed(error_msg)
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.warning(
            f"Webhook handler failed: {error_msg}",
            extra={
                "webhook_event_id": str(webhook_event.id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "error_code": result.error_code,
            },
        )

    return result


# =============================================================================
# Connected Account Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Sync a connected account's onboarding status from Stripe.

    Fired when an organizer's account changes capability or verification
    requirements. Checkout refuses to route sales to accounts that are not
    COMPLETE with payouts enabled, so this keeps that check current.

    Args:
        webhook_event: The WebhookEvent containing the event data

    Returns:
        ServiceResult with the updated account (or None for unknown accounts)
    """
    data_object = webhook_event.get_data_object()
    account_id = data_object.get("id")

    if not account_id:
        logger.error(
            "account.updated: Could not extract account_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract account_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payouts_enabled = bool(data_object.get("payouts_enabled", False))
    charges_enabled = bool(data_object.get("charges_enabled", False))
    requirements = data_object.get("requirements") or {}
    currently_due = requirements.get("currently_due") or []
    past_due = requirements.get("past_due") or []
    disabled_reason = requirements.get("disabled_reason")

    with transaction.atomic():
        connected_account = (
            ConnectedAccount.objects.select_for_update()
            .filter(stripe_account_id=account_id)
            .first()
        )

        if not connected_account:
            logger.info(
                "ConnectedAccount not found, may be external account",
                extra={
                    "account_id": account_id,
                    "stripe_event_id": webhook_event.stripe_event_id,
                },
            )
            return ServiceResult.success(None)

        connected_account.payouts_enabled = payouts_enabled
        connected_account.charges_enabled = charges_enabled

        if disabled_reason:
            connected_account.onboarding_status = OnboardingStatus.REJECTED
        elif not currently_due and not past_due:
            connected_account.onboarding_status = OnboardingStatus.COMPLETE
        else:
            connected_account.onboarding_status = OnboardingStatus.IN_PROGRESS

        connected_account.save()

    logger.info(
        "ConnectedAccount updated",
        extra={
            "connected_account_id": str(connected_account.id),
            "onboarding_status": connected_account.onboarding_status,
            "payouts_enabled": connected_account.payouts_enabled,
        },
    )

    return ServiceResult.success(connected_account)
