"""
Webhook endpoint view for Stripe.

The view:
1. Verifies the webhook signature against the raw request body
2. Creates/retrieves the WebhookEvent record
3. Processes the event inline through the handler registry
4. Acknowledges the delivery

Processing happens inline so a paid order exists by the time the buyer
lands on the confirmation page. Handler failures never turn into a non-2xx
response: they are recorded on the WebhookEvent and re-driven by the
retry_failed_webhooks task.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeSignatureVerificationError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import process_webhook


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive, verify and process Stripe webhook events.

    Security:
    - Signature verification prevents spoofed webhooks; unverified
      requests are rejected before any state is touched
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - WebhookEvent.stripe_event_id is unique, so redeliveries of an
      already PROCESSED event are acknowledged without reprocessing
    - Fulfillment handlers are idempotent on the checkout session id,
      so reprocessing a FAILED or in-flight event is safe

    Returns:
        JsonResponse with status:
        - 200 {"received": true}: Event verified (processed, duplicate,
          ignored, or failed and queued for repair)
        - 400 {"error": ...}: Missing/invalid signature or malformed event
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning(
            "Webhook received without Stripe-Signature header",
            extra={"remote_addr": request.META.get("REMOTE_ADDR")},
        )
        return JsonResponse({"error": "Missing signature"}, status=400)

    # Step 1: Verify signature
    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except StripeSignatureVerificationError as e:
        logger.warning(
            "Webhook signature verification failed - possible forged request",
            extra={
                "error": str(e),
                "remote_addr": request.META.get("REMOTE_ADDR"),
            },
        )
        return JsonResponse({"error": "Invalid signature"}, status=400)

    stripe_event_id = event_data.get("id") if isinstance(event_data, dict) else None
    event_type = event_data.get("type") if isinstance(event_data, dict) else None

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return JsonResponse({"error": "Invalid event"}, status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
        },
    )

    # Step 2: Create/get WebhookEvent
    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    # Step 3: Duplicate delivery of a processed event
    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"stripe_event_id": stripe_event_id},
        )
        return JsonResponse({"received": True})

    # Step 4: Process inline; failures are recorded for the repair job
    result = process_webhook(webhook_event)
    if not result.success:
        logger.error(
            "Webhook acknowledged with failed processing",
            extra={
                "stripe_event_id": stripe_event_id,
                "event_type": event_type,
                "error_code": result.error_code,
            },
        )

    return JsonResponse({"received": True})
