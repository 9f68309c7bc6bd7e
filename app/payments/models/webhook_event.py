"""
WebhookEvent model for Stripe webhook event tracking.

Stores every verified webhook event received from Stripe. The unique
stripe_event_id gives an audit trail per delivery and lets the retry task
re-dispatch events whose handler failed. Fulfillment idempotency itself is
keyed on the checkout session id (see ticketing.Order), so re-dispatching an
event is always safe.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id="evt_1234567890",
        defaults={
            "event_type": "checkout.session.completed",
            "payload": event_data,
        }
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks Stripe webhook events for processing and repair.

    Processing Flow:
        1. Webhook arrives, verify Stripe signature
        2. Insert/get WebhookEvent with stripe_event_id
        3. If exists and PROCESSED -> acknowledge (duplicate delivery)
        4. Set status to PROCESSING and route to the registered handler
        5. Set status to PROCESSED or FAILED
        6. FAILED events are re-dispatched by retry_failed_webhooks

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Type of webhook event
        payload: Full JSON payload from Stripe
        status: Processing status
        processed_at: When event was successfully processed
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Event ID (evt_xxx)",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'checkout.session.completed')",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"], name="webhook_status_created_idx"
            ),
            models.Index(
                fields=["status", "retry_count"], name="webhook_status_retry_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        """Failed with attempts left in the WEBHOOK_MAX_RETRIES budget."""
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < settings.WEBHOOK_MAX_RETRIES
        )

    # ==========================================================================
    # Status Helpers (caller must save)
    # ==========================================================================

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_data_object(self) -> dict:
        """
        Return payload.data.object, the Stripe object the event is about.

        Returns an empty dict when the payload is malformed.
        """
        try:
            data_object = self.payload.get("data", {}).get("object", {})
        except (AttributeError, TypeError):
            return {}
        return data_object if isinstance(data_object, dict) else {}

    def get_object_id(self) -> str | None:
        """Extract the primary object ID (payload.data.object.id)."""
        return self.get_data_object().get("id")
