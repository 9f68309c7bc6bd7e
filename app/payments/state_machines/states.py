"""
Status enums for payment models.

These are Django TextChoices for database storage and admin integration.

Status Flows:

ConnectedAccount onboarding:
    not_started → in_progress → complete
    in_progress → rejected (Stripe disabled the account)

WebhookEvent processing:
    pending → processing → processed
    pending → processing → failed → processing (repair job retry)
"""

from django.db import models


class OnboardingStatus(models.TextChoices):
    """
    Stripe Connect onboarding status for ConnectedAccount.

    Only COMPLETE accounts with payouts enabled can be used as the
    destination of ticket sales.
    """

    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETE = "complete", "Complete"
    REJECTED = "rejected", "Rejected"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    FAILED events are picked up by the retry_failed_webhooks task until
    the retry budget is exhausted, after which they stay FAILED for
    manual reconciliation.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
