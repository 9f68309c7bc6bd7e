"""
Tests for webhook repair tasks.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.test import override_settings
from django.utils import timezone

from core.services import ServiceResult
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tasks import (
    process_webhook_event,
    reset_stuck_webhooks,
    retry_failed_webhooks,
)
from payments.tests.factories import WebhookEventFactory
from payments.webhooks.handlers import WEBHOOK_HANDLERS


@pytest.mark.django_db
class TestProcessWebhookEvent:
    def test_not_found(self):
        result = process_webhook_event("00000000-0000-0000-0000-000000000000")

        assert result["status"] == "not_found"

    def test_already_processed_is_skipped(self, processed_webhook):
        result = process_webhook_event(str(processed_webhook.id))

        assert result["status"] == "already_processed"

    def test_failed_event_is_reprocessed(self, failed_webhook):
        with patch.dict(
            WEBHOOK_HANDLERS,
            {failed_webhook.event_type: lambda e: ServiceResult.success(None)},
        ):
            result = process_webhook_event(str(failed_webhook.id))

        failed_webhook.refresh_from_db()
        assert result["status"] == "processed"
        assert failed_webhook.status == WebhookEventStatus.PROCESSED

    @override_settings(WEBHOOK_MAX_RETRIES=2)
    def test_exhausted_retries_logged_critical(self, failed_webhook):
        with patch.dict(
            WEBHOOK_HANDLERS,
            {failed_webhook.event_type: lambda e: ServiceResult.failure("still broken")},
        ), patch("payments.tasks.logger") as mock_logger:
            result = process_webhook_event(str(failed_webhook.id))

        assert result["status"] == "handler_failed"
        mock_logger.critical.assert_called_once()


@pytest.mark.django_db
class TestRetryFailedWebhooks:
    @override_settings(WEBHOOK_MAX_RETRIES=3)
    def test_queues_only_events_with_retries_left(self):
        retryable = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=1)
        WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=3)
        WebhookEventFactory(status=WebhookEventStatus.PROCESSED, retry_count=1)

        with patch("payments.tasks.process_webhook_event.delay") as mock_delay:
            result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        mock_delay.assert_called_once_with(str(retryable.id))


@pytest.mark.django_db
class TestResetStuckWebhooks:
    def test_resets_only_stale_processing_events(self):
        stuck = WebhookEventFactory(status=WebhookEventStatus.PROCESSING)
        fresh = WebhookEventFactory(status=WebhookEventStatus.PROCESSING)
        WebhookEvent.objects.filter(pk=stuck.pk).update(
            updated_at=timezone.now() - timedelta(hours=1)
        )

        result = reset_stuck_webhooks()

        stuck.refresh_from_db()
        fresh.refresh_from_db()
        assert result == {"reset_count": 1}
        assert stuck.status == WebhookEventStatus.FAILED
        assert fresh.status == WebhookEventStatus.PROCESSING
