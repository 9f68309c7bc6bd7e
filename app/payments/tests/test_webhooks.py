"""
Tests for the Stripe webhook endpoint and handler registry.

Signatures are computed for real, so these tests exercise the full
verify -> record -> dispatch path of the view.
"""

import json
from unittest.mock import patch

import pytest
from django.urls import reverse

from core.services import ServiceResult
from payments.models import WebhookEvent
from payments.state_machines import OnboardingStatus, WebhookEventStatus
from payments.tests.factories import WebhookEventFactory, stripe_event_payload
from payments.tests.test_adapters import sign_payload
from payments.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    process_webhook,
    register_handler,
)


def post_event(client, settings, event: dict, signature: str = None):
    body = json.dumps(event).encode()
    header = signature if signature is not None else sign_payload(
        body, settings.STRIPE_WEBHOOK_SECRET
    )
    return client.post(
        reverse("payments:stripe_webhook"),
        data=body,
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=header,
    )


@pytest.fixture
def temporary_handler():
    """Register handlers for a fake event type and remove them afterwards."""
    registered = []

    def register(event_type, func):
        register_handler(event_type)(func)
        registered.append(event_type)

    yield register

    for event_type in registered:
        WEBHOOK_HANDLERS.pop(event_type, None)


# =============================================================================
# Webhook View
# =============================================================================


@pytest.mark.django_db
class TestStripeWebhookView:
    def test_missing_signature_rejected(self, client):
        response = client.post(
            reverse("payments:stripe_webhook"),
            data=b"{}",
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing signature"}
        assert WebhookEvent.objects.count() == 0

    def test_invalid_signature_rejected_without_side_effects(self, client, settings):
        event = stripe_event_payload("checkout.session.completed", {"id": "cs_1"})

        response = post_event(client, settings, event, signature="t=1,v1=bad")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}
        assert WebhookEvent.objects.count() == 0

    def test_get_not_allowed(self, client):
        response = client.get(reverse("payments:stripe_webhook"))

        assert response.status_code == 405

    def test_event_without_type_rejected(self, client, settings):
        response = post_event(client, settings, {"id": "evt_1"})

        assert response.status_code == 400

    def test_unhandled_event_acknowledged_and_recorded(self, client, settings):
        event = stripe_event_payload("customer.created", {"id": "cus_1"})

        response = post_event(client, settings, event)

        assert response.status_code == 200
        assert response.json() == {"received": True}
        recorded = WebhookEvent.objects.get(stripe_event_id=event["id"])
        assert recorded.status == WebhookEventStatus.PROCESSED
        assert recorded.event_type == "customer.created"

    def test_handler_failure_still_acknowledged(self, client, settings, temporary_handler):
        temporary_handler(
            "test.failing",
            lambda webhook_event: ServiceResult.failure("nope", error_code="NOPE"),
        )
        event = stripe_event_payload("test.failing", {"id": "obj_1"})

        response = post_event(client, settings, event)

        assert response.status_code == 200
        recorded = WebhookEvent.objects.get(stripe_event_id=event["id"])
        assert recorded.status == WebhookEventStatus.FAILED
        assert recorded.error_message == "nope"

    def test_duplicate_delivery_of_processed_event_not_reprocessed(
        self, client, settings, temporary_handler
    ):
        calls = []

        def handler(webhook_event):
            calls.append(webhook_event.stripe_event_id)
            return ServiceResult.success(None)

        temporary_handler("test.counted", handler)
        event = stripe_event_payload("test.counted", {"id": "obj_1"})

        first = post_event(client, settings, event)
        second = post_event(client, settings, event)

        assert first.status_code == second.status_code == 200
        assert calls == [event["id"]]
        assert WebhookEvent.objects.filter(stripe_event_id=event["id"]).count() == 1

    def test_redelivery_of_failed_event_is_reprocessed(
        self, client, settings, temporary_handler
    ):
        outcomes = iter(
            [ServiceResult.failure("transient"), ServiceResult.success(None)]
        )
        temporary_handler("test.flaky", lambda webhook_event: next(outcomes))
        event = stripe_event_payload("test.flaky", {"id": "obj_1"})

        post_event(client, settings, event)
        post_event(client, settings, event)

        recorded = WebhookEvent.objects.get(stripe_event_id=event["id"])
        assert recorded.status == WebhookEventStatus.PROCESSED
        assert recorded.retry_count == 2


# =============================================================================
# Handler Registry
# =============================================================================


@pytest.mark.django_db
class TestProcessWebhook:
    def test_unknown_event_type_is_success(self):
        webhook_event = WebhookEventFactory(event_type="balance.available")

        assert dispatch_webhook(webhook_event).success

    def test_handler_exception_marks_failed(self, temporary_handler):
        def explode(webhook_event):
            raise RuntimeError("kaboom")

        temporary_handler("test.exploding", explode)
        webhook_event = WebhookEventFactory(event_type="test.exploding")

        result = process_webhook(webhook_event)

        webhook_event.refresh_from_db()
        assert not result.success
        assert result.error_code == "WEBHOOK_HANDLER_ERROR"
        assert webhook_event.status == WebhookEventStatus.FAILED
        assert "kaboom" in webhook_event.error_message
        assert webhook_event.retry_count == 1

    def test_success_marks_processed(self, pending_webhook):
        with patch.dict(
            WEBHOOK_HANDLERS,
            {pending_webhook.event_type: lambda e: ServiceResult.success(None)},
        ):
            result = process_webhook(pending_webhook)

        pending_webhook.refresh_from_db()
        assert result.success
        assert pending_webhook.status == WebhookEventStatus.PROCESSED
        assert pending_webhook.processed_at is not None


# =============================================================================
# account.updated
# =============================================================================


@pytest.mark.django_db
class TestAccountUpdatedHandler:
    def _event(self, account_id, **data):
        return WebhookEventFactory(
            event_type="account.updated",
            payload=stripe_event_payload("account.updated", {"id": account_id, **data}),
        )

    def test_complete_when_nothing_due(self, incomplete_connected_account):
        webhook_event = self._event(
            incomplete_connected_account.stripe_account_id,
            payouts_enabled=True,
            charges_enabled=True,
            requirements={"currently_due": [], "past_due": []},
        )

        result = process_webhook(webhook_event)

        incomplete_connected_account.refresh_from_db()
        assert result.success
        assert incomplete_connected_account.onboarding_status == OnboardingStatus.COMPLETE
        assert incomplete_connected_account.is_ready_for_payouts

    def test_in_progress_when_requirements_due(self, connected_account):
        webhook_event = self._event(
            connected_account.stripe_account_id,
            payouts_enabled=False,
            requirements={"currently_due": ["external_account"]},
        )

        process_webhook(webhook_event)

        connected_account.refresh_from_db()
        assert connected_account.onboarding_status == OnboardingStatus.IN_PROGRESS
        assert not connected_account.is_ready_for_payouts

    def test_rejected_when_disabled(self, connected_account):
        webhook_event = self._event(
            connected_account.stripe_account_id,
            requirements={"disabled_reason": "rejected.fraud"},
        )

        process_webhook(webhook_event)

        connected_account.refresh_from_db()
        assert connected_account.onboarding_status == OnboardingStatus.REJECTED

    def test_unknown_account_is_ignored(self, db):
        result = process_webhook(self._event("acct_unknown"))

        assert result.success
        assert result.data is None

    def test_missing_account_id_fails(self, db):
        webhook_event = WebhookEventFactory(
            event_type="account.updated",
            payload=stripe_event_payload("account.updated", {}),
        )

        result = process_webhook(webhook_event)

        assert not result.success
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"
