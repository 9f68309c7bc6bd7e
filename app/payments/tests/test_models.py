"""
Tests for payment domain models.

Tests field defaults, constraints and helpers of ConnectedAccount and
WebhookEvent.
"""

import uuid

import pytest
from django.db import IntegrityError
from django.test import override_settings

from payments.models import ConnectedAccount, WebhookEvent
from payments.state_machines import OnboardingStatus, WebhookEventStatus


# =============================================================================
# ConnectedAccount Tests
# =============================================================================


class TestConnectedAccountModel:
    """Tests for ConnectedAccount model."""

    def test_create_with_required_fields(self, db, profile):
        """Should create account with required fields."""
        account = ConnectedAccount.objects.create(
            profile=profile,
            stripe_account_id="acct_test123",
        )

        assert account.pk is not None
        assert isinstance(account.pk, uuid.UUID)
        assert account.stripe_account_id == "acct_test123"

    def test_default_values(self, db, profile):
        """Should have correct default values."""
        account = ConnectedAccount.objects.create(
            profile=profile,
            stripe_account_id="acct_test123",
        )

        assert account.onboarding_status == OnboardingStatus.NOT_STARTED
        assert account.payouts_enabled is False
        assert account.charges_enabled is False
        assert account.metadata == {}

    def test_stripe_account_id_unique(self, db, profile, another_profile):
        """Stripe account ID should be unique."""
        ConnectedAccount.objects.create(
            profile=profile,
            stripe_account_id="acct_unique123",
        )

        with pytest.raises(IntegrityError):
            ConnectedAccount.objects.create(
                profile=another_profile,
                stripe_account_id="acct_unique123",
            )

    def test_is_ready_for_payouts_false_when_not_complete(self, db, profile):
        account = ConnectedAccount.objects.create(
            profile=profile,
            stripe_account_id="acct_test",
            onboarding_status=OnboardingStatus.IN_PROGRESS,
            payouts_enabled=True,
        )

        assert account.is_ready_for_payouts is False

    def test_is_ready_for_payouts_false_when_not_enabled(self, db, profile):
        account = ConnectedAccount.objects.create(
            profile=profile,
            stripe_account_id="acct_test",
            onboarding_status=OnboardingStatus.COMPLETE,
            payouts_enabled=False,
        )

        assert account.is_ready_for_payouts is False

    def test_is_ready_for_payouts_true_when_complete_and_enabled(self, db, profile):
        account = ConnectedAccount.objects.create(
            profile=profile,
            stripe_account_id="acct_test",
            onboarding_status=OnboardingStatus.COMPLETE,
            payouts_enabled=True,
        )

        assert account.is_ready_for_payouts is True

    def test_for_user_returns_account(self, connected_account, user):
        assert ConnectedAccount.for_user(user) == connected_account

    def test_for_user_returns_none_without_account(self, user):
        assert ConnectedAccount.for_user(user) is None


# =============================================================================
# WebhookEvent Tests
# =============================================================================


class TestWebhookEventModel:
    """Tests for WebhookEvent model."""

    def test_default_values(self, db):
        """Should have correct default values."""
        event = WebhookEvent.objects.create(
            stripe_event_id="evt_test123",
            event_type="checkout.session.completed",
            payload={},
        )

        assert event.status == WebhookEventStatus.PENDING
        assert event.retry_count == 0
        assert event.processed_at is None
        assert event.error_message is None

    def test_stripe_event_id_unique(self, db):
        """Stripe Event ID should be unique (one record per delivery)."""
        WebhookEvent.objects.create(
            stripe_event_id="evt_unique123",
            event_type="checkout.session.completed",
            payload={},
        )

        with pytest.raises(IntegrityError):
            WebhookEvent.objects.create(
                stripe_event_id="evt_unique123",
                event_type="payment_intent.payment_failed",
                payload={},
            )

    def test_get_data_object(self, db):
        event = WebhookEvent.objects.create(
            stripe_event_id="evt_test",
            event_type="checkout.session.completed",
            payload={"data": {"object": {"id": "cs_test_1", "object": "checkout.session"}}},
        )

        assert event.get_data_object()["object"] == "checkout.session"
        assert event.get_object_id() == "cs_test_1"

    @pytest.mark.parametrize("payload", [{}, {"data": None}, {"data": {"object": "x"}}])
    def test_get_data_object_malformed_payload(self, db, payload):
        event = WebhookEvent(
            stripe_event_id="evt_bad", event_type="x", payload=payload
        )

        assert event.get_data_object() == {}
        assert event.get_object_id() is None

    def test_mark_processing_increments_retry_count(self, db):
        event = WebhookEvent.objects.create(
            stripe_event_id="evt_test", event_type="x", payload={}
        )

        event.mark_processing()
        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 2

    def test_mark_processed_clears_error(self, db):
        event = WebhookEvent.objects.create(
            stripe_event_id="evt_test",
            event_type="x",
            payload={},
            error_message="old failure",
        )

        event.mark_processed()

        assert event.status == WebhookEventStatus.PROCESSED
        assert event.processed_at is not None
        assert event.error_message is None
        assert event.is_processed is True

    def test_mark_failed(self, db):
        event = WebhookEvent.objects.create(
            stripe_event_id="evt_test", event_type="x", payload={}
        )

        event.mark_failed("Test error")

        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "Test error"

    @override_settings(WEBHOOK_MAX_RETRIES=2)
    def test_can_retry_respects_budget(self, failed_webhook):
        assert failed_webhook.retry_count == 1
        assert failed_webhook.can_retry is True

        failed_webhook.retry_count = 2
        assert failed_webhook.can_retry is False
