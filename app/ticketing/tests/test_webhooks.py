"""
Tests for the ticketing webhook handlers.

Events are posted, signed, to the payments webhook endpoint so the whole
verify -> record -> dispatch -> fulfill path runs.
"""

from unittest.mock import patch

import pytest
from kombu.exceptions import OperationalError

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import stripe_event_payload
from payments.tests.test_webhooks import post_event
from ticketing.models import Order, Ticket, TicketTier
from ticketing.tests.factories import checkout_session_payload
from ticketing.webhooks import queue_order_confirmation


@pytest.fixture
def mock_send_confirmation():
    with patch("ticketing.webhooks.send_order_confirmation") as mock_task:
        yield mock_task


@pytest.mark.django_db
class TestCheckoutSessionCompleted:
    def test_paid_session_fulfilled_and_email_scheduled(
        self,
        client,
        settings,
        event,
        general_tier,
        mock_send_confirmation,
        django_capture_on_commit_callbacks,
    ):
        session = checkout_session_payload(event, [(general_tier, 2)])
        stripe_event = stripe_event_payload("checkout.session.completed", session)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            response = post_event(client, settings, stripe_event)

        assert response.status_code == 200
        order = Order.objects.get(stripe_checkout_session_id=session["id"])
        assert order.tickets.count() == 2
        assert len(callbacks) == 1
        mock_send_confirmation.delay.assert_called_once_with(str(order.id))

        webhook_event = WebhookEvent.objects.get(stripe_event_id=stripe_event["id"])
        assert webhook_event.status == WebhookEventStatus.PROCESSED

    def test_redelivered_event_does_not_duplicate(
        self,
        client,
        settings,
        event,
        general_tier,
        mock_send_confirmation,
        django_capture_on_commit_callbacks,
    ):
        session = checkout_session_payload(event, [(general_tier, 2)])
        stripe_event = stripe_event_payload("checkout.session.completed", session)

        with django_capture_on_commit_callbacks(execute=True):
            for _ in range(3):
                assert post_event(client, settings, stripe_event).status_code == 200

        assert Order.objects.count() == 1
        assert Ticket.objects.count() == 2
        mock_send_confirmation.delay.assert_called_once()

    def test_completed_and_async_succeeded_fulfill_once(
        self,
        client,
        settings,
        event,
        general_tier,
        mock_send_confirmation,
        django_capture_on_commit_callbacks,
    ):
        session = checkout_session_payload(event, [(general_tier, 1)])

        with django_capture_on_commit_callbacks(execute=True):
            post_event(
                client,
                settings,
                stripe_event_payload("checkout.session.async_payment_succeeded", session),
            )
            post_event(
                client,
                settings,
                stripe_event_payload("checkout.session.completed", session),
            )

        assert Order.objects.count() == 1
        general_tier.refresh_from_db()
        assert general_tier.remaining_quantity == 99
        assert WebhookEvent.objects.filter(
            status=WebhookEventStatus.PROCESSED
        ).count() == 2
        mock_send_confirmation.delay.assert_called_once()

    def test_unpaid_session_waits_for_async_payment(
        self, client, settings, event, general_tier, mock_send_confirmation
    ):
        unpaid = checkout_session_payload(
            event, [(general_tier, 1)], payment_status="unpaid"
        )

        post_event(
            client, settings, stripe_event_payload("checkout.session.completed", unpaid)
        )

        assert Order.objects.count() == 0
        assert WebhookEvent.objects.get().status == WebhookEventStatus.PROCESSED

        paid = dict(unpaid, payment_status="paid")
        post_event(
            client,
            settings,
            stripe_event_payload("checkout.session.async_payment_succeeded", paid),
        )

        assert Order.objects.filter(stripe_checkout_session_id=unpaid["id"]).exists()

    def test_fulfillment_failure_acknowledged_and_recorded(
        self,
        client,
        settings,
        event,
        general_tier,
        mock_send_confirmation,
        django_capture_on_commit_callbacks,
    ):
        session = checkout_session_payload(event, [(general_tier, 5)])
        TicketTier.objects.filter(pk=general_tier.pk).update(remaining_quantity=3)
        stripe_event = stripe_event_payload("checkout.session.completed", session)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            response = post_event(client, settings, stripe_event)

        assert response.status_code == 200
        assert Order.objects.count() == 0
        assert callbacks == []

        webhook_event = WebhookEvent.objects.get(stripe_event_id=stripe_event["id"])
        assert webhook_event.status == WebhookEventStatus.FAILED
        assert "sold out" in webhook_event.error_message


@pytest.mark.django_db
class TestPaymentFailureEvents:
    def test_async_payment_failed_logged(self, client, settings, event, general_tier):
        session = checkout_session_payload(
            event, [(general_tier, 1)], payment_status="unpaid"
        )

        with patch("ticketing.webhooks.logger") as mock_logger:
            post_event(
                client,
                settings,
                stripe_event_payload("checkout.session.async_payment_failed", session),
            )

        mock_logger.warning.assert_called_once()
        assert Order.objects.count() == 0
        assert WebhookEvent.objects.get().status == WebhookEventStatus.PROCESSED

    def test_payment_intent_failed_logged(self, client, settings, db):
        payment_intent = {
            "id": "pi_declined",
            "object": "payment_intent",
            "last_payment_error": {"code": "card_declined", "message": "Declined"},
        }

        with patch("ticketing.webhooks.logger") as mock_logger:
            response = post_event(
                client,
                settings,
                stripe_event_payload("payment_intent.payment_failed", payment_intent),
            )

        assert response.status_code == 200
        extra = mock_logger.warning.call_args.kwargs["extra"]
        assert extra["failure_code"] == "card_declined"


@pytest.mark.django_db(transaction=True)
class TestConfirmationQueueFailure:
    def test_broker_error_does_not_fail_fulfillment(
        self, client, settings, event, general_tier, mock_send_confirmation
    ):
        mock_send_confirmation.delay.side_effect = OperationalError(
            "broker unreachable"
        )
        session = checkout_session_payload(event, [(general_tier, 2)])
        stripe_event = stripe_event_payload("checkout.session.completed", session)

        with patch("ticketing.webhooks.logger") as mock_logger:
            response = post_event(client, settings, stripe_event)

        assert response.status_code == 200
        order = Order.objects.get(stripe_checkout_session_id=session["id"])
        assert order.tickets.count() == 2
        mock_send_confirmation.delay.assert_called_once_with(str(order.id))

        webhook_event = WebhookEvent.objects.get(stripe_event_id=stripe_event["id"])
        assert webhook_event.status == WebhookEventStatus.PROCESSED

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["extra"] == {
            "order_id": str(order.id)
        }

    def test_queue_order_confirmation_logs_broker_error(self, mock_send_confirmation):
        mock_send_confirmation.delay.side_effect = OperationalError("down")

        with patch("ticketing.webhooks.logger") as mock_logger:
            queue_order_confirmation("order-1")

        mock_logger.error.assert_called_once()
