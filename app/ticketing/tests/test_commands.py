"""
Tests for the reconcile_checkout_session management command.
"""

from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import CommandError, call_command

from payments.adapters import CheckoutSessionResult
from payments.exceptions import StripeInvalidRequestError
from ticketing.models import Order, TicketTier
from ticketing.tests.factories import checkout_session_payload

COMMAND_MODULE = "ticketing.management.commands.reconcile_checkout_session"


def session_result(session):
    return CheckoutSessionResult(
        id=session["id"],
        url=None,
        status=session["status"],
        payment_status=session["payment_status"],
        raw_response=session,
    )


def run(session_id, *args):
    out = StringIO()
    call_command("reconcile_checkout_session", session_id, *args, stdout=out)
    return out.getvalue()


@pytest.fixture
def mock_retrieve():
    with patch(f"{COMMAND_MODULE}.StripeAdapter.retrieve_checkout_session") as mock:
        yield mock


@pytest.fixture
def mock_send_confirmation():
    with patch(f"{COMMAND_MODULE}.send_order_confirmation") as mock_task:
        yield mock_task


@pytest.mark.django_db
class TestReconcileCheckoutSession:
    def test_fulfills_missing_order(
        self, event, general_tier, mock_retrieve, mock_send_confirmation
    ):
        session = checkout_session_payload(event, [(general_tier, 3)])
        mock_retrieve.return_value = session_result(session)

        output = run(session["id"])

        order = Order.objects.get(stripe_checkout_session_id=session["id"])
        assert f"Created order {order.id} with 3 ticket(s)." in output
        mock_retrieve.assert_called_once_with(session["id"])
        mock_send_confirmation.delay.assert_called_once_with(str(order.id))

    def test_existing_order_reported(
        self, event, general_tier, mock_retrieve, mock_send_confirmation
    ):
        session = checkout_session_payload(event, [(general_tier, 1)])
        mock_retrieve.return_value = session_result(session)
        run(session["id"])
        mock_send_confirmation.reset_mock()

        output = run(session["id"])

        assert "already exists with 1 ticket(s)" in output
        assert Order.objects.count() == 1
        mock_send_confirmation.delay.assert_not_called()

    def test_send_email_flag_requeues_existing(
        self, event, general_tier, mock_retrieve, mock_send_confirmation
    ):
        session = checkout_session_payload(event, [(general_tier, 1)])
        mock_retrieve.return_value = session_result(session)
        run(session["id"])
        mock_send_confirmation.reset_mock()

        output = run(session["id"], "--send-email")

        assert "Queued confirmation email" in output
        mock_send_confirmation.delay.assert_called_once()

    def test_unpaid_session(self, event, general_tier, mock_retrieve, mock_send_confirmation):
        session = checkout_session_payload(
            event, [(general_tier, 1)], payment_status="unpaid"
        )
        mock_retrieve.return_value = session_result(session)

        output = run(session["id"])

        assert "is not paid (payment_status=unpaid)" in output
        assert Order.objects.count() == 0

    def test_stripe_error(self, db, mock_retrieve):
        mock_retrieve.side_effect = StripeInvalidRequestError("No such checkout session")

        with pytest.raises(CommandError, match="Could not retrieve cs_missing"):
            run("cs_missing")

    def test_fulfillment_failure(
        self, event, general_tier, mock_retrieve, mock_send_confirmation
    ):
        session = checkout_session_payload(event, [(general_tier, 2)])
        TicketTier.objects.filter(pk=general_tier.pk).update(remaining_quantity=1)
        mock_retrieve.return_value = session_result(session)

        with pytest.raises(CommandError):
            run(session["id"])

        assert Order.objects.count() == 0
        mock_send_confirmation.delay.assert_not_called()
