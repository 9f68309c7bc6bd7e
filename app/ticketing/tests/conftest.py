"""
Pytest fixtures for ticketing tests.

The default world: an organizer whose Stripe connected account is ready
for payouts, a published CAD event a week out, and two tiers
(General Admission at 25.00 and VIP at 80.00).

Usage:
    def test_checkout(event, general_tier, mock_create_checkout_session):
        CheckoutService.create_checkout_session(...)
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from rest_framework.test import APIClient

from authentication.models import User
from authentication.tests.factories import ProfileFactory, UserFactory
from payments.adapters import CheckoutSessionResult
from payments.tests.factories import ConnectedAccountFactory
from ticketing.tests.factories import EventFactory, TicketTierFactory


# =============================================================================
# People
# =============================================================================


@pytest.fixture
def organizer(db):
    """Organizer with a payout-ready connected account."""
    user = UserFactory(email="organizer@example.com")
    ConnectedAccountFactory(profile=user.profile)
    return user


@pytest.fixture
def buyer(db):
    user = UserFactory(email="member@example.com")
    ProfileFactory(user=user, first_name="Sam", last_name="Member")
    # Reload so user.profile is not the empty instance cached at signup
    return User.objects.get(pk=user.pk)


@pytest.fixture
def api_client():
    return APIClient()


# =============================================================================
# Catalogue
# =============================================================================


@pytest.fixture
def event(organizer):
    return EventFactory(
        organizer=organizer,
        title="Jazz Night",
        slug="jazz-night",
        platform_fee_percent=Decimal("5.00"),
        platform_fee_fixed=Decimal("0.00"),
    )


@pytest.fixture
def general_tier(event):
    return TicketTierFactory(
        event=event,
        name="General Admission",
        price=Decimal("25.00"),
        remaining_quantity=100,
    )


@pytest.fixture
def vip_tier(event):
    return TicketTierFactory(
        event=event,
        name="VIP",
        price=Decimal("80.00"),
        remaining_quantity=10,
        max_per_order=4,
    )


# =============================================================================
# Stripe
# =============================================================================


@pytest.fixture
def mock_create_checkout_session():
    """Patch StripeAdapter.create_checkout_session to return an open session."""
    with patch(
        "ticketing.services.checkout.StripeAdapter.create_checkout_session"
    ) as mock_create:
        mock_create.return_value = CheckoutSessionResult(
            id="cs_test_abc123",
            url="https://checkout.stripe.com/c/pay/cs_test_abc123",
            status="open",
            payment_status="unpaid",
        )
        yield mock_create


@pytest.fixture
def mock_receipt_lookups():
    """Patch the receipt and invoice lookups used by the confirmation email."""
    with patch(
        "ticketing.services.enrichment.StripeAdapter.retrieve_payment_intent"
    ) as mock_intent, patch(
        "ticketing.services.enrichment.StripeAdapter.retrieve_invoice"
    ) as mock_invoice:
        mock_intent.return_value.receipt_url = "https://pay.stripe.com/receipts/ch_1"
        mock_invoice.return_value.hosted_invoice_url = (
            "https://invoice.stripe.com/i/in_1"
        )
        mock_invoice.return_value.invoice_pdf = (
            "https://pay.stripe.com/invoice/in_1/pdf"
        )
        yield mock_intent, mock_invoice
