"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import (
        ConnectedAccountFactory,
        WebhookEventFactory,
        stripe_event_payload,
    )

    # Organizer ready to receive ticket sales
    account = ConnectedAccountFactory(profile=organizer.profile)

    # Stored checkout.session.completed delivery
    event = WebhookEventFactory(
        event_type="checkout.session.completed",
        payload=stripe_event_payload("checkout.session.completed", session),
    )
"""

import uuid

import factory

from authentication.tests.factories import ProfileFactory
from payments.models import ConnectedAccount, WebhookEvent
from payments.state_machines import OnboardingStatus, WebhookEventStatus


def stripe_event_payload(event_type: str, data_object: dict, event_id: str = None) -> dict:
    """Build a Stripe Event body wrapping data_object."""
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex}",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }


class ConnectedAccountFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating ConnectedAccount instances.

    Default creates a connected account with COMPLETE onboarding status.

    Example:
        # Default complete account
        account = ConnectedAccountFactory()

        # In-progress onboarding
        account = ConnectedAccountFactory(
            onboarding_status=OnboardingStatus.IN_PROGRESS,
            payouts_enabled=False,
        )
    """

    class Meta:
        model = ConnectedAccount
        skip_postgeneration_save = True

    profile = factory.SubFactory(ProfileFactory)
    stripe_account_id = factory.Sequence(
        lambda n: f"acct_test_{n}_{uuid.uuid4().hex[:8]}"
    )
    onboarding_status = OnboardingStatus.COMPLETE
    payouts_enabled = True
    charges_enabled = True
    metadata = factory.LazyFunction(dict)


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating WebhookEvent instances.

    Default creates a PENDING payment_intent.payment_failed webhook.

    Example:
        # Failed webhook
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED,
            error_message="Processing error",
            retry_count=3,
        )
    """

    class Meta:
        model = WebhookEvent
        skip_postgeneration_save = True

    stripe_event_id = factory.Sequence(lambda n: f"evt_test_{n}_{uuid.uuid4().hex[:8]}")
    event_type = "payment_intent.payment_failed"
    payload = factory.LazyAttribute(
        lambda o: stripe_event_payload(
            o.event_type,
            {
                "id": f"pi_{uuid.uuid4().hex}",
                "object": "payment_intent",
                "amount": 5000,
                "currency": "cad",
                "status": "requires_payment_method",
            },
            event_id=o.stripe_event_id,
        )
    )
    status = WebhookEventStatus.PENDING
    retry_count = 0
