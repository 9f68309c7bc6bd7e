"""
Checkout session builder.

CheckoutService turns a buyer's tier selection into a Stripe hosted
Checkout Session and returns the URL to redirect to. Nothing is written
locally: the Order only comes into existence when Stripe reports the
session complete (see FulfillmentService).

Every figure is derived server-side from fresh database reads. The client
only supplies tier ids and quantities.

Usage:
    from ticketing.services import CheckoutService
    from ticketing.inventory import TierSelection

    result = CheckoutService.create_checkout_session(
        event_id=event.id,
        selections=[TierSelection(tier_id=tier.id, quantity=2)],
        contact_email="buyer@example.com",
        user=request.user,
    )
    return Response({"url": result.url})
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.services import BaseService
from payments.adapters import (
    CheckoutLineItem,
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import StripeInvalidAccountError
from payments.models import ConnectedAccount

from ticketing.exceptions import (
    EventNotFoundError,
    EventUnavailableError,
    OrganizerPayoutNotConfiguredError,
)
from ticketing.inventory import validate_selections
from ticketing.metadata import CheckoutMetadata
from ticketing.models import Event
from ticketing.pricing import calculate_fees, to_minor_units

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from authentication.models import User
    from ticketing.inventory import TierSelection, ValidatedLine
    from ticketing.pricing import FeeBreakdown


ORGANIZER_NOT_CONFIGURED_MESSAGE = (
    "This event's organizer has not completed payment setup. "
    "Please contact the organizer."
)


@dataclass
class CheckoutResult:
    """
    A created Checkout Session.

    Attributes:
        url: Hosted payment page to redirect the buyer to
        session_id: Checkout Session ID (cs_xxx)
        expires_at: When the session stops accepting payment
        breakdown: Fee calculation embedded in the session metadata
    """

    url: str
    session_id: str
    expires_at: datetime
    breakdown: FeeBreakdown


class CheckoutService(BaseService):
    """Builds Stripe Checkout Sessions for ticket purchases."""

    @classmethod
    def create_checkout_session(
        cls,
        event_id: uuid.UUID | str,
        selections: Sequence[TierSelection],
        contact_email: str | None = None,
        contact_name: str | None = None,
        user: User | None = None,
    ) -> CheckoutResult:
        """
        Validate a selection and create a hosted Checkout Session for it.

        Args:
            event_id: Event being purchased
            selections: Tier ids and quantities chosen by the buyer
            contact_email: Email for tickets (defaults to the user's email)
            contact_name: Attendee name (defaults to the user's profile name)
            user: Signed-in buyer, or None for guest checkout

        Returns:
            CheckoutResult with the redirect URL

        Raises:
            EventNotFoundError: Unknown event
            EventUnavailableError: Event not published or already ended
            OrganizerPayoutNotConfiguredError: Organizer cannot receive payouts
            CheckoutValidationError / InsufficientInventoryError: Selection rejected
            StripeError: Stripe refused or failed to create the session
        """
        logger = cls.get_logger()
        now = timezone.now()

        event = Event.objects.select_related("organizer").filter(pk=event_id).first()
        if event is None:
            raise EventNotFoundError(
                "Event not found",
                details={"event_id": str(event_id)},
            )
        cls._check_event_purchasable(event, now)

        destination_account = cls._get_payout_account(event)

        lines = validate_selections(event, selections, now=now)
        breakdown = calculate_fees(
            lines,
            fee_percent=event.fee_percent,
            fee_fixed=event.fee_fixed,
            currency=event.currency,
        )

        buyer_email = contact_email or (user.email if user else "")
        buyer_name = contact_name or cls._profile_name(user)
        metadata = CheckoutMetadata.from_checkout(
            event,
            lines,
            breakdown,
            buyer_user_id=str(user.pk) if user else "",
            buyer_email=buyer_email,
            buyer_name=buyer_name,
            source_app=settings.TICKETING_SOURCE_APP,
        )

        attempt_id = uuid.uuid4()
        expires_at = now + timedelta(
            minutes=settings.TICKETING_CHECKOUT_SESSION_TTL_MINUTES
        )
        base_url = settings.TICKETING_APP_BASE_URL.rstrip("/")

        params = CreateCheckoutSessionParams(
            line_items=cls._build_line_items(event, lines),
            currency=event.currency,
            success_url=f"{base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/events/{event.slug}",
            metadata=metadata.to_stripe(),
            application_fee_amount=breakdown.platform_fee_minor,
            destination_account=destination_account.stripe_account_id,
            expires_at=expires_at,
            idempotency_key=IdempotencyKeyGenerator.generate(
                "create_checkout_session", attempt_id
            ),
            customer_email=buyer_email or None,
        )

        try:
            session = StripeAdapter.create_checkout_session(
                params, trace_id=str(attempt_id)
            )
        except StripeInvalidAccountError as e:
            logger.error(
                "Organizer connected account rejected by Stripe",
                extra={
                    "event_id": str(event.id),
                    "stripe_account_id": destination_account.stripe_account_id,
                    "error": e.message,
                },
            )
            raise OrganizerPayoutNotConfiguredError(
                ORGANIZER_NOT_CONFIGURED_MESSAGE,
                details={"event_id": str(event.id)},
            ) from e

        logger.info(
            "Checkout session created",
            extra={
                "event_id": str(event.id),
                "checkout_session_id": session.id,
                "subtotal": str(breakdown.subtotal),
                "platform_fee": str(breakdown.platform_fee),
                "ticket_count": metadata.ticket_count,
                "guest": user is None,
            },
        )

        return CheckoutResult(
            url=session.url,
            session_id=session.id,
            expires_at=expires_at,
            breakdown=breakdown,
        )

    @staticmethod
    def _check_event_purchasable(event: Event, now: datetime) -> None:
        if event.is_purchasable(now):
            return
        if event.has_ended(now):
            raise EventUnavailableError(
                "Event has already ended",
                details={"event_id": str(event.id)},
            )
        raise EventUnavailableError(
            "Event is not available for purchase",
            details={"event_id": str(event.id), "status": event.status},
        )

    @staticmethod
    def _get_payout_account(event: Event) -> ConnectedAccount:
        account = ConnectedAccount.for_user(event.organizer)
        if account is None or not account.is_ready_for_payouts:
            raise OrganizerPayoutNotConfiguredError(
                ORGANIZER_NOT_CONFIGURED_MESSAGE,
                details={"event_id": str(event.id)},
            )
        return account

    @staticmethod
    def _build_line_items(
        event: Event, lines: Sequence[ValidatedLine]
    ) -> list[CheckoutLineItem]:
        return [
            CheckoutLineItem(
                name=f"{line.tier.name} - {event.title}",
                description=line.tier.description or None,
                unit_amount=to_minor_units(line.unit_price, event.currency),
                quantity=line.quantity,
            )
            for line in lines
        ]

    @staticmethod
    def _profile_name(user: User | None) -> str:
        if user is None:
            return ""
        profile = getattr(user, "profile", None)
        return profile.full_name if profile else ""
