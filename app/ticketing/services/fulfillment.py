"""
Fulfillment reconciler for completed Stripe Checkout Sessions.

FulfillmentService turns a paid Checkout Session into exactly one Order,
one OrderItem per tier and one Ticket per admission. Stripe delivers
webhooks at least once, unordered and possibly concurrently, so:

- Idempotency: Order.stripe_checkout_session_id is UNIQUE. A lookup before
  starting is only a fast path; the insert itself is the real gate, and an
  IntegrityError there means a concurrent delivery already fulfilled the
  session.
- Inventory: each tier is decremented with one conditional UPDATE
  (TicketTier.decrement_inventory). If it updates no row the tier sold out
  between checkout and payment, and InsufficientInventoryError is raised.
- Atomicity: the order, its items, the tickets and the inventory
  decrements are written in one transaction. Any failure rolls all of it
  back and raises FulfillmentFailedError, so a retry starts from scratch
  instead of finding a half-issued order.

Amounts, prices and the buyer come from the metadata frozen on the session
at checkout time and are never recomputed.

Usage:
    from ticketing.services import FulfillmentService

    result = FulfillmentService.fulfill_checkout_session(session_dict)
    if result and result.created:
        send_order_confirmation.delay(str(result.order.id))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.services import BaseService

from ticketing.exceptions import (
    FulfillmentFailedError,
    InsufficientInventoryError,
    InvalidCheckoutMetadataError,
)
from ticketing.metadata import CheckoutMetadata
from ticketing.models import Event, Order, OrderItem, Ticket, TicketTier
from ticketing.models.order import generate_ticket_credential, guest_identity
from ticketing.states import OrderStatus, TicketStatus

if TYPE_CHECKING:
    from authentication.models import User


# Checkout Session payment_status values that mean the money is collected
PAID_PAYMENT_STATUSES = frozenset({"paid", "no_payment_required"})


@dataclass
class FulfillmentResult:
    """
    Outcome of fulfilling a Checkout Session.

    Attributes:
        order: The order for the session
        tickets: Every ticket of the order, with tier loaded
        created: False when the session had already been fulfilled
    """

    order: Order
    tickets: list[Ticket] = field(default_factory=list)
    created: bool = True

    @property
    def ticket_count(self) -> int:
        return len(self.tickets)


class FulfillmentService(BaseService):
    """Creates orders and tickets for paid Checkout Sessions, exactly once."""

    @classmethod
    def fulfill_checkout_session(
        cls, session: dict[str, Any]
    ) -> FulfillmentResult | None:
        """
        Fulfill a Checkout Session object from a webhook or the Stripe API.

        Args:
            session: Checkout Session as a plain dict (id, payment_status,
                payment_intent, invoice, customer_details, metadata)

        Returns:
            FulfillmentResult (created=False for an already fulfilled
            session), or None when the session is still awaiting payment

        Raises:
            FulfillmentFailedError: Paid session could not be fulfilled; nothing
                was written
        """
        logger = cls.get_logger()
        session_id = session.get("id")
        if not session_id:
            raise FulfillmentFailedError("Checkout session has no id")

        existing = cls.get_existing_result(session_id)
        if existing is not None:
            logger.info(
                "Order already exists for checkout session",
                extra={
                    "checkout_session_id": session_id,
                    "order_id": str(existing.order.id),
                },
            )
            return existing

        payment_status = session.get("payment_status")
        if payment_status not in PAID_PAYMENT_STATUSES:
            logger.info(
                "Checkout session not paid yet, awaiting async payment",
                extra={
                    "checkout_session_id": session_id,
                    "payment_status": payment_status,
                },
            )
            return None

        try:
            metadata = CheckoutMetadata.from_stripe(session.get("metadata"))
            return cls._fulfill(session, metadata)
        except Exception as e:
            logger.critical(
                "Fulfillment failed for paid checkout session - buyer charged "
                "without tickets, manual reconciliation required if retries fail",
                exc_info=True,
                extra={
                    "checkout_session_id": session_id,
                    "error": str(e),
                },
            )
            raise FulfillmentFailedError(
                f"Could not fulfill checkout session {session_id}: {e}",
                details={"checkout_session_id": session_id},
            ) from e

    @classmethod
    def get_existing_result(cls, session_id: str) -> FulfillmentResult | None:
        """Return the fulfilled order for session_id, or None."""
        order = (
            Order.objects.select_related("event")
            .filter(stripe_checkout_session_id=session_id)
            .first()
        )
        if order is None:
            return None
        return FulfillmentResult(
            order=order,
            tickets=cls._order_tickets(order),
            created=False,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    @classmethod
    def _fulfill(
        cls, session: dict[str, Any], metadata: CheckoutMetadata
    ) -> FulfillmentResult:
        logger = cls.get_logger()
        session_id = session["id"]

        event = Event.objects.filter(pk=metadata.event_id).first()
        if event is None:
            raise InvalidCheckoutMetadataError(
                f"Event {metadata.event_id} from checkout metadata does not exist"
            )

        customer_details = session.get("customer_details") or {}
        email = (
            metadata.buyer_email
            or customer_details.get("email")
            or session.get("customer_email")
            or ""
        )
        name = metadata.buyer_name or customer_details.get("name") or ""
        buyer = cls._get_buyer(metadata.buyer_user_id)
        buyer_identity = metadata.buyer_user_id or guest_identity(email)

        race_error: IntegrityError | None = None
        with cls.atomic():
            try:
                with transaction.atomic():
                    order = Order.objects.create(
                        buyer=buyer,
                        buyer_identity=buyer_identity,
                        event=event,
                        stripe_payment_intent_id=_object_id(
                            session.get("payment_intent")
                        ),
                        stripe_checkout_session_id=session_id,
                        stripe_invoice_id=_object_id(session.get("invoice")),
                        total_amount=metadata.subtotal,
                        platform_fee_amount=metadata.platform_fee,
                        organizer_payout_amount=metadata.organizer_payout,
                        currency=metadata.currency,
                        payout_breakdown=metadata.payout_breakdown(),
                        status=OrderStatus.COMPLETED,
                        source_app=metadata.source_app,
                        contact_email=email,
                        contact_name=name,
                    )
            except IntegrityError as e:
                race_error = e
            else:
                tickets = cls._issue_tickets(order, event, metadata, name, email)
                event.increment_tickets_sold(len(tickets))

        if race_error is not None:
            # A concurrent delivery inserted the order first
            existing = cls.get_existing_result(session_id)
            if existing is None:
                raise race_error
            logger.info(
                "Concurrent delivery already fulfilled checkout session",
                extra={"checkout_session_id": session_id},
            )
            return existing

        logger.info(
            "Checkout session fulfilled",
            extra={
                "checkout_session_id": session_id,
                "order_id": str(order.id),
                "event_id": str(event.id),
                "ticket_count": len(tickets),
                "total_amount": str(order.total_amount),
            },
        )
        return FulfillmentResult(order=order, tickets=tickets, created=True)

    @classmethod
    def _issue_tickets(
        cls,
        order: Order,
        event: Event,
        metadata: CheckoutMetadata,
        attendee_name: str,
        attendee_email: str,
    ) -> list[Ticket]:
        """Create items and tickets for every line, decrementing inventory."""
        tiers = {
            str(tier.id): tier
            for tier in TicketTier.objects.filter(
                event=event,
                id__in=[line.tier_id for line in metadata.lines],
            )
        }

        issued: list[Ticket] = []
        for line in metadata.lines:
            tier = tiers.get(line.tier_id)
            if tier is None:
                raise InvalidCheckoutMetadataError(
                    f"Tier {line.tier_id} from checkout metadata does not exist"
                )

            order_item = OrderItem.objects.create(
                order=order,
                tier=tier,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.line_total,
            )

            if not tier.decrement_inventory(line.quantity):
                raise InsufficientInventoryError(
                    f'Tier "{tier.name}" sold out before payment completed',
                    details={
                        "tier_id": line.tier_id,
                        "quantity": line.quantity,
                        "order_id": str(order.id),
                    },
                )

            issued.extend(
                Ticket.objects.bulk_create(
                    [
                        Ticket(
                            event=event,
                            tier=tier,
                            order=order,
                            order_item=order_item,
                            buyer_identity=order.buyer_identity,
                            attendee_name=attendee_name,
                            attendee_email=attendee_email,
                            status=TicketStatus.VALID,
                            credential=generate_ticket_credential(),
                        )
                        for _ in range(line.quantity)
                    ]
                )
            )
        return issued

    @staticmethod
    def _order_tickets(order: Order) -> list[Ticket]:
        return list(
            order.tickets.select_related("tier").order_by(
                "order_item__created_at", "created_at", "id"
            )
        )

    @staticmethod
    def _get_buyer(user_id: str) -> User | None:
        if not user_id:
            return None
        return get_user_model().objects.filter(pk=user_id).first()


def _object_id(value: Any) -> str:
    """Id of a Stripe field that is either an id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id") or ""
    return value or ""
