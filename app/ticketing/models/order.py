"""
Order, OrderItem and Ticket models.

These rows are written only by FulfillmentService, in one transaction per
Stripe Checkout Session. Order.stripe_checkout_session_id is unique and is
the fulfillment idempotency key: a second delivery of the same completed
session can never create a second order.

Usage:
    from ticketing.models import Order

    order = Order.objects.filter(stripe_checkout_session_id=session_id).first()
    tickets = order.tickets.select_related("tier")
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.helpers import generate_token
from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from ticketing.states import OrderStatus, TicketStatus


GUEST_IDENTITY_PREFIX = "guest:"


def guest_identity(email: str) -> str:
    """Buyer identity recorded for checkouts without an account."""
    return f"{GUEST_IDENTITY_PREFIX}{email}"


def generate_ticket_credential() -> str:
    """Unguessable secret encoded in a ticket's QR code (256 bits)."""
    return generate_token(32)


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    Durable record of a completed purchase.

    Fields:
        buyer: Signed-in buyer (None for guest checkout)
        buyer_identity: User id, or "guest:<email>" for guests
        event: Event the tickets are for
        stripe_payment_intent_id: PaymentIntent that collected the money
        stripe_checkout_session_id: Checkout Session (unique idempotency key)
        stripe_invoice_id: Invoice generated for the session, if any
        total_amount: Subtotal charged, major units
        platform_fee_amount: Fee kept by the platform, major units
        organizer_payout_amount: Amount transferred to the organizer
        currency: ISO 4217 code (lowercase)
        payout_breakdown: Audit snapshot of fee inputs and outputs
        status: Order status
        source_app: Storefront that created the order
        contact_email: Where the confirmation email goes
        contact_name: Attendee name printed on tickets
        confirmation_sent_at: When the confirmation email was sent

    Note:
        All amounts come from the metadata frozen on the Checkout Session,
        never from current tier prices.
    """

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ticket_orders",
        help_text="Signed-in buyer; empty for guest checkout",
    )

    buyer_identity = models.CharField(
        max_length=320,
        db_index=True,
        help_text="User id, or guest:<email> for guest checkout",
    )

    event = models.ForeignKey(
        "ticketing.Event",
        on_delete=models.PROTECT,
        related_name="orders",
    )

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    stripe_checkout_session_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Checkout Session ID (cs_xxx); one order per session",
    )

    stripe_invoice_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Stripe Invoice ID (in_xxx) created by the Checkout Session",
    )

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    platform_fee_amount = models.DecimalField(max_digits=12, decimal_places=2)
    organizer_payout_amount = models.DecimalField(max_digits=12, decimal_places=2)

    currency = models.CharField(max_length=3, default="cad")

    payout_breakdown = models.JSONField(
        default=dict,
        blank=True,
        help_text="Fee inputs and outputs at checkout time",
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.COMPLETED,
        db_index=True,
    )

    source_app = models.CharField(max_length=50, default="shop")

    contact_email = models.EmailField(blank=True)
    contact_name = models.CharField(max_length=255, blank=True)

    confirmation_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "created_at"], name="order_event_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Order {self.short_reference} ({self.event_id})"

    @property
    def short_reference(self) -> str:
        """First 8 characters of the order id, shown to buyers."""
        return str(self.id)[:8]

    @property
    def is_guest(self) -> bool:
        return self.buyer_identity.startswith(GUEST_IDENTITY_PREFIX)


class OrderItem(BaseModel):
    """
    One purchased tier within an order.

    Fields:
        order: Owning order
        tier: Tier purchased
        quantity: Number of tickets
        unit_price: Price per ticket locked in at checkout
        subtotal: unit_price * quantity
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    tier = models.ForeignKey(
        "ticketing.TicketTier",
        on_delete=models.PROTECT,
        related_name="order_items",
    )

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "tier"],
                name="order_item_unique_tier_per_order",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_item_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.tier_id} (order {self.order_id})"


class Ticket(UUIDPrimaryKeyMixin, BaseModel):
    """
    One admission to an event.

    Fields:
        event: Event admitted to
        tier: Tier purchased
        order: Order that paid for the ticket
        order_item: Line of the order this ticket belongs to
        buyer_identity: Copied from the order
        attendee_name: Name on the ticket
        attendee_email: Email on the ticket
        status: Admission status
        credential: Secret rendered as the ticket's QR code
    """

    event = models.ForeignKey(
        "ticketing.Event",
        on_delete=models.PROTECT,
        related_name="tickets",
    )

    tier = models.ForeignKey(
        "ticketing.TicketTier",
        on_delete=models.PROTECT,
        related_name="tickets",
    )

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="tickets",
    )

    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.CASCADE,
        related_name="tickets",
    )

    buyer_identity = models.CharField(max_length=320, db_index=True)

    attendee_name = models.CharField(max_length=255, blank=True)
    attendee_email = models.EmailField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=TicketStatus.choices,
        default=TicketStatus.VALID,
        db_index=True,
    )

    credential = models.CharField(
        max_length=64,
        unique=True,
        default=generate_ticket_credential,
        editable=False,
        help_text="Secret encoded in the ticket QR code",
    )

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"Ticket {str(self.id)[:8]} ({self.status})"
