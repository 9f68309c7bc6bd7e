"""
Initial ticketing schema.

Creates Event, TicketTier, Order, OrderItem and Ticket with the constraints
fulfillment relies on:
    - Order.stripe_checkout_session_id UNIQUE (one order per session)
    - TicketTier.remaining_quantity >= 0 (no overselling)
    - OrderItem (order, tier) UNIQUE and quantity > 0
    - Ticket.credential UNIQUE
"""

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid

import ticketing.models.order


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("title", models.CharField(help_text="Event title", max_length=255)),
                (
                    "slug",
                    models.SlugField(
                        blank=True,
                        help_text="URL slug on the storefront; generated from the title when empty",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "description",
                    models.TextField(blank=True, help_text="Event description"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("published", "Published"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="draft",
                        help_text="Publication status",
                        max_length=20,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="cad",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "platform_fee_percent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Platform fee percentage; platform default when empty",
                        max_digits=5,
                        null=True,
                    ),
                ),
                (
                    "platform_fee_fixed",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Fixed platform fee per order in major units; 0 when empty",
                        max_digits=10,
                        null=True,
                    ),
                ),
                ("venue_name", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=255)),
                ("start_at", models.DateTimeField(help_text="When the event starts")),
                ("end_at", models.DateTimeField(help_text="When the event ends")),
                (
                    "tickets_sold",
                    models.PositiveIntegerField(
                        default=0, help_text="Tickets issued across all tiers"
                    ),
                ),
                (
                    "organizer",
                    models.ForeignKey(
                        help_text="Organizer receiving the proceeds of ticket sales",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="organized_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["start_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "end_at"], name="event_status_end_at_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TicketTier",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Unit price in major currency units",
                        max_digits=10,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="cad",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "remaining_quantity",
                    models.PositiveIntegerField(
                        help_text="Tickets still available in this tier"
                    ),
                ),
                (
                    "max_per_order",
                    models.PositiveIntegerField(
                        default=10, help_text="Maximum tickets of this tier per order"
                    ),
                ),
                ("sales_start_at", models.DateTimeField(blank=True, null=True)),
                ("sales_end_at", models.DateTimeField(blank=True, null=True)),
                ("is_hidden", models.BooleanField(default=False)),
                (
                    "event",
                    models.ForeignKey(
                        help_text="Event this tier belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tiers",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "ordering": ["price", "name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(remaining_quantity__gte=0),
                        name="ticket_tier_remaining_quantity_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(price__gte=0),
                        name="ticket_tier_price_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "buyer_identity",
                    models.CharField(
                        db_index=True,
                        help_text="User id, or guest:<email> for guest checkout",
                        max_length=320,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "stripe_checkout_session_id",
                    models.CharField(
                        help_text="Stripe Checkout Session ID (cs_xxx); one order per session",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "stripe_invoice_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Invoice ID (in_xxx) created by the Checkout Session",
                        max_length=255,
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "platform_fee_amount",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                (
                    "organizer_payout_amount",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                ("currency", models.CharField(default="cad", max_length=3)),
                (
                    "payout_breakdown",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Fee inputs and outputs at checkout time",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("completed", "Completed")],
                        db_index=True,
                        default="completed",
                        max_length=20,
                    ),
                ),
                ("source_app", models.CharField(default="shop", max_length=50)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("contact_name", models.CharField(blank=True, max_length=255)),
                ("confirmation_sent_at", models.DateTimeField(blank=True, null=True)),
                (
                    "buyer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Signed-in buyer; empty for guest checkout",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ticket_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["event", "created_at"], name="order_event_created_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                *_timestamps(),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="ticketing.order",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="ticketing.tickettier",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "tier"),
                        name="order_item_unique_tier_per_order",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="order_item_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "buyer_identity",
                    models.CharField(db_index=True, max_length=320),
                ),
                ("attendee_name", models.CharField(blank=True, max_length=255)),
                ("attendee_email", models.EmailField(blank=True, max_length=254)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("valid", "Valid"),
                            ("void", "Void"),
                            ("used", "Used"),
                        ],
                        db_index=True,
                        default="valid",
                        max_length=20,
                    ),
                ),
                (
                    "credential",
                    models.CharField(
                        default=ticketing.models.order.generate_ticket_credential,
                        editable=False,
                        help_text="Secret encoded in the ticket QR code",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="ticketing.event",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to="ticketing.order",
                    ),
                ),
                (
                    "order_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to="ticketing.orderitem",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="ticketing.tickettier",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
    ]
