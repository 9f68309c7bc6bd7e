"""
Event and TicketTier models.

An Event is published by an organizer and sells admission through one or
more TicketTiers. Tier inventory (remaining_quantity) is the only counter
shared between concurrent buyers and is only ever changed through
TicketTier.decrement_inventory, a single conditional UPDATE.

Usage:
    from ticketing.models import Event, TicketTier

    event = Event.objects.get(pk=event_id)
    if not event.is_purchasable():
        raise EventUnavailableError(...)
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from toolkit.helpers import slugify_unique

from ticketing.states import EventStatus


class Event(UUIDPrimaryKeyMixin, BaseModel):
    """
    A ticketed event.

    Fields:
        title: Display title
        slug: URL slug used by the storefront (cancel URL target)
        description: Long-form description
        organizer: User who owns the event and receives payouts
        status: Publication status; only PUBLISHED events sell tickets
        currency: ISO 4217 code (lowercase) for all tiers and orders
        platform_fee_percent: Per-event fee percentage (None = platform default)
        platform_fee_fixed: Per-order fixed fee in major units (None = 0)
        venue_name: Venue display name
        city: City display name
        start_at: When the event starts
        end_at: When the event ends; sales close at this instant
        tickets_sold: Count of tickets issued across all tiers
    """

    title = models.CharField(
        max_length=255,
        help_text="Event title",
    )

    slug = models.SlugField(
        max_length=255,
        unique=True,
        blank=True,
        help_text="URL slug on the storefront; generated from the title when empty",
    )

    description = models.TextField(
        blank=True,
        help_text="Event description",
    )

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="organized_events",
        help_text="Organizer receiving the proceeds of ticket sales",
    )

    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.DRAFT,
        db_index=True,
        help_text="Publication status",
    )

    currency = models.CharField(
        max_length=3,
        default="cad",
        help_text="ISO 4217 currency code (lowercase)",
    )

    platform_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Platform fee percentage; platform default when empty",
    )

    platform_fee_fixed = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Fixed platform fee per order in major units; 0 when empty",
    )

    venue_name = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=255, blank=True)

    start_at = models.DateTimeField(help_text="When the event starts")
    end_at = models.DateTimeField(help_text="When the event ends")

    tickets_sold = models.PositiveIntegerField(
        default=0,
        help_text="Tickets issued across all tiers",
    )

    class Meta:
        ordering = ["start_at"]
        indexes = [
            models.Index(fields=["status", "end_at"], name="event_status_end_at_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify_unique(self.title, Event)
        super().save(*args, **kwargs)

    def is_purchasable(self, now: datetime | None = None) -> bool:
        """Return True while the event is published and has not ended."""
        now = now or timezone.now()
        return self.status == EventStatus.PUBLISHED and now < self.end_at

    def has_ended(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        return self.end_at <= now

    @property
    def fee_percent(self) -> Decimal:
        """Effective fee percentage, falling back to the platform default."""
        if self.platform_fee_percent is None:
            return Decimal(str(settings.TICKETING_DEFAULT_PLATFORM_FEE_PERCENT))
        return self.platform_fee_percent

    @property
    def fee_fixed(self) -> Decimal:
        if self.platform_fee_fixed is None:
            return Decimal("0")
        return self.platform_fee_fixed

    def increment_tickets_sold(self, quantity: int) -> None:
        """Add quantity to tickets_sold with a single UPDATE."""
        Event.objects.filter(pk=self.pk).update(
            tickets_sold=F("tickets_sold") + quantity
        )


class TicketTier(UUIDPrimaryKeyMixin, BaseModel):
    """
    A priced inventory pool scoped to one Event.

    Fields:
        event: Owning event
        name: Tier name (e.g., "General Admission")
        description: Optional text shown on the Checkout line item
        price: Unit price in major currency units
        currency: ISO 4217 code (matches the event)
        remaining_quantity: Unsold inventory; never negative
        max_per_order: Most tickets of this tier one order may contain
        sales_start_at: First instant sales are open, inclusive (None = open)
        sales_end_at: Last instant sales are open, inclusive (None = until event ends)
        is_hidden: Hidden from public listings (still purchasable by id)

    Note:
        The CheckConstraint on remaining_quantity backs up the conditional
        decrement: even a write that bypasses decrement_inventory cannot
        oversell.
    """

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="tiers",
        help_text="Event this tier belongs to",
    )

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Unit price in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="cad",
        help_text="ISO 4217 currency code (lowercase)",
    )

    remaining_quantity = models.PositiveIntegerField(
        help_text="Tickets still available in this tier",
    )

    max_per_order = models.PositiveIntegerField(
        default=10,
        help_text="Maximum tickets of this tier per order",
    )

    sales_start_at = models.DateTimeField(null=True, blank=True)
    sales_end_at = models.DateTimeField(null=True, blank=True)

    is_hidden = models.BooleanField(default=False)

    class Meta:
        ordering = ["price", "name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(remaining_quantity__gte=0),
                name="ticket_tier_remaining_quantity_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="ticket_tier_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.event})"

    def decrement_inventory(self, quantity: int) -> bool:
        """
        Atomically take quantity units out of remaining_quantity.

        Issues UPDATE ... SET remaining_quantity = remaining_quantity - q
        WHERE id = ... AND remaining_quantity >= q, so concurrent buyers
        can never drive inventory below zero.

        Returns:
            True if the units were taken, False if not enough remained
        """
        updated = TicketTier.objects.filter(
            pk=self.pk,
            remaining_quantity__gte=quantity,
        ).update(remaining_quantity=F("remaining_quantity") - quantity)
        return updated == 1
