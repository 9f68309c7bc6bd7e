"""
DRF serializers for ticketing.

Request serializers only check shape; business rules (sales windows,
inventory, per-order limits) are enforced by CheckoutService against fresh
database state.

Usage:
    serializer = CheckoutRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    selections = serializer.get_selections()
"""

from __future__ import annotations

from rest_framework import serializers

from ticketing.inventory import TierSelection
from ticketing.models import Order, OrderItem, Ticket
from ticketing.pricing import format_currency
from ticketing.qrcodes import render_qr_data_url


# =============================================================================
# Checkout
# =============================================================================


class TierSelectionSerializer(serializers.Serializer):
    tierId = serializers.UUIDField()
    quantity = serializers.IntegerField()


class CheckoutRequestSerializer(serializers.Serializer):
    """
    Checkout request body.

    Example:
        {
            "eventId": "7b0e...",
            "tiers": [{"tierId": "c1d2...", "quantity": 2}],
            "contactEmail": "buyer@example.com",
            "contactName": "Alex Buyer"
        }
    """

    eventId = serializers.UUIDField()
    tiers = TierSelectionSerializer(many=True, allow_empty=False)
    contactEmail = serializers.EmailField(required=False, allow_blank=True)
    contactName = serializers.CharField(
        required=False, allow_blank=True, max_length=255
    )

    def validate_tiers(self, value: list[dict]) -> list[dict]:
        tier_ids = [item["tierId"] for item in value]
        if len(set(tier_ids)) != len(tier_ids):
            raise serializers.ValidationError("Each tier may only be selected once.")
        return value

    def get_selections(self) -> list[TierSelection]:
        return [
            TierSelection(tier_id=item["tierId"], quantity=item["quantity"])
            for item in self.validated_data["tiers"]
        ]


class CheckoutResponseSerializer(serializers.Serializer):
    url = serializers.URLField()
    sessionId = serializers.CharField()
    expiresAt = serializers.DateTimeField()


# =============================================================================
# Orders
# =============================================================================


class OrderItemSerializer(serializers.ModelSerializer):
    tier_id = serializers.UUIDField(source="tier.id", read_only=True)
    tier_name = serializers.CharField(source="tier.name", read_only=True)

    class Meta:
        model = OrderItem
        fields = ["tier_id", "tier_name", "quantity", "unit_price", "subtotal"]
        read_only_fields = fields


class TicketSerializer(serializers.ModelSerializer):
    """Ticket with its credential rendered as a QR code data URL."""

    tier_name = serializers.CharField(source="tier.name", read_only=True)
    qr_code = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            "id",
            "tier_name",
            "attendee_name",
            "status",
            "credential",
            "qr_code",
        ]
        read_only_fields = fields

    def get_qr_code(self, obj: Ticket) -> str:
        return render_qr_data_url(obj.credential)


class OrderSerializer(serializers.ModelSerializer):
    """Fulfilled order as shown on the checkout success page."""

    reference = serializers.CharField(source="short_reference", read_only=True)
    event_id = serializers.UUIDField(source="event.id", read_only=True)
    event_title = serializers.CharField(source="event.title", read_only=True)
    event_start_at = serializers.DateTimeField(source="event.start_at", read_only=True)
    total_display = serializers.SerializerMethodField()
    items = OrderItemSerializer(many=True, read_only=True)
    tickets = TicketSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "reference",
            "status",
            "event_id",
            "event_title",
            "event_start_at",
            "total_amount",
            "currency",
            "total_display",
            "contact_email",
            "contact_name",
            "items",
            "tickets",
            "created_at",
        ]
        read_only_fields = fields

    def get_total_display(self, obj: Order) -> str:
        return format_currency(obj.total_amount, obj.currency)
