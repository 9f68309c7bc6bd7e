"""
Ticketing admin configuration.

Orders and tickets are issued only by fulfillment and are read-only here;
events and tiers are managed by staff.
"""

from django.contrib import admin

from ticketing.models import Event, Order, OrderItem, Ticket, TicketTier

__all__ = [
    "EventAdmin",
    "OrderAdmin",
    "TicketAdmin",
    "TicketTierAdmin",
]


class TicketTierInline(admin.TabularInline):
    model = TicketTier
    extra = 0
    fields = [
        "name",
        "price",
        "remaining_quantity",
        "max_per_order",
        "sales_start_at",
        "sales_end_at",
        "is_hidden",
    ]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = [
        "title",
        "organizer",
        "status",
        "start_at",
        "currency",
        "tickets_sold",
    ]
    list_filter = ["status", "currency", "start_at"]
    search_fields = ["title", "slug", "organizer__email"]
    prepopulated_fields = {"slug": ("title",)}
    readonly_fields = ["id", "tickets_sold", "created_at", "updated_at"]
    date_hierarchy = "start_at"
    inlines = [TicketTierInline]

    fieldsets = (
        (None, {"fields": ("id", "title", "slug", "description", "organizer")}),
        ("Schedule", {"fields": ("status", "start_at", "end_at")}),
        ("Venue", {"fields": ("venue_name", "city")}),
        (
            "Pricing",
            {"fields": ("currency", "platform_fee_percent", "platform_fee_fixed")},
        ),
        ("Sales", {"fields": ("tickets_sold",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(TicketTier)
class TicketTierAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price", "remaining_quantity", "is_hidden"]
    list_filter = ["is_hidden"]
    search_fields = ["name", "event__title"]
    list_select_related = ["event"]


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ["tier", "quantity", "unit_price", "subtotal"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    fields = ["id", "tier", "attendee_name", "status"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Fulfilled orders.

    Searching by checkout session id is the starting point for manual
    reconciliation (see the reconcile_checkout_session command).
    """

    list_display = [
        "short_reference",
        "event",
        "contact_email",
        "total_amount",
        "currency",
        "status",
        "confirmation_sent_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "source_app", "created_at"]
    search_fields = [
        "id",
        "stripe_checkout_session_id",
        "stripe_payment_intent_id",
        "contact_email",
        "buyer_identity",
    ]
    list_select_related = ["event"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [OrderItemInline, TicketInline]

    fieldsets = (
        (None, {"fields": ("id", "event", "status", "source_app")}),
        (
            "Buyer",
            {"fields": ("buyer", "buyer_identity", "contact_email", "contact_name")},
        ),
        (
            "Amounts",
            {
                "fields": (
                    "total_amount",
                    "platform_fee_amount",
                    "organizer_payout_amount",
                    "currency",
                    "payout_breakdown",
                )
            },
        ),
        (
            "Stripe",
            {
                "fields": (
                    "stripe_checkout_session_id",
                    "stripe_payment_intent_id",
                    "stripe_invoice_id",
                )
            },
        ),
        ("Timestamps", {"fields": ("confirmation_sent_at", "created_at", "updated_at")}),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in Order._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["id", "event", "tier", "attendee_name", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["id", "attendee_email", "order__stripe_checkout_session_id"]
    list_select_related = ["event", "tier"]
    readonly_fields = [
        "id",
        "event",
        "tier",
        "order",
        "order_item",
        "buyer_identity",
        "credential",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False
