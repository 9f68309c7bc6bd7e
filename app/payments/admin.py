"""
Payment admin configuration.

WebhookEventAdmin doubles as the manual reconciliation console: events
that exhausted automatic retries can be re-processed from the changelist.
"""

from django.contrib import admin, messages

from payments.models import ConnectedAccount, WebhookEvent
from payments.webhooks.handlers import process_webhook

__all__ = [
    "ConnectedAccountAdmin",
    "WebhookEventAdmin",
]


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(admin.ModelAdmin):
    """Visibility into organizers' Stripe Connect account status."""

    list_display = [
        "id",
        "profile",
        "stripe_account_id",
        "onboarding_status",
        "payouts_enabled",
        "charges_enabled",
        "created_at",
    ]
    list_filter = ["onboarding_status", "payouts_enabled", "charges_enabled"]
    search_fields = ["id", "stripe_account_id", "profile__user__email"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "profile", "stripe_account_id")}),
        (
            "Status",
            {"fields": ("onboarding_status", "payouts_enabled", "charges_enabled")},
        ),
        ("Metadata", {"fields": ("metadata",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Visibility into webhook processing status.

    Webhook events are immutable once received; only re-processing is
    offered as an action.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "retry_count",
        "error_message",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["reprocess_events"]

    fieldsets = (
        (None, {"fields": ("id", "stripe_event_id", "event_type", "status")}),
        ("Processing", {"fields": ("processed_at", "retry_count")}),
        ("Error Info", {"fields": ("error_message",), "classes": ("collapse",)}),
        ("Payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.action(description="Re-process selected events")
    def reprocess_events(self, request, queryset):
        processed = failed = 0
        for webhook_event in queryset:
            if webhook_event.is_processed:
                continue
            if process_webhook(webhook_event).success:
                processed += 1
            else:
                failed += 1
        self.message_user(
            request,
            f"{processed} event(s) processed, {failed} failed.",
            messages.WARNING if failed else messages.SUCCESS,
        )

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
