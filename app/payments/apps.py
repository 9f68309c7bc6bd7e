"""
Payments app configuration.

This app provides the Stripe side of ticket sales:
- Stripe API adapter with error translation and idempotency
- Organizer connected accounts
- Webhook endpoint, handler registry and repair tasks
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # account.updated handler registers itself on import
        from payments.webhooks import handlers  # noqa: F401
