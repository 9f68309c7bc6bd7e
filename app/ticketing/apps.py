"""
Ticketing app configuration.
"""

from django.apps import AppConfig


class TicketingConfig(AppConfig):
    """Configuration for the ticketing application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "ticketing"
    verbose_name = "Ticketing"

    def ready(self):
        """Register Stripe webhook handlers for checkout events."""
        import ticketing.webhooks  # noqa: F401
