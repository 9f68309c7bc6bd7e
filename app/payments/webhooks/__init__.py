"""
Webhook handling for payment events from Stripe.

Webhooks are verified, stored, processed inline through the handler
registry, and retried by a periodic task when processing fails.
"""

from payments.webhooks.handlers import (
    dispatch_webhook,
    process_webhook,
    register_handler,
)
from payments.webhooks.views import stripe_webhook

__all__ = [
    "dispatch_webhook",
    "process_webhook",
    "register_handler",
    "stripe_webhook",
]
