"""
Payment domain models.

- ConnectedAccount: Stripe Connect accounts receiving ticket sale transfers
- WebhookEvent: Stripe webhook event tracking for processing and repair
"""

from payments.models.connected_account import ConnectedAccount
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "ConnectedAccount",
    "WebhookEvent",
]
