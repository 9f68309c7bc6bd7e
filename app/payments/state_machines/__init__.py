"""
Status enums for payment models.
"""

from payments.state_machines.states import (
    OnboardingStatus,
    WebhookEventStatus,
)

__all__ = [
    "OnboardingStatus",
    "WebhookEventStatus",
]
