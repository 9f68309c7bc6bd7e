"""
Payment adapters for external services.

All external payment API calls should go through these adapters to ensure
consistent error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter

    intent = StripeAdapter.retrieve_payment_intent("pi_xxx")
    print(intent.receipt_url)
"""

from payments.adapters.stripe_adapter import (
    CheckoutLineItem,
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    InvoiceResult,
    PaymentIntentResult,
    StripeAdapter,
    backoff_delay,
    is_retryable_stripe_error,
)

__all__ = [
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "IdempotencyKeyGenerator",
    "InvoiceResult",
    "PaymentIntentResult",
    "StripeAdapter",
    "backoff_delay",
    "is_retryable_stripe_error",
]
