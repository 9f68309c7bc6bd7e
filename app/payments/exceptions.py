"""
Payment-specific exceptions.

Every Stripe SDK error is translated by StripeAdapter into one of these
domain exceptions so callers never import stripe error classes directly.

Exception Hierarchy:
    PaymentError (base for payment domain)
    └── PaymentProcessingError - Payment provider failures
        └── StripeError - Base for all Stripe errors
            ├── StripeInvalidAccountError - Destination account unusable (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            │   └── StripeSignatureVerificationError - Webhook not signed by Stripe
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

Usage:
    from payments.exceptions import StripeError

    try:
        StripeAdapter.create_checkout_session(params)
    except StripeError as e:
        if e.is_retryable:
            ...
        return Response(e.to_dict(), status=502)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(ExternalServiceError):
    """Base exception for all payment provider operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentProcessingError(PaymentError):
    """Raised when the payment provider rejects or fails an operation."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect destination account.

    Raised when the organizer's connected account referenced by
    transfer_data.destination is missing, restricted or cannot
    receive transfers. Requires the organizer to fix onboarding.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    The request is malformed and will never succeed with the same
    parameters. This usually indicates a bug, not a buyer error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


class StripeSignatureVerificationError(StripeInvalidRequestError):
    """
    Webhook payload failed Stripe signature verification.

    Raised for missing, malformed, expired or forged Stripe-Signature
    headers. The request must be rejected without processing.
    """

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API. Retry with exponential backoff."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network connectivity issues and Stripe 5xx responses.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The operation may have succeeded on Stripe's side. Retry with the
    same idempotency key so Stripe returns the original response.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True
