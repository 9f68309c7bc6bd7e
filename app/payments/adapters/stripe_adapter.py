"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- Configurable timeouts on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency support for safe retries
- Thread-safe for use from Celery workers

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Max network retry attempts (default: 3)

Usage:
    from payments.adapters import (
        CheckoutLineItem,
        CreateCheckoutSessionParams,
        StripeAdapter,
    )

    result = StripeAdapter.create_checkout_session(
        CreateCheckoutSessionParams(
            line_items=[CheckoutLineItem(name="GA - Jazz Night", unit_amount=2500, quantity=2)],
            currency="cad",
            success_url="https://shop.example.com/checkout/success?session_id={CHECKOUT_SESSION_ID}",
            cancel_url="https://shop.example.com/events/jazz-night",
            metadata={"event_id": str(event.id)},
            application_fee_amount=250,
            destination_account="acct_123",
            expires_at=timezone.now() + timedelta(minutes=30),
            idempotency_key=IdempotencyKeyGenerator.generate("checkout", attempt_id),
        )
    )
    redirect(result.url)
"""

from __future__ import annotations

import hashlib
import json
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeSignatureVerificationError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from datetime import datetime


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CheckoutLineItem:
    """
    One line item on a hosted Checkout page.

    Attributes:
        name: Product name shown to the buyer
        unit_amount: Price per unit in the currency's minor unit
        quantity: Number of units
        description: Optional secondary text
    """

    name: str
    unit_amount: int
    quantity: int
    description: str | None = None

    def to_stripe(self, currency: str) -> dict[str, Any]:
        product_data: dict[str, Any] = {"name": self.name}
        if self.description:
            product_data["description"] = self.description
        return {
            "price_data": {
                "currency": currency,
                "unit_amount": self.unit_amount,
                "product_data": product_data,
            },
            "quantity": self.quantity,
        }


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout Session with a destination charge.

    Attributes:
        line_items: Items the buyer is paying for
        currency: ISO 4217 currency code (lowercase)
        success_url: Redirect after payment; may contain {CHECKOUT_SESSION_ID}
        cancel_url: Redirect when the buyer abandons checkout
        metadata: String key-value pairs copied onto the session and its PaymentIntent
        application_fee_amount: Platform fee in minor units kept by the platform
        destination_account: Connected account (acct_xxx) receiving the remainder
        expires_at: When the hosted session stops accepting payment
        idempotency_key: Unique key for idempotent creation
        customer_email: Prefills the email field and receives the receipt
    """

    line_items: list[CheckoutLineItem]
    currency: str
    success_url: str
    cancel_url: str
    metadata: dict[str, str]
    application_fee_amount: int
    destination_account: str
    expires_at: datetime
    idempotency_key: str
    customer_email: str | None = None

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not self.line_items:
            raise ValueError("line_items must not be empty")
        if any(item.quantity <= 0 for item in self.line_items):
            raise ValueError("line item quantity must be positive")
        if any(item.unit_amount < 0 for item in self.line_items):
            raise ValueError("line item unit_amount must not be negative")
        if self.application_fee_amount < 0:
            raise ValueError("application_fee_amount must not be negative")
        if not self.destination_account:
            raise ValueError("destination_account is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")

    @property
    def amount_total(self) -> int:
        return sum(item.unit_amount * item.quantity for item in self.line_items)


@dataclass
class CheckoutSessionResult:
    """
    Result from Stripe Checkout Session operations.

    Attributes:
        id: Checkout Session ID (cs_xxx)
        url: Hosted payment page URL (None once the session is complete)
        status: open, complete or expired
        payment_status: paid, unpaid or no_payment_required
        expires_at: Unix timestamp after which the session expires
        payment_intent_id: Underlying PaymentIntent ID (pi_xxx) if created
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    url: str | None
    status: str | None = None
    payment_status: str | None = None
    expires_at: int | None = None
    payment_intent_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent retrieval.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (succeeded, processing, etc.)
        amount_cents: Amount in minor units
        currency: Currency code
        latest_charge_id: Most recent Charge ID (ch_xxx)
        receipt_url: Stripe-hosted receipt for the latest charge
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    latest_charge_id: str | None = None
    receipt_url: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class InvoiceResult:
    """
    Result from Stripe Invoice retrieval.

    Attributes:
        id: Invoice ID (in_xxx)
        status: draft, open, paid, void or uncollectible
        hosted_invoice_url: Buyer-facing invoice page
        invoice_pdf: Direct PDF download link
        raw_response: Full Stripe response dict
    """

    id: str
    status: str | None = None
    hosted_invoice_url: str | None = None
    invoice_pdf: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="create_checkout_session",
            entity_id=checkout_attempt_id,
        )
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        """
        Generate a unique idempotency key.

        Args:
            operation: The Stripe operation (create_checkout_session, etc.)
            entity_id: The domain entity or attempt ID
            attempt: Attempt number for retries (default: 1)

        Returns:
            Formatted idempotency key string
        """
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a Stripe error is retryable.

    Args:
        error: The exception to check

    Returns:
        True if the error is a transient Stripe error that can be retried
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)

    Returns:
        Delay in seconds with jitter (0-25% of calculated delay)

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


def _stripe_dict(obj: Any) -> dict[str, Any]:
    """Convert a StripeObject (or plain dict) into a plain dict."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return dict(obj)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return {}


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Usage:
        result = StripeAdapter.create_checkout_session(params)
        intent = StripeAdapter.retrieve_payment_intent("pi_xxx")
        event = StripeAdapter.verify_webhook_signature(payload, signature)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
        trace_id: str | None = None,
    ) -> CheckoutSessionResult:
        """
        Create a hosted Checkout Session routed to a connected account.

        The platform fee is collected through
        payment_intent_data.application_fee_amount and the remainder is
        transferred to params.destination_account. Metadata is attached to
        both the session and its PaymentIntent so either webhook object can
        be reconciled. Invoice creation is enabled so a hosted invoice is
        available after payment.

        Args:
            params: Parameters for creating the session
            trace_id: Optional trace ID for distributed tracing

        Returns:
            CheckoutSessionResult with the hosted URL

        Raises:
            StripeInvalidAccountError: Destination account cannot receive transfers
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_checkout_session",
            "amount_total": params.amount_total,
            "application_fee_amount": params.application_fee_amount,
            "currency": params.currency,
            "destination_account": params.destination_account,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        create_kwargs: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                item.to_stripe(params.currency) for item in params.line_items
            ],
            "payment_intent_data": {
                "application_fee_amount": params.application_fee_amount,
                "transfer_data": {"destination": params.destination_account},
                "metadata": params.metadata,
            },
            "metadata": params.metadata,
            "invoice_creation": {
                "enabled": True,
                "invoice_data": {"metadata": params.metadata},
            },
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "expires_at": int(params.expires_at.timestamp()),
            "idempotency_key": params.idempotency_key,
        }
        if params.customer_email:
            create_kwargs["customer_email"] = params.customer_email

        try:
            session = stripe.checkout.Session.create(**create_kwargs)

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "checkout_session_id": session.id,
                    "duration_ms": duration_ms,
                },
            )

            return cls._to_checkout_session_result(session)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

    @classmethod
    def retrieve_checkout_session(
        cls,
        session_id: str,
        trace_id: str | None = None,
    ) -> CheckoutSessionResult:
        """
        Retrieve a Checkout Session by ID.

        Used by the manual reconciliation command to re-drive fulfillment
        for a session whose webhook was never processed.

        Args:
            session_id: Checkout Session ID (cs_xxx)
            trace_id: Optional trace ID for distributed tracing

        Returns:
            CheckoutSessionResult including metadata and payment_status
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_checkout_session",
            "checkout_session_id": session_id,
            "trace_id": trace_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            session = stripe.checkout.Session.retrieve(session_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": session.status,
                    "payment_status": session.payment_status,
                    "duration_ms": duration_ms,
                },
            )

            return cls._to_checkout_session_result(session)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @staticmethod
    def _to_checkout_session_result(session: Any) -> CheckoutSessionResult:
        raw = _stripe_dict(session)
        payment_intent = raw.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")
        return CheckoutSessionResult(
            id=raw.get("id") or session.id,
            url=raw.get("url"),
            status=raw.get("status"),
            payment_status=raw.get("payment_status"),
            expires_at=raw.get("expires_at"),
            payment_intent_id=payment_intent,
            metadata=dict(raw.get("metadata") or {}),
            raw_response=raw,
        )

    # =========================================================================
    # Receipt & Invoice Lookups
    # =========================================================================

    @classmethod
    def retrieve_payment_intent(
        cls,
        payment_intent_id: str,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent with its latest charge expanded.

        The expansion exposes latest_charge.receipt_url, the buyer-facing
        receipt link included in confirmation emails.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            trace_id: Optional trace ID for distributed tracing

        Returns:
            PaymentIntentResult with receipt_url when a charge exists
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
            "trace_id": trace_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(
                payment_intent_id,
                expand=["latest_charge"],
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": intent.status,
                    "duration_ms": duration_ms,
                },
            )

            raw = _stripe_dict(intent)
            latest_charge = raw.get("latest_charge")
            latest_charge_id = None
            receipt_url = None
            if isinstance(latest_charge, dict):
                latest_charge_id = latest_charge.get("id")
                receipt_url = latest_charge.get("receipt_url")
            elif isinstance(latest_charge, str):
                latest_charge_id = latest_charge

            return PaymentIntentResult(
                id=raw.get("id") or intent.id,
                status=raw.get("status"),
                amount_cents=raw.get("amount") or 0,
                currency=raw.get("currency") or "",
                latest_charge_id=latest_charge_id,
                receipt_url=receipt_url,
                metadata=dict(raw.get("metadata") or {}),
                raw_response=raw,
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def retrieve_invoice(
        cls,
        invoice_id: str,
        trace_id: str | None = None,
    ) -> InvoiceResult:
        """
        Retrieve an Invoice created by a Checkout Session.

        Args:
            invoice_id: Stripe Invoice ID (in_xxx)
            trace_id: Optional trace ID for distributed tracing

        Returns:
            InvoiceResult with hosted and PDF links
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_invoice",
            "invoice_id": invoice_id,
            "trace_id": trace_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            invoice = stripe.Invoice.retrieve(invoice_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={**log_context, "duration_ms": duration_ms},
            )

            raw = _stripe_dict(invoice)
            return InvoiceResult(
                id=raw.get("id") or invoice.id,
                status=raw.get("status"),
                hosted_invoice_url=raw.get("hosted_invoice_url"),
                invoice_pdf=raw.get("invoice_pdf"),
                raw_response=raw,
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        The signature is checked against STRIPE_WEBHOOK_SECRET (HMAC-SHA256
        over "{timestamp}.{payload}" with timestamp tolerance). The verified
        raw payload is then decoded as plain JSON so handlers work with
        ordinary dicts.

        Args:
            payload: Raw webhook payload bytes (unmodified request body)
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeSignatureVerificationError: Missing, invalid or expired signature
        """
        if not signature:
            raise StripeSignatureVerificationError(
                "Missing Stripe-Signature header",
                stripe_code="signature_missing",
            )

        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeSignatureVerificationError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeSignatureVerificationError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e

        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return json.loads(payload)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Args:
            error: The Stripe exception
            log_context: Logging context dict
            duration_ms: Operation duration for logging

        Raises:
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )

            if "account" in str(error).lower() or error.param == (
                "payment_intent_data[transfer_data][destination]"
            ):
                raise StripeInvalidAccountError(
                    str(error),
                    stripe_code=error.code,
                ) from error

            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning(
                "Rate limited by Stripe",
                extra=log_context,
            )
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error(
                "Stripe API error",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
