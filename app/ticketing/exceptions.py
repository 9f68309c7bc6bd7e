"""
Ticketing exceptions.

Checkout errors are raised synchronously before the buyer pays and carry
an HTTP status for the checkout view. Fulfillment errors happen after
payment and are never shown to the buyer.

Exception Hierarchy:
    BaseApplicationError (core)
    ├── NotFoundError
    │   └── EventNotFoundError - Event id does not exist (404)
    ├── ValidationError
    │   └── CheckoutValidationError - Selection rejected before payment (400)
    │       ├── EventUnavailableError - Event not published or already ended
    │       ├── TierNotFoundError - Tier absent or belongs to another event
    │       ├── QuantityOutOfRangeError - Quantity < 1 or > max_per_order
    │       ├── SalesNotStartedError - Tier sales window not open yet
    │       └── SalesEndedError - Tier sales window closed
    ├── ConflictError
    │   └── InsufficientInventoryError - Not enough tickets remaining (400)
    ├── ConfigurationError
    │   └── OrganizerPayoutNotConfiguredError - No payout destination (400)
    └── FulfillmentError
        ├── InvalidCheckoutMetadataError - Session metadata cannot be decoded
        └── FulfillmentFailedError - Paid session could not be fulfilled
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


# =============================================================================
# Checkout Exceptions
# =============================================================================


class EventNotFoundError(NotFoundError):
    """Raised when the requested event does not exist."""

    default_error_code = "EVENT_NOT_FOUND"
    status_code = 404


class CheckoutValidationError(ValidationError):
    """Base for selection errors reported to the buyer before payment."""

    default_error_code = "CHECKOUT_INVALID"
    status_code = 400


class EventUnavailableError(CheckoutValidationError):
    default_error_code = "EVENT_UNAVAILABLE"


class TierNotFoundError(CheckoutValidationError):
    default_error_code = "TIER_NOT_FOUND"


class QuantityOutOfRangeError(CheckoutValidationError):
    default_error_code = "QUANTITY_OUT_OF_RANGE"


class SalesNotStartedError(CheckoutValidationError):
    default_error_code = "SALES_NOT_STARTED"


class SalesEndedError(CheckoutValidationError):
    default_error_code = "SALES_ENDED"


class InsufficientInventoryError(ConflictError):
    """
    Raised when a tier cannot cover the requested quantity.

    At checkout this is a pre-check against a snapshot. During fulfillment
    it is raised when the conditional decrement updates no row, i.e. a
    concurrent buyer took the last units first.
    """

    default_error_code = "INSUFFICIENT_INVENTORY"
    status_code = 400


class OrganizerPayoutNotConfiguredError(ConfigurationError):
    """
    Raised when the event's organizer cannot receive transfers.

    Ticket sales are destination charges, so checkout must not start
    without an onboarded connected account.
    """

    default_error_code = "ORGANIZER_PAYOUT_NOT_CONFIGURED"
    status_code = 400


# =============================================================================
# Fulfillment Exceptions
# =============================================================================


class FulfillmentError(BaseApplicationError):
    """Base for failures turning a paid Checkout Session into an order."""

    default_error_code = "FULFILLMENT_ERROR"


class InvalidCheckoutMetadataError(FulfillmentError):
    """Raised when session metadata is missing or malformed."""

    default_error_code = "INVALID_CHECKOUT_METADATA"


class FulfillmentFailedError(FulfillmentError):
    """
    Raised when a paid session could not be fulfilled.

    The fulfillment transaction has been rolled back, so no partial order
    exists. The buyer has been charged: the webhook event stays FAILED
    for the retry job and, after that, manual reconciliation.
    """

    default_error_code = "FULFILLMENT_FAILED"
