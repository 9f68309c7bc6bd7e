"""
Ticketing services.

- CheckoutService: Validates a selection and creates a Stripe Checkout Session
- FulfillmentService: Turns a paid session into an Order and Tickets, once
- EnrichmentService: Receipt links and the confirmation email, after commit
- OrderLookupService: Finds the order for the checkout success page
"""

from ticketing.services.checkout import CheckoutResult, CheckoutService
from ticketing.services.enrichment import EnrichmentService, ReceiptLinks
from ticketing.services.fulfillment import FulfillmentResult, FulfillmentService
from ticketing.services.lookup import OrderLookupService

__all__ = [
    "CheckoutResult",
    "CheckoutService",
    "EnrichmentService",
    "FulfillmentResult",
    "FulfillmentService",
    "OrderLookupService",
    "ReceiptLinks",
]
