"""
Ticketing domain models.

- Event: A ticketed event owned by an organizer
- TicketTier: A priced, capacity-limited admission category of an event
- Order: A completed purchase, unique per Stripe Checkout Session
- OrderItem: One purchased tier within an order
- Ticket: One admission, carrying the credential encoded in its QR code
"""

from ticketing.models.event import Event, TicketTier
from ticketing.models.order import Order, OrderItem, Ticket

__all__ = [
    "Event",
    "Order",
    "OrderItem",
    "Ticket",
    "TicketTier",
]
