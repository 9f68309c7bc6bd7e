"""
Ticketing app: events, ticket tiers, checkout and order fulfillment.

Buyers select tiers on a published event and are redirected to a Stripe
hosted Checkout Session. When Stripe reports the session complete, the
checkout webhook creates the Order, its OrderItems and one Ticket per
admission exactly once, then a Celery task emails the QR-coded tickets.
"""
