"""
Payments app for Stripe integration.

This app handles:
- Stripe API access through StripeAdapter (Checkout Sessions, lookups)
- Connected accounts of event organizers (destination charges)
- Webhook verification, recording and dispatch to registered handlers
- Periodic repair of failed or stuck webhook events

Related apps:
    - authentication: Profile owning the organizer's connected account
    - ticketing: Registers checkout.session.* handlers for fulfillment

Usage:
    from payments.adapters import StripeAdapter
    from payments.webhooks.handlers import register_handler

    @register_handler("checkout.session.completed")
    def handle_checkout_completed(webhook_event):
        ...
"""
