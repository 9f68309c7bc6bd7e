"""
Order lookup for the checkout success page.

The buyer is redirected back from Stripe before (or while) the webhook is
processed, so the success page asks for the order by checkout session id
and this service waits briefly for fulfillment to land.
"""

from __future__ import annotations

import time

from django.conf import settings

from core.services import BaseService

from ticketing.models import Order


class OrderLookupService(BaseService):
    """Read-only access to fulfilled orders by checkout session."""

    @classmethod
    def get_by_session(cls, session_id: str) -> Order | None:
        return (
            Order.objects.select_related("event")
            .prefetch_related("items__tier", "tickets__tier")
            .filter(stripe_checkout_session_id=session_id)
            .first()
        )

    @classmethod
    def wait_for_order(
        cls,
        session_id: str,
        attempts: int | None = None,
        interval: float | None = None,
    ) -> Order | None:
        """
        Poll for the order of a checkout session.

        Args:
            session_id: Checkout Session ID (cs_xxx)
            attempts: Number of lookups (default TICKETING_ORDER_POLL_ATTEMPTS)
            interval: Seconds between lookups
                (default TICKETING_ORDER_POLL_INTERVAL_SECONDS)

        Returns:
            The Order, or None if it has not been created yet
        """
        if attempts is None:
            attempts = settings.TICKETING_ORDER_POLL_ATTEMPTS
        if interval is None:
            interval = settings.TICKETING_ORDER_POLL_INTERVAL_SECONDS

        for attempt in range(max(attempts, 1)):
            order = cls.get_by_session(session_id)
            if order is not None:
                return order
            if attempt < attempts - 1:
                time.sleep(interval)

        cls.get_logger().info(
            "Order not yet available for checkout session",
            extra={"checkout_session_id": session_id, "attempts": attempts},
        )
        return None
