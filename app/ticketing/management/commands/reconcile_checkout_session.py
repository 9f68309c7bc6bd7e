"""
Manually fulfill a Stripe Checkout Session.

For sessions whose webhook never arrived or exhausted its retries: fetches
the session from Stripe and runs it through the same fulfillment path the
webhook uses. Safe to run repeatedly; an already fulfilled session is
reported, not duplicated.

Usage:
    ./manage.py reconcile_checkout_session cs_live_a1b2c3
    ./manage.py reconcile_checkout_session cs_live_a1b2c3 --send-email
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from payments.adapters import StripeAdapter
from payments.exceptions import StripeError
from ticketing.exceptions import FulfillmentFailedError
from ticketing.services import FulfillmentService
from ticketing.tasks import send_order_confirmation


class Command(BaseCommand):
    help = "Fulfill a paid Stripe Checkout Session whose webhook was not processed."

    def add_arguments(self, parser):
        parser.add_argument("session_id", help="Checkout Session ID (cs_xxx)")
        parser.add_argument(
            "--send-email",
            action="store_true",
            help="Queue the confirmation email even if the order already existed",
        )

    def handle(self, *args, **options):
        session_id = options["session_id"]

        try:
            session = StripeAdapter.retrieve_checkout_session(session_id)
        except StripeError as e:
            raise CommandError(f"Could not retrieve {session_id}: {e.message}") from e

        try:
            with transaction.atomic():
                result = FulfillmentService.fulfill_checkout_session(
                    session.raw_response
                )
        except FulfillmentFailedError as e:
            raise CommandError(e.message) from e

        if result is None:
            self.stdout.write(
                self.style.WARNING(
                    f"{session_id} is not paid (payment_status="
                    f"{session.payment_status}); nothing fulfilled."
                )
            )
            return

        order = result.order
        if result.created:
            self.stdout.write(
                self.style.SUCCESS(
                    f"Created order {order.id} with {result.ticket_count} ticket(s)."
                )
            )
        else:
            self.stdout.write(
                f"Order {order.id} already exists with {result.ticket_count} ticket(s)."
            )

        if result.created or options["send_email"]:
            send_order_confirmation.delay(str(order.id))
            self.stdout.write(f"Queued confirmation email for order {order.id}.")
