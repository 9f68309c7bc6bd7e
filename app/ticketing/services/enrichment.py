"""
Post-fulfillment enrichment: receipt links and the confirmation email.

Runs strictly after the fulfillment transaction has committed, from the
send_order_confirmation Celery task. Nothing here can change an Order or
its Tickets, and every failure is logged and reported as a result rather
than raised: the buyer has paid and holds tickets whether or not this
email goes out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.utils import timezone

from core.services import BaseService, ServiceResult
from payments.adapters import StripeAdapter
from payments.exceptions import StripeError
from toolkit.helpers import mask_email
from toolkit.services.email import EmailService, InlineImage

from ticketing.models import Order
from ticketing.pricing import format_currency
from ticketing.qrcodes import render_qr_png

if TYPE_CHECKING:
    from ticketing.models import Ticket


CONFIRMATION_TEMPLATE = "ticketing/emails/order_confirmation"


@dataclass
class ReceiptLinks:
    """Stripe-hosted documents for an order; any of them may be missing."""

    receipt_url: str | None = None
    invoice_url: str | None = None
    invoice_pdf: str | None = None


class EnrichmentService(BaseService):
    """Sends order confirmation emails with QR-coded tickets."""

    @classmethod
    def send_order_confirmation(cls, order_id: str) -> ServiceResult[dict]:
        """
        Email the buyer their order summary and tickets.

        Skips orders already confirmed, orders without a contact email and
        orders without tickets.

        Args:
            order_id: Order UUID

        Returns:
            ServiceResult with {"status": "sent" | "skipped", ...}, or a
            failure when the email could not be rendered or delivered
        """
        logger = cls.get_logger()

        order = Order.objects.select_related("event").filter(pk=order_id).first()
        if order is None:
            return ServiceResult.failure(
                f"Order {order_id} not found", error_code="ORDER_NOT_FOUND"
            )

        if order.confirmation_sent_at is not None:
            return ServiceResult.success({"status": "skipped", "reason": "already_sent"})
        if not order.contact_email:
            logger.warning(
                "Order has no contact email, confirmation not sent",
                extra={"order_id": str(order.id)},
            )
            return ServiceResult.success({"status": "skipped", "reason": "no_email"})

        tickets = list(
            order.tickets.select_related("tier").order_by(
                "order_item__created_at", "created_at", "id"
            )
        )
        if not tickets:
            return ServiceResult.success({"status": "skipped", "reason": "no_tickets"})

        links = cls.fetch_receipt_links(order)

        try:
            EmailService.send(
                to=order.contact_email,
                subject=(
                    f"Your tickets for {order.event.title} - "
                    f"Order #{order.short_reference}"
                ),
                template_name=CONFIRMATION_TEMPLATE,
                context=cls.build_context(order, tickets, links),
                from_email=settings.TICKETING_EMAIL_FROM,
                inline_images=[
                    InlineImage(
                        content_id=_qr_content_id(ticket),
                        content=render_qr_png(ticket.credential),
                    )
                    for ticket in tickets
                ],
            )
        except Exception as e:
            logger.error(
                "Confirmation email failed",
                exc_info=True,
                extra={"order_id": str(order.id), "error": str(e)},
            )
            return ServiceResult.failure(
                f"Confirmation email failed for order {order.id}: {e}",
                error_code="EMAIL_SEND_FAILED",
            )

        Order.objects.filter(pk=order.pk, confirmation_sent_at__isnull=True).update(
            confirmation_sent_at=timezone.now()
        )
        logger.info(
            "Order confirmation sent",
            extra={
                "order_id": str(order.id),
                "to": mask_email(order.contact_email),
                "ticket_count": len(tickets),
            },
        )
        return ServiceResult.success({"status": "sent", "ticket_count": len(tickets)})

    @classmethod
    def fetch_receipt_links(cls, order: Order) -> ReceiptLinks:
        """
        Look up the Stripe receipt and invoice URLs for an order.

        Each lookup is independent; a failed or missing one leaves its
        link empty.
        """
        logger = cls.get_logger()
        links = ReceiptLinks()

        if order.stripe_payment_intent_id:
            try:
                intent = StripeAdapter.retrieve_payment_intent(
                    order.stripe_payment_intent_id
                )
                links.receipt_url = intent.receipt_url
            except StripeError as e:
                logger.warning(
                    "Could not fetch receipt URL",
                    extra={"order_id": str(order.id), "error": e.message},
                )

        if order.stripe_invoice_id:
            try:
                invoice = StripeAdapter.retrieve_invoice(order.stripe_invoice_id)
                links.invoice_url = invoice.hosted_invoice_url
                links.invoice_pdf = invoice.invoice_pdf
            except StripeError as e:
                logger.warning(
                    "Could not fetch invoice URLs",
                    extra={"order_id": str(order.id), "error": e.message},
                )

        return links

    @staticmethod
    def build_context(
        order: Order, tickets: list[Ticket], links: ReceiptLinks
    ) -> dict[str, Any]:
        """Template context for the confirmation email."""
        event = order.event
        currency = order.currency
        return {
            "order": order,
            "order_reference": order.short_reference,
            "event": event,
            "venue": ", ".join(part for part in (event.venue_name, event.city) if part),
            "attendee_name": order.contact_name,
            "line_items": [
                {
                    "tier_name": item.tier.name,
                    "quantity": item.quantity,
                    "unit_price": format_currency(item.unit_price, currency),
                    "subtotal": format_currency(item.subtotal, currency),
                }
                for item in order.items.select_related("tier")
            ],
            "total": format_currency(order.total_amount, currency),
            "tickets": [
                {
                    "tier_name": ticket.tier.name,
                    "reference": str(ticket.id)[:8],
                    "qr_cid": _qr_content_id(ticket),
                }
                for ticket in tickets
            ],
            "receipt_url": links.receipt_url,
            "invoice_url": links.invoice_url,
            "invoice_pdf": links.invoice_pdf,
        }


def _qr_content_id(ticket: Ticket) -> str:
    return f"qr-{ticket.id}"
