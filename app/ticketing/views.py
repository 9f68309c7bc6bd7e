"""
API views for ticket checkout and order confirmation.

Provides:
- CheckoutView: Create a Stripe Checkout Session for a tier selection
- OrderBySessionView: Fetch the order for a completed checkout session

Both endpoints accept guests. Signed-in buyers are attached to the order.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema, inline_serializer
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from payments.adapters import is_retryable_stripe_error
from payments.exceptions import StripeError

from ticketing.serializers import (
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    OrderSerializer,
)
from ticketing.services import CheckoutService, OrderLookupService

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    Start checkout for an event.

    POST /api/v1/ticketing/checkout/

    Response:
        200 OK: {"url": ..., "sessionId": ..., "expiresAt": ...}
        400 Bad Request: Invalid body, selection rejected, organizer not set up
        404 Not Found: Event does not exist
        502 Bad Gateway: Stripe rejected the request
        503 Service Unavailable: Stripe temporarily unavailable
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="create_ticket_checkout",
        summary="Create checkout session",
        description=(
            "Validate a tier selection against current inventory and sales "
            "windows, then create a Stripe Checkout Session. Redirect the "
            "buyer to the returned URL."
        ),
        request=CheckoutRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=CheckoutResponseSerializer,
                description="Checkout session created",
            ),
            400: OpenApiResponse(description="Selection rejected"),
            404: OpenApiResponse(description="Event not found"),
            502: OpenApiResponse(description="Payment processor error"),
            503: OpenApiResponse(description="Payment processor unavailable"),
        },
        tags=["Ticketing - Checkout"],
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "error": "Invalid checkout request",
                    "error_code": "VALIDATION_ERROR",
                    "details": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = serializer.validated_data
        user = request.user if request.user.is_authenticated else None

        try:
            result = CheckoutService.create_checkout_session(
                event_id=data["eventId"],
                selections=serializer.get_selections(),
                contact_email=data.get("contactEmail") or None,
                contact_name=data.get("contactName") or None,
                user=user,
            )
        except StripeError as e:
            logger.error(
                "Stripe error during checkout",
                extra={
                    "event_id": str(data["eventId"]),
                    "error_code": e.error_code,
                    "error": e.message,
                },
            )
            if is_retryable_stripe_error(e):
                return Response(
                    {
                        "error": "Payment service is temporarily unavailable. "
                        "Please try again.",
                        "error_code": e.error_code,
                    },
                    status=status.HTTP_503_SERVICE_UNAVAILABLE,
                )
            return Response(
                {
                    "error": "Could not start checkout. Please try again later.",
                    "error_code": e.error_code,
                },
                status=status.HTTP_502_BAD_GATEWAY,
            )
        except BaseApplicationError as e:
            return Response(
                e.to_dict(),
                status=getattr(e, "status_code", status.HTTP_400_BAD_REQUEST),
            )

        output = CheckoutResponseSerializer(
            {
                "url": result.url,
                "sessionId": result.session_id,
                "expiresAt": result.expires_at,
            }
        )
        return Response(output.data)


class OrderBySessionView(APIView):
    """
    Order confirmation lookup.

    GET /api/v1/ticketing/orders/by-session/{session_id}/

    The buyer arrives here from Stripe's success redirect, usually before
    the webhook has been processed, so the lookup waits briefly.

    Response:
        200 OK: Order with items and tickets
        202 Accepted: {"status": "processing"} while fulfillment is pending
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="get_order_by_checkout_session",
        summary="Get order by checkout session",
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order"),
            202: OpenApiResponse(
                response=inline_serializer(
                    name="OrderProcessing",
                    fields={"status": serializers.CharField()},
                ),
                description="Payment received, tickets still being issued",
            ),
        },
        tags=["Ticketing - Orders"],
    )
    def get(self, request, session_id: str):
        order = OrderLookupService.wait_for_order(session_id)
        if order is None:
            return Response(
                {"status": "processing"},
                status=status.HTTP_202_ACCEPTED,
            )
        return Response(OrderSerializer(order).data)
