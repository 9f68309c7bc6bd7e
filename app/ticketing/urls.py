"""
URL configuration for ticketing app.

Ticketing - Checkout:
    POST /checkout/                          - Create Stripe Checkout Session

Ticketing - Orders:
    GET /orders/by-session/{session_id}/     - Order for a checkout session
"""

from django.urls import path

from ticketing.views import CheckoutView, OrderBySessionView

app_name = "ticketing"

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path(
        "orders/by-session/<str:session_id>/",
        OrderBySessionView.as_view(),
        name="order-by-session",
    ),
]
