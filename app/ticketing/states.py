"""
Status choices for ticketing models.

Statuses are plain TextChoices: transitions beyond fulfillment (cancelling
an event, voiding or scanning a ticket) happen outside the checkout
pipeline and are not enforced here.
"""

from django.db import models


class EventStatus(models.TextChoices):
    """
    Publication status of an Event.

    Only PUBLISHED events accept checkouts.
    """

    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"


class OrderStatus(models.TextChoices):
    """
    Status of an Order.

    Orders are only created once payment is confirmed, so every order
    written by fulfillment starts COMPLETED.
    """

    COMPLETED = "completed", "Completed"


class TicketStatus(models.TextChoices):
    """Admission status of a single Ticket."""

    VALID = "valid", "Valid"
    VOID = "void", "Void"
    USED = "used", "Used"
