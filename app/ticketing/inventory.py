"""
Inventory validation for ticket selections.

validate_selections checks a buyer's selection against a snapshot of tier
state. It reserves nothing: two buyers can both pass validation for the
last ticket. The race is settled at fulfillment time by
TicketTier.decrement_inventory, which is the only authoritative check.

Checks, per selection and in this order:
    1. TierNotFoundError - tier absent or belongs to another event
    2. QuantityOutOfRangeError - quantity < 1 or > tier.max_per_order
    3. InsufficientInventoryError - quantity > tier.remaining_quantity
    4. SalesNotStartedError - tier.sales_start_at is in the future
    5. SalesEndedError - tier.sales_end_at is in the past (the instant itself is open)

The first failing selection aborts the whole request.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from django.utils import timezone

from ticketing.exceptions import (
    CheckoutValidationError,
    InsufficientInventoryError,
    QuantityOutOfRangeError,
    SalesEndedError,
    SalesNotStartedError,
    TierNotFoundError,
)
from ticketing.models import TicketTier

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from ticketing.models import Event


@dataclass(frozen=True)
class TierSelection:
    """A (tier, quantity) pair as submitted by the buyer."""

    tier_id: UUID
    quantity: int


@dataclass(frozen=True)
class ValidatedLine:
    """
    A selection that passed validation, with its price locked in.

    Attributes:
        tier: The tier as read during validation
        quantity: Requested quantity
        unit_price: tier.price at validation time
    """

    tier: TicketTier
    quantity: int
    unit_price: Decimal

    @property
    def tier_id(self) -> UUID:
        return self.tier.id

    @property
    def tier_name(self) -> str:
        return self.tier.name

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def validate_selections(
    event: Event,
    selections: Sequence[TierSelection],
    now: datetime | None = None,
) -> list[ValidatedLine]:
    """
    Validate every selection for event, all-or-nothing.

    Args:
        event: Event being purchased
        selections: Buyer's tier selections
        now: Reference time for sales windows (defaults to timezone.now())

    Returns:
        One ValidatedLine per selection, in submission order

    Raises:
        CheckoutValidationError: Empty selection or a tier selected twice
        TierNotFoundError, QuantityOutOfRangeError,
        InsufficientInventoryError, SalesNotStartedError, SalesEndedError
    """
    if not selections:
        raise CheckoutValidationError(
            "Select at least one ticket tier",
            error_code="EMPTY_SELECTION",
        )

    tier_ids = [selection.tier_id for selection in selections]
    if len(set(tier_ids)) != len(tier_ids):
        raise CheckoutValidationError(
            "Each ticket tier may only be selected once",
            error_code="DUPLICATE_TIER",
        )

    now = now or timezone.now()
    tiers = {
        tier.id: tier
        for tier in TicketTier.objects.filter(event=event, id__in=tier_ids)
    }

    lines = []
    for selection in selections:
        tier = tiers.get(selection.tier_id)
        lines.append(_validate_selection(tier, selection, now))
    return lines


def _validate_selection(
    tier: TicketTier | None,
    selection: TierSelection,
    now: datetime,
) -> ValidatedLine:
    if tier is None:
        raise TierNotFoundError(
            f"Tier {selection.tier_id} not found",
            details={"tier_id": str(selection.tier_id)},
        )

    if selection.quantity < 1 or selection.quantity > tier.max_per_order:
        raise QuantityOutOfRangeError(
            f'Quantity for "{tier.name}" must be between 1 and {tier.max_per_order}',
            details={
                "tier_id": str(tier.id),
                "quantity": selection.quantity,
                "max_per_order": tier.max_per_order,
            },
        )

    if selection.quantity > tier.remaining_quantity:
        raise InsufficientInventoryError(
            f'Only {tier.remaining_quantity} "{tier.name}" tickets remaining',
            details={
                "tier_id": str(tier.id),
                "quantity": selection.quantity,
                "remaining": tier.remaining_quantity,
            },
        )

    if tier.sales_start_at and tier.sales_start_at > now:
        raise SalesNotStartedError(
            f'Sales for "{tier.name}" have not started yet',
            details={
                "tier_id": str(tier.id),
                "sales_start_at": tier.sales_start_at.isoformat(),
            },
        )

    if tier.sales_end_at and tier.sales_end_at < now:
        raise SalesEndedError(
            f'Sales for "{tier.name}" have ended',
            details={
                "tier_id": str(tier.id),
                "sales_end_at": tier.sales_end_at.isoformat(),
            },
        )

    return ValidatedLine(tier=tier, quantity=selection.quantity, unit_price=tier.price)
