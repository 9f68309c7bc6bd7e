"""
Checkout metadata frozen onto a Stripe Checkout Session.

Everything fulfillment needs is written into the session's metadata when
checkout starts: the event, the buyer, every selected tier with its unit
price at that moment, and the computed fee figures. Fulfillment decodes
this payload and never re-prices from current tier state, so a price
change after checkout cannot alter a completed purchase.

Stripe metadata values are strings of at most 500 characters, so amounts
are serialized as decimal strings and the selection list is stored as
compact JSON split across tier_selections_0, tier_selections_1, ...

Usage:
    metadata = CheckoutMetadata.from_checkout(event, lines, breakdown, ...)
    StripeAdapter.create_checkout_session(..., metadata=metadata.to_stripe())

    # In the webhook
    metadata = CheckoutMetadata.from_stripe(session["metadata"])
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from ticketing.exceptions import InvalidCheckoutMetadataError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ticketing.inventory import ValidatedLine
    from ticketing.models import Event
    from ticketing.pricing import FeeBreakdown


METADATA_VALUE_MAX_LENGTH = 500
SELECTIONS_KEY_PREFIX = "tier_selections_"
SELECTIONS_CHUNKS_KEY = "tier_selections_chunks"


@dataclass(frozen=True)
class MetadataLine:
    """One selected tier with its locked-in unit price."""

    tier_id: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_compact(self) -> dict[str, Any]:
        return {"t": self.tier_id, "q": self.quantity, "p": str(self.unit_price)}

    @classmethod
    def from_compact(cls, data: dict[str, Any]) -> MetadataLine:
        quantity = int(data["q"])
        if quantity < 1:
            raise ValueError("quantity must be positive")
        return cls(
            tier_id=str(data["t"]),
            quantity=quantity,
            unit_price=Decimal(str(data["p"])),
        )


@dataclass(frozen=True)
class CheckoutMetadata:
    """
    Decoded checkout metadata.

    Attributes:
        event_id: Event being purchased
        buyer_user_id: Signed-in buyer's user id ("" for guests)
        buyer_email: Contact email (checkout form or account)
        buyer_name: Contact name
        lines: Selected tiers with locked-in prices
        subtotal: Sum of line totals
        platform_fee: Platform fee
        organizer_payout: Organizer payout
        fee_percent: Fee percentage applied
        fee_fixed: Fixed fee applied
        currency: ISO 4217 code (lowercase)
        source_app: Storefront tag stored on the order
    """

    event_id: str
    buyer_user_id: str
    buyer_email: str
    buyer_name: str
    lines: list[MetadataLine]
    subtotal: Decimal
    platform_fee: Decimal
    organizer_payout: Decimal
    fee_percent: Decimal
    fee_fixed: Decimal
    currency: str
    source_app: str = field(default="shop")

    @classmethod
    def from_checkout(
        cls,
        event: Event,
        lines: Sequence[ValidatedLine],
        breakdown: FeeBreakdown,
        buyer_user_id: str = "",
        buyer_email: str = "",
        buyer_name: str = "",
        source_app: str = "shop",
    ) -> CheckoutMetadata:
        return cls(
            event_id=str(event.id),
            buyer_user_id=buyer_user_id,
            buyer_email=buyer_email,
            buyer_name=buyer_name[:255],
            lines=[
                MetadataLine(
                    tier_id=str(line.tier_id),
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line in lines
            ],
            subtotal=breakdown.subtotal,
            platform_fee=breakdown.platform_fee,
            organizer_payout=breakdown.organizer_payout,
            fee_percent=breakdown.fee_percent,
            fee_fixed=breakdown.fee_fixed,
            currency=breakdown.currency,
            source_app=source_app,
        )

    @property
    def ticket_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def payout_breakdown(self) -> dict[str, str]:
        """Audit snapshot stored on the Order."""
        return {
            "subtotal": str(self.subtotal),
            "platform_fee": str(self.platform_fee),
            "organizer_payout": str(self.organizer_payout),
            "platform_fee_percent": str(self.fee_percent),
            "platform_fee_fixed": str(self.fee_fixed),
            "currency": self.currency,
        }

    # =========================================================================
    # Stripe encoding
    # =========================================================================

    def to_stripe(self) -> dict[str, str]:
        """Encode as a Stripe metadata dict (string keys and values)."""
        selections = json.dumps(
            [line.to_compact() for line in self.lines],
            separators=(",", ":"),
        )
        chunks = [
            selections[i : i + METADATA_VALUE_MAX_LENGTH]
            for i in range(0, len(selections), METADATA_VALUE_MAX_LENGTH)
        ]

        metadata = {
            "event_id": self.event_id,
            "user_id": self.buyer_user_id,
            "user_email": self.buyer_email,
            "user_name": self.buyer_name,
            "subtotal": str(self.subtotal),
            "platform_fee": str(self.platform_fee),
            "organizer_payout": str(self.organizer_payout),
            "platform_fee_percent": str(self.fee_percent),
            "platform_fee_fixed": str(self.fee_fixed),
            "currency": self.currency,
            "source_app": self.source_app,
            SELECTIONS_CHUNKS_KEY: str(len(chunks)),
        }
        for index, chunk in enumerate(chunks):
            metadata[f"{SELECTIONS_KEY_PREFIX}{index}"] = chunk
        return metadata

    @classmethod
    def from_stripe(cls, metadata: dict[str, Any] | None) -> CheckoutMetadata:
        """
        Decode metadata written by to_stripe.

        Raises:
            InvalidCheckoutMetadataError: Required keys missing or malformed
        """
        metadata = metadata or {}
        if not metadata.get("event_id"):
            raise InvalidCheckoutMetadataError("Checkout metadata has no event_id")

        try:
            chunk_count = int(metadata[SELECTIONS_CHUNKS_KEY])
            selections = "".join(
                metadata[f"{SELECTIONS_KEY_PREFIX}{index}"]
                for index in range(chunk_count)
            )
            lines = [MetadataLine.from_compact(item) for item in json.loads(selections)]
            amounts = {
                name: Decimal(metadata[key])
                for name, key in (
                    ("subtotal", "subtotal"),
                    ("platform_fee", "platform_fee"),
                    ("organizer_payout", "organizer_payout"),
                    ("fee_percent", "platform_fee_percent"),
                    ("fee_fixed", "platform_fee_fixed"),
                )
            }
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise InvalidCheckoutMetadataError(
                f"Checkout metadata is malformed: {e}",
                details={"event_id": metadata.get("event_id")},
            ) from e

        if not lines:
            raise InvalidCheckoutMetadataError("Checkout metadata has no selections")

        return cls(
            event_id=metadata["event_id"],
            buyer_user_id=metadata.get("user_id") or "",
            buyer_email=metadata.get("user_email") or "",
            buyer_name=metadata.get("user_name") or "",
            lines=lines,
            currency=(metadata.get("currency") or "cad").lower(),
            source_app=metadata.get("source_app") or "shop",
            **amounts,
        )
