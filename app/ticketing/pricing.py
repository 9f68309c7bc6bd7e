"""
Pricing and platform fee calculation.

All money is handled as decimal.Decimal in major currency units (dollars,
not cents) and only converted to Stripe's integer minor units at the edge,
when a Checkout Session is built. Floats never touch an amount.

Formulas:
    subtotal         = sum(unit_price * quantity)
    platform_fee     = subtotal * fee_percent / 100 + fee_fixed
    organizer_payout = subtotal - platform_fee

platform_fee is rounded half-up to the currency's minor unit and payout
is derived from the rounded fee, so fee + payout == subtotal exactly.

Usage:
    from ticketing.pricing import calculate_fees, to_minor_units

    breakdown = calculate_fees(lines, Decimal("5"), Decimal("0"), "cad")
    breakdown.platform_fee_minor  # 500 for a 100.00 subtotal
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable


# Stripe charges these currencies in whole units (no cents)
# https://docs.stripe.com/currencies#zero-decimal
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif",
        "clp",
        "djf",
        "gnf",
        "jpy",
        "kmf",
        "krw",
        "mga",
        "pyg",
        "rwf",
        "ugx",
        "vnd",
        "vuv",
        "xaf",
        "xof",
        "xpf",
    }
)

CURRENCY_SYMBOLS = {
    "cad": "CA$",
    "usd": "$",
    "inr": "₹",
    "gbp": "£",
    "eur": "€",
    "aud": "A$",
    "nzd": "NZ$",
    "sgd": "S$",
    "hkd": "HK$",
    "jpy": "¥",
    "mxn": "MX$",
    "brl": "R$",
}

HUNDRED = Decimal("100")


class PricedLine(Protocol):
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class FeeBreakdown:
    """
    Result of a fee calculation.

    Attributes:
        subtotal: Sum of line totals
        platform_fee: Fee kept by the platform
        organizer_payout: Remainder transferred to the organizer
        fee_percent: Percentage input used
        fee_fixed: Fixed fee input used
        currency: ISO 4217 code (lowercase)
    """

    subtotal: Decimal
    platform_fee: Decimal
    organizer_payout: Decimal
    fee_percent: Decimal
    fee_fixed: Decimal
    currency: str

    @property
    def subtotal_minor(self) -> int:
        return to_minor_units(self.subtotal, self.currency)

    @property
    def platform_fee_minor(self) -> int:
        return to_minor_units(self.platform_fee, self.currency)


def is_zero_decimal_currency(currency: str) -> bool:
    return currency.lower() in ZERO_DECIMAL_CURRENCIES


def minor_unit_exponent(currency: str) -> Decimal:
    """Quantization step for amounts in currency (Decimal("1") or Decimal("0.01"))."""
    return Decimal("1") if is_zero_decimal_currency(currency) else Decimal("0.01")


def quantize_amount(amount: Decimal, currency: str) -> Decimal:
    """Round amount half-up to the currency's smallest unit."""
    return amount.quantize(minor_unit_exponent(currency), rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """
    Convert a major-unit amount to Stripe's integer minor units.

    Most currencies are scaled by 100 (25.00 CAD -> 2500); zero-decimal
    currencies are only rounded (1500 JPY -> 1500).

    Args:
        amount: Amount in major units
        currency: ISO 4217 code

    Returns:
        Integer amount in the currency's smallest unit
    """
    amount = Decimal(amount)
    if is_zero_decimal_currency(currency):
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((amount * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> Decimal:
    """Inverse of to_minor_units (2500 CAD -> Decimal("25.00"))."""
    if is_zero_decimal_currency(currency):
        return Decimal(amount)
    return (Decimal(amount) / HUNDRED).quantize(Decimal("0.01"))


def calculate_subtotal(lines: Iterable[PricedLine]) -> Decimal:
    return sum((line.unit_price * line.quantity for line in lines), Decimal("0"))


def calculate_fees(
    lines: Iterable[PricedLine],
    fee_percent: Decimal,
    fee_fixed: Decimal,
    currency: str,
) -> FeeBreakdown:
    """
    Compute subtotal, platform fee and organizer payout for an order.

    The fee never exceeds the subtotal, so a fixed fee on a free order
    cannot produce a negative payout.

    Args:
        lines: Validated lines carrying unit_price and quantity
        fee_percent: Platform fee percentage (e.g., Decimal("5"))
        fee_fixed: Fixed fee per order in major units
        currency: ISO 4217 code

    Returns:
        FeeBreakdown with all amounts in major units
    """
    fee_percent = Decimal(fee_percent)
    fee_fixed = Decimal(fee_fixed)

    subtotal = calculate_subtotal(lines)
    platform_fee = quantize_amount(subtotal * fee_percent / HUNDRED + fee_fixed, currency)
    platform_fee = min(platform_fee, subtotal)

    return FeeBreakdown(
        subtotal=subtotal,
        platform_fee=platform_fee,
        organizer_payout=subtotal - platform_fee,
        fee_percent=fee_percent,
        fee_fixed=fee_fixed,
        currency=currency.lower(),
    )


def format_currency(amount: Decimal, currency: str = "cad") -> str:
    """
    Format an amount for display in emails (e.g., "CA$1,234.50", "¥1,500").

    Unknown currencies fall back to the uppercase code as prefix.
    """
    currency = currency.lower()
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency.upper()} ")
    amount = Decimal(amount)
    if is_zero_decimal_currency(currency):
        return f"{symbol}{quantize_amount(amount, currency):,.0f}"
    return f"{symbol}{quantize_amount(amount, currency):,.2f}"
