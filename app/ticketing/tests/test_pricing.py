"""
Tests for fee calculation and minor unit conversion.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from ticketing.pricing import (
    calculate_fees,
    format_currency,
    from_minor_units,
    is_zero_decimal_currency,
    to_minor_units,
)


def line(price, quantity):
    return SimpleNamespace(unit_price=Decimal(price), quantity=quantity)


# =============================================================================
# Minor Units
# =============================================================================


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            ("25.00", "cad", 2500),
            ("0.01", "usd", 1),
            ("19.995", "cad", 2000),
            ("1500", "jpy", 1500),
            ("1500", "JPY", 1500),
            ("0", "cad", 0),
        ],
    )
    def test_to_minor_units(self, amount, currency, expected):
        assert to_minor_units(Decimal(amount), currency) == expected

    def test_from_minor_units(self):
        assert from_minor_units(2500, "cad") == Decimal("25.00")
        assert from_minor_units(1500, "jpy") == Decimal("1500")

    def test_zero_decimal_lookup_is_case_insensitive(self):
        assert is_zero_decimal_currency("KRW")
        assert not is_zero_decimal_currency("cad")


# =============================================================================
# Fees
# =============================================================================


class TestCalculateFees:
    def test_percentage_fee(self):
        breakdown = calculate_fees(
            [line("25.00", 2), line("50.00", 1)],
            fee_percent=Decimal("5"),
            fee_fixed=Decimal("0"),
            currency="cad",
        )

        assert breakdown.subtotal == Decimal("100.00")
        assert breakdown.platform_fee == Decimal("5.00")
        assert breakdown.organizer_payout == Decimal("95.00")
        assert breakdown.platform_fee_minor == 500
        assert breakdown.subtotal_minor == 10000

    def test_percentage_plus_fixed_fee(self):
        breakdown = calculate_fees(
            [line("40.00", 1)],
            fee_percent=Decimal("2.5"),
            fee_fixed=Decimal("0.30"),
            currency="usd",
        )

        assert breakdown.platform_fee == Decimal("1.30")
        assert breakdown.organizer_payout == Decimal("38.70")

    def test_fee_rounds_half_up(self):
        # 33.30 * 7.5% = 2.4975
        breakdown = calculate_fees(
            [line("33.30", 1)],
            fee_percent=Decimal("7.5"),
            fee_fixed=Decimal("0"),
            currency="cad",
        )

        assert breakdown.platform_fee == Decimal("2.50")

    def test_fee_and_payout_sum_to_subtotal(self):
        breakdown = calculate_fees(
            [line("17.99", 3), line("4.45", 7)],
            fee_percent=Decimal("3.33"),
            fee_fixed=Decimal("0.17"),
            currency="cad",
        )

        assert breakdown.platform_fee + breakdown.organizer_payout == breakdown.subtotal

    def test_zero_decimal_currency_rounds_to_whole_units(self):
        breakdown = calculate_fees(
            [line("1500", 3)],
            fee_percent=Decimal("3.3"),
            fee_fixed=Decimal("0"),
            currency="jpy",
        )

        assert breakdown.platform_fee == Decimal("149")
        assert breakdown.platform_fee_minor == 149
        assert breakdown.subtotal_minor == 4500

    def test_fee_capped_at_subtotal(self):
        breakdown = calculate_fees(
            [line("0.00", 2)],
            fee_percent=Decimal("5"),
            fee_fixed=Decimal("1.00"),
            currency="cad",
        )

        assert breakdown.platform_fee == Decimal("0.00")
        assert breakdown.organizer_payout == Decimal("0.00")

    def test_currency_normalized_to_lowercase(self):
        breakdown = calculate_fees(
            [line("10.00", 1)], Decimal("5"), Decimal("0"), "CAD"
        )

        assert breakdown.currency == "cad"


class TestFormatCurrency:
    def test_known_symbols(self):
        assert format_currency(Decimal("1234.5"), "cad") == "CA$1,234.50"
        assert format_currency(Decimal("1500"), "jpy") == "¥1,500"

    def test_unknown_currency_uses_code(self):
        assert format_currency(Decimal("10"), "chf") == "CHF 10.00"
