"""Unit tests for the pricing calculator."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.test import SimpleTestCase

from apps.bookings.domain.pricing import RateCard, calculate_quote
from shared.domain.value_objects import DateRange, Money


def stay(nights: int) -> DateRange:
    start = date(2026, 7, 1)
    return DateRange(start, start + timedelta(days=nights))


def card(rate: str, cleaning: str = "0", fraction: str = "0.10") -> RateCard:
    return RateCard(Money(Decimal(rate)), Money(Decimal(cleaning)), Decimal(fraction))


class CalculateQuoteTests(SimpleTestCase):
    def test_four_nights_with_cleaning_fee(self) -> None:
        quote = calculate_quote(card("175.00", "100.00"), stay(4))

        self.assertEqual(quote.nights, 4)
        self.assertEqual(quote.base_amount.amount, Decimal("700.00"))
        self.assertEqual(quote.total_amount.amount, Decimal("800.00"))
        self.assertEqual(quote.deposit_amount.amount, Decimal("80.00"))
        self.assertEqual(quote.balance_amount.amount, Decimal("720.00"))

    def test_deposit_rounds_half_up_to_the_cent(self) -> None:
        # 3 x 33.35 = 100.05, 10% = 10.005
        quote = calculate_quote(card("33.35"), stay(3))
        self.assertEqual(quote.deposit_amount.amount, Decimal("10.01"))
        self.assertEqual(quote.balance_amount.amount, Decimal("90.04"))

    def test_deposit_plus_balance_equals_total(self) -> None:
        for rate, fraction in [("99.99", "0.15"), ("1.01", "0.333"), ("250.50", "0.5"), ("12.34", "0.07")]:
            for nights in (1, 2, 5, 13):
                quote = calculate_quote(card(rate, "19.99", fraction), stay(nights))
                self.assertEqual(
                    quote.deposit_amount.amount + quote.balance_amount.amount,
                    quote.total_amount.amount,
                    (rate, fraction, nights),
                )

    def test_zero_and_full_deposit_fractions(self) -> None:
        zero = calculate_quote(card("100", fraction="0"), stay(2))
        self.assertEqual(zero.deposit_amount.amount, Decimal("0.00"))
        self.assertEqual(zero.balance_amount.amount, Decimal("200.00"))

        full = calculate_quote(card("100", fraction="1"), stay(2))
        self.assertEqual(full.deposit_amount.amount, Decimal("200.00"))
        self.assertEqual(full.balance_amount.amount, Decimal("0.00"))

    def test_fraction_outside_unit_interval_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            calculate_quote(card("100", fraction="1.5"), stay(2))

    def test_as_dict_uses_string_amounts(self) -> None:
        data = calculate_quote(card("175.00", "100.00"), stay(4)).as_dict()
        self.assertEqual(data["total_amount"], "800.00")
        self.assertEqual(data["currency"], "USD")
