"""
Pricing Calculator

Quote = nightly rate x nights + cleaning fee; the deposit is a fraction of
the total rounded half-up to the cent and the balance is the remainder, so
deposit + balance always equals total exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.value_objects import DateRange, Money


@dataclass(frozen=True)
class RateCard:
    nightly_rate: Money
    cleaning_fee: Money
    deposit_fraction: Decimal


@dataclass(frozen=True)
class PriceQuote:
    nights: int
    nightly_rate: Money
    base_amount: Money
    cleaning_fee: Money
    total_amount: Money
    deposit_amount: Money
    balance_amount: Money

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    def as_dict(self) -> dict:
        return {
            "nights": self.nights,
            "nightly_rate": str(self.nightly_rate.amount),
            "base_amount": str(self.base_amount.amount),
            "cleaning_fee": str(self.cleaning_fee.amount),
            "total_amount": str(self.total_amount.amount),
            "deposit_amount": str(self.deposit_amount.amount),
            "balance_amount": str(self.balance_amount.amount),
            "currency": self.currency,
        }


def calculate_quote(rate_card: RateCard, dates: DateRange) -> PriceQuote:
    fraction = Decimal(str(rate_card.deposit_fraction))
    if fraction < 0 or fraction > 1:
        raise ValueError(f"Deposit fraction must be within [0, 1], got {fraction}")

    nights = len(dates)
    base = (rate_card.nightly_rate * nights).rounded()
    cleaning = rate_card.cleaning_fee.rounded()
    total = base + cleaning
    deposit = (total * fraction).rounded()
    balance = total - deposit

    return PriceQuote(
        nights=nights,
        nightly_rate=rate_card.nightly_rate,
        base_amount=base,
        cleaning_fee=cleaning,
        total_amount=total,
        deposit_amount=deposit,
        balance_amount=balance,
    )
