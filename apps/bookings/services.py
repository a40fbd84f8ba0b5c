"""Storage-side helpers for the booking engine.

The availability and pricing rules live in `apps.bookings.domain`; this
module only fetches what they need and adapts property rows to them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.properties.models import Property
from shared.domain.value_objects import SUPPORTED_CURRENCIES, DateRange, Money
from shared.infrastructure.db import lock_if_possible

from .domain.availability import StayPolicy, check_availability
from .domain.exceptions import NotFound, PropertyUnavailable
from .domain.pricing import PriceQuote, RateCard, calculate_quote
from .models import Booking


def local_today() -> date:
    return timezone.localdate()


def stay_policy_for(property_obj: Property) -> StayPolicy:
    return StayPolicy(min_nights=property_obj.min_nights, max_nights=property_obj.max_nights)


def rate_card_for(property_obj: Property) -> RateCard:
    return RateCard(
        nightly_rate=Money(property_obj.base_price, property_obj.currency),
        cleaning_fee=Money(property_obj.cleaning_fee, property_obj.currency),
        deposit_fraction=Decimal(property_obj.deposit_fraction),
    )


def get_bookable_property(property_id) -> Property:
    try:
        property_obj = Property.objects.select_related("owner").get(pk=property_id)
    except (Property.DoesNotExist, ValueError):
        raise NotFound("Property", property_id) from None
    if not property_obj.is_bookable:
        raise PropertyUnavailable(f"Property {property_id} is not accepting bookings")
    if property_obj.currency not in SUPPORTED_CURRENCIES:
        raise PropertyUnavailable(f"Property {property_id} is priced in unsupported currency {property_obj.currency}")
    return property_obj


def active_booking_ranges(property_id, dates: DateRange, exclude_booking_id=None) -> list[DateRange]:
    """Ranges of active bookings overlapping `dates`, read through the (property, dates) index."""
    queryset = Booking.objects.filter(property_id=property_id).active().overlapping(dates)
    if exclude_booking_id is not None:
        queryset = queryset.exclude(pk=exclude_booking_id)
    return [
        DateRange(check_in, check_out)
        for check_in, check_out in queryset.order_by("check_in").values_list("check_in", "check_out")
    ]


def quote_stay(
    property_obj: Property,
    check_in: Optional[date],
    check_out: Optional[date],
    today: Optional[date] = None,
) -> tuple[DateRange, PriceQuote]:
    """
    Validate a candidate stay and price it.

    Raises InvalidRange, StayLengthViolation or DateConflict. Takes no locks;
    creation re-runs this under the property lock.
    """
    today = today or local_today()
    candidates: list[DateRange] = []
    if check_in and check_out and check_out > check_in:
        candidates = active_booking_ranges(property_obj.pk, DateRange(check_in, check_out))
    dates = check_availability(check_in, check_out, stay_policy_for(property_obj), candidates, today)
    return dates, calculate_quote(rate_card_for(property_obj), dates)


def unique_confirmation_code() -> str:
    code = Booking.generate_confirmation_code()
    while Booking.objects.filter(confirmation_code=code).exists():
        code = Booking.generate_confirmation_code()
    return code


def load_booking_for_update(booking_id) -> Booking:
    """Fetch a booking with only its own row locked (never the property row)."""
    try:
        booking = (
            lock_if_possible(
                Booking.objects.select_related("property__owner").filter(pk=booking_id),
                of=("self",),
            )
            .first()
        )
    except (ValueError, ValidationError):
        booking = None
    if booking is None:
        raise NotFound("Booking", booking_id)
    return booking
