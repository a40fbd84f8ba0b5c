"""
Availability Checker

Pure predicates deciding whether a date range may be booked. Fetching the
candidate set of active ranges is the storage layer's job
(see apps.bookings.services.active_booking_ranges); nothing here touches the
database or takes locks.

Ranges are half-open [check_in, check_out): a checkout and a check-in on the
same day do not conflict.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from shared.domain.value_objects import DateRange

from .exceptions import DateConflict, InvalidRange, StayLengthViolation


@dataclass(frozen=True)
class StayPolicy:
    min_nights: int
    max_nights: int


def ranges_conflict(a: DateRange, b: DateRange) -> bool:
    """True iff the two half-open ranges share at least one night."""
    return a.overlaps_with(b)


def validate_range(check_in: Optional[date], check_out: Optional[date], today: date) -> DateRange:
    if check_in is None or check_out is None:
        raise InvalidRange("Both check-in and check-out dates are required")
    if check_out <= check_in:
        raise InvalidRange("Check-out must be after check-in")
    if check_in < today:
        raise InvalidRange("Check-in cannot be in the past")
    return DateRange(check_in, check_out)


def validate_stay_length(dates: DateRange, policy: StayPolicy) -> int:
    nights = len(dates)
    if nights < policy.min_nights or nights > policy.max_nights:
        raise StayLengthViolation(nights, policy.min_nights, policy.max_nights)
    return nights


def find_conflict(dates: DateRange, active_ranges: Iterable[DateRange]) -> Optional[DateRange]:
    for other in active_ranges:
        if ranges_conflict(dates, other):
            return other
    return None


def check_availability(
    check_in: Optional[date],
    check_out: Optional[date],
    policy: StayPolicy,
    active_ranges: Iterable[DateRange],
    today: date,
) -> DateRange:
    """
    Run the three checks in order: well-formed range, stay length, conflicts.

    Returns the validated range or raises the first failing check's error.
    """
    dates = validate_range(check_in, check_out, today)
    validate_stay_length(dates, policy)
    conflict = find_conflict(dates, active_ranges)
    if conflict is not None:
        raise DateConflict(conflict.start_date, conflict.end_date)
    return dates
