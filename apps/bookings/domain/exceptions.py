"""
Booking domain errors.

Availability and state machine errors are reported to the caller and leave
nothing mutated. Integrity errors (InvalidStateCombination, MoneyDrift) mean
a bug in a caller, never bad user input.
"""

from __future__ import annotations

from datetime import date


class BookingError(Exception):
    """Base class for booking engine errors."""


class InvalidRange(BookingError):
    """Dates missing, reversed, or check-in in the past."""


class StayLengthViolation(BookingError):
    def __init__(self, nights: int, min_nights: int, max_nights: int):
        self.nights = nights
        self.min_nights = min_nights
        self.max_nights = max_nights
        super().__init__(
            f"Stay of {nights} nights is outside the allowed {min_nights}-{max_nights} nights"
        )


class DateConflict(BookingError):
    """
    Requested dates overlap an active booking.

    Carries only the bounds of the blocking range, never who holds it.
    """

    def __init__(self, start: date | None = None, end: date | None = None):
        self.start = start
        self.end = end
        if start and end:
            super().__init__(f"Dates unavailable: blocked from {start.isoformat()} to {end.isoformat()}")
        else:
            super().__init__("Dates unavailable")


class IllegalTransition(BookingError):
    def __init__(self, current, event):
        self.current = current
        self.event = event
        current_value = getattr(current, "value", current)
        event_value = getattr(event, "value", event)
        super().__init__(f"Cannot apply '{event_value}' to a booking in status '{current_value}'")


class NotFound(BookingError):
    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key} not found")


class InvalidStateCombination(BookingError):
    def __init__(self, status, payment_status):
        self.status = status
        self.payment_status = payment_status
        super().__init__(f"Payment status '{payment_status}' is not valid for booking status '{status}'")


class MoneyDrift(BookingError):
    def __init__(self, deposit, balance, total):
        super().__init__(f"deposit {deposit} + balance {balance} != total {total}")


class GuestLimitExceeded(BookingError):
    def __init__(self, guests: int, max_guests: int):
        self.guests = guests
        self.max_guests = max_guests
        super().__init__(f"{guests} guests requested, property sleeps at most {max_guests}")


class PropertyUnavailable(BookingError):
    """Property exists but is not taking bookings."""


class RotationContention(BookingError):
    """The credential rotation cursor kept moving under concurrent assignments."""

    def __init__(self, booking_id, attempts: int):
        self.booking_id = booking_id
        self.attempts = attempts
        super().__init__(f"Rotation cursor busy after {attempts} attempts for booking {booking_id}")
