"""
Booking State Machine

Workflow status and payment status are separate enumerations. The
transition table below is the only way to move a booking between workflow
states; VALID_PAYMENT_STATES documents which (status, payment_status)
pairs may be persisted together.
"""

from __future__ import annotations

from enum import Enum

from .exceptions import IllegalTransition, InvalidStateCombination


class _ValueEnum(str, Enum):
    def __str__(self):
        return self.value


class BookingStatus(_ValueEnum):
    REQUESTED = "requested"
    APPROVED = "approved"
    DECLINED = "declined"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(_ValueEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class BookingEvent(_ValueEnum):
    APPROVE = "approve"
    DECLINE = "decline"
    SETTLE_BALANCE = "settle_balance"
    CANCEL = "cancel"
    COMPLETE = "complete"


INITIAL_STATUS = BookingStatus.REQUESTED

# Statuses that occupy calendar nights
ACTIVE_STATUSES = frozenset({
    BookingStatus.REQUESTED,
    BookingStatus.APPROVED,
    BookingStatus.CONFIRMED,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.DECLINED,
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
})

TRANSITIONS: dict[tuple[BookingStatus, BookingEvent], BookingStatus] = {
    (BookingStatus.REQUESTED, BookingEvent.APPROVE): BookingStatus.APPROVED,
    (BookingStatus.REQUESTED, BookingEvent.DECLINE): BookingStatus.DECLINED,
    (BookingStatus.REQUESTED, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.APPROVED, BookingEvent.SETTLE_BALANCE): BookingStatus.CONFIRMED,
    (BookingStatus.APPROVED, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
}

VALID_PAYMENT_STATES: dict[BookingStatus, frozenset[PaymentStatus]] = {
    BookingStatus.REQUESTED: frozenset({PaymentStatus.PENDING}),
    # pending while a failed capture awaits manual collection
    BookingStatus.APPROVED: frozenset({PaymentStatus.PENDING, PaymentStatus.PARTIAL}),
    BookingStatus.DECLINED: frozenset({PaymentStatus.PENDING}),
    BookingStatus.CONFIRMED: frozenset({PaymentStatus.PARTIAL, PaymentStatus.PAID}),
    BookingStatus.COMPLETED: frozenset({PaymentStatus.PARTIAL, PaymentStatus.PAID}),
    BookingStatus.CANCELLED: frozenset(PaymentStatus),
}


def next_status(current, event) -> BookingStatus:
    """Return the status `event` leads to from `current`, or raise IllegalTransition."""
    current = BookingStatus(current)
    event = BookingEvent(event)
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise IllegalTransition(current, event) from None


def allowed_events(current) -> list[BookingEvent]:
    current = BookingStatus(current)
    return [event for (status, event) in TRANSITIONS if status == current]


def is_terminal(status) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def validate_combination(status, payment_status) -> None:
    status = BookingStatus(status)
    payment_status = PaymentStatus(payment_status)
    if payment_status not in VALID_PAYMENT_STATES[status]:
        raise InvalidStateCombination(status.value, payment_status.value)


def derive_payment_status(deposit_paid: bool, balance_paid: bool) -> PaymentStatus:
    if deposit_paid and balance_paid:
        return PaymentStatus.PAID
    if deposit_paid or balance_paid:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING
