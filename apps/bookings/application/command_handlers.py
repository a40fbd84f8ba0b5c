"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Guest requests a stay
- ApproveBookingCommand: Host approves; deposit is captured
- DeclineBookingCommand: Host declines; hold is released
- MarkBalancePaidCommand: Host records the balance payment
- CancelBookingCommand: Guest, host or system cancels
- CompleteBookingCommand: Stay is over

Every status change and the payment fields it touched are saved in one
commit. Events are published after that commit.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID
import logging

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange
from shared.infrastructure.db import lock_if_possible
from apps.bookings.domain.availability import check_availability
from apps.bookings.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingDeclined,
    BookingRequested,
)
from apps.bookings.domain.exceptions import DateConflict, GuestLimitExceeded, IllegalTransition
from apps.bookings.domain.pricing import calculate_quote
from apps.bookings.domain.state_machine import (
    BookingEvent,
    BookingStatus,
    derive_payment_status,
    next_status,
)
from apps.bookings.models import Booking
from apps.bookings.services import (
    active_booking_ranges,
    get_bookable_property,
    load_booking_for_update,
    local_today,
    quote_stay,
    rate_card_for,
    stay_policy_for,
    unique_confirmation_code,
)
from apps.payments.orchestrator import PAYMENT_FIELDS, PaymentOrchestrator, PaymentOutcome
from apps.properties.models import Property

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to request a stay

    This is the primary entry point for creating bookings.
    """
    property_id: int
    check_in: date
    check_out: date
    guests_count: int
    guest_name: str
    guest_email: str
    guest_phone: str = ''
    guest_message: str = ''


@dataclass
class ApproveBookingCommand:
    booking_id: UUID


@dataclass
class DeclineBookingCommand:
    booking_id: UUID
    reason: str = ''


@dataclass
class MarkBalancePaidCommand:
    """Host received the balance; deposit_collected also settles a deposit collected by hand."""
    booking_id: UUID
    payment_method: str = Booking.PaymentMethod.CASH
    deposit_collected: bool = False


@dataclass
class CancelBookingCommand:
    booking_id: UUID
    reason: str = ''
    cancelled_by: str = Booking.CancelledBy.GUEST


@dataclass
class CompleteBookingCommand:
    booking_id: UUID
    today: Optional[date] = None


@dataclass
class BookingResult:
    """Resulting booking plus what the payment orchestrator and rotation reported."""
    booking: Booking
    payment: Optional[PaymentOutcome] = None
    credential: Optional[object] = None


class _CalendarChanged(Exception):
    """Another booking was inserted for the property after we read its calendar."""


# Every save after creation goes through one of these
_WORKFLOW_FIELDS = ["status", "updated_at"]


def _save(booking: Booking, *extra_fields: str):
    booking.save(update_fields=sorted(set(_WORKFLOW_FIELDS + PAYMENT_FIELDS + list(extra_fields))))


# ===== Command Handlers =====

class _TransitionHandler:
    """Builds the payment orchestrator on first use so handlers stay cheap to construct."""

    def __init__(self, orchestrator: Optional[PaymentOrchestrator] = None):
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> PaymentOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = PaymentOrchestrator()
        return self._orchestrator


class CreateBookingHandler(_TransitionHandler):
    """
    Handler for CreateBooking command

    This implements the double booking prevention.

    Strategy:
    1. Validate and price the stay without any lock (fast rejection)
    2. Start database transaction (atomic)
    3. Lock the property row (SELECT FOR UPDATE where supported)
    4. Re-run availability against the committed active bookings
    5. Insert the requested booking
    6. Compare-and-swap the property's calendar_version; a lost swap
       means someone else inserted concurrently: roll back and retry
    7. Commit, publish BookingRequested
    8. Open the deposit hold outside the property lock
    """

    def __init__(self, orchestrator: Optional[PaymentOrchestrator] = None, max_attempts: Optional[int] = None):
        super().__init__(orchestrator)
        self.max_attempts = max_attempts or settings.BOOKING_CREATE_MAX_ATTEMPTS

    def handle(self, command: CreateBookingCommand) -> BookingResult:
        logger.info(
            f"Creating booking for property {command.property_id}, "
            f"dates {command.check_in} - {command.check_out}"
        )
        today = local_today()

        property_obj = get_bookable_property(command.property_id)
        if command.guests_count < 1 or command.guests_count > property_obj.max_guests:
            raise GuestLimitExceeded(command.guests_count, property_obj.max_guests)

        # Cheap pre-check, repeated under the lock below
        quote_stay(property_obj, command.check_in, command.check_out, today)

        for attempt in range(1, self.max_attempts + 1):
            try:
                booking = self._insert(command, today)
                break
            except _CalendarChanged:
                logger.warning(
                    f"Calendar of property {command.property_id} changed during creation, "
                    f"attempt {attempt}/{self.max_attempts}"
                )
        else:
            raise DateConflict()

        logger.info(f"Booking requested: {booking.confirmation_code} (ID: {booking.id})")

        payment = self._open_hold(booking.id)
        booking.refresh_from_db()
        return BookingResult(booking=booking, payment=payment)

    def _insert(self, command: CreateBookingCommand, today: date) -> Booking:
        with DjangoUnitOfWork() as uow:
            property_obj = (
                lock_if_possible(Property.objects.filter(pk=command.property_id), of=("self",))
                .select_related("owner")
                .get()
            )
            version = property_obj.calendar_version

            candidates = []
            if command.check_out > command.check_in:
                candidates = active_booking_ranges(
                    property_obj.pk, DateRange(command.check_in, command.check_out)
                )
            dates = check_availability(
                command.check_in,
                command.check_out,
                stay_policy_for(property_obj),
                candidates,
                today,
            )
            quote = calculate_quote(rate_card_for(property_obj), dates)

            booking = Booking(
                confirmation_code=unique_confirmation_code(),
                property=property_obj,
                check_in=dates.start_date,
                check_out=dates.end_date,
                nights=quote.nights,
                guests_count=command.guests_count,
                guest_name=command.guest_name,
                guest_email=command.guest_email,
                guest_phone=command.guest_phone,
                guest_message=command.guest_message,
                nightly_rate=quote.nightly_rate.amount,
                base_amount=quote.base_amount.amount,
                cleaning_fee=quote.cleaning_fee.amount,
                total_amount=quote.total_amount.amount,
                deposit_amount=quote.deposit_amount.amount,
                balance_amount=quote.balance_amount.amount,
                currency=quote.currency,
            )
            booking.save()

            bumped = Property.objects.filter(pk=property_obj.pk, calendar_version=version).update(
                calendar_version=F("calendar_version") + 1
            )
            if not bumped:
                raise _CalendarChanged()

            booking.add_event(BookingRequested(**booking.event_payload(), guest_message=booking.guest_message))
            uow.collect_events(booking)

        return booking

    def _open_hold(self, booking_id) -> Optional[PaymentOutcome]:
        """
        Authorize the deposit after the booking is committed.

        A failure leaves the booking without a hold; approval opens one.
        """
        with DjangoUnitOfWork():
            booking = load_booking_for_update(booking_id)
            if booking.gateway_hold_ref or booking.status != BookingStatus.REQUESTED:
                return None
            outcome = self.orchestrator.open_hold(booking)
            if outcome.succeeded:
                _save(booking)
        return outcome


class ApproveBookingHandler(_TransitionHandler):
    """
    Handler for host approval

    A failed capture does not undo the approval: the booking moves to
    approved with payment still pending and payment_issue set, and the host
    collects the deposit by hand.
    """

    def __init__(self, orchestrator: Optional[PaymentOrchestrator] = None, assign_on_approval: Optional[bool] = None):
        super().__init__(orchestrator)
        if assign_on_approval is None:
            assign_on_approval = settings.ACCESS_ASSIGN_ON_APPROVAL
        self.assign_on_approval = assign_on_approval

    def handle(self, command: ApproveBookingCommand) -> BookingResult:
        logger.info(f"Approving booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = load_booking_for_update(command.booking_id)
            # Raises before any payment call when the booking left requested
            new_status = next_status(booking.status, BookingEvent.APPROVE)

            if not booking.gateway_hold_ref:
                hold = self.orchestrator.open_hold(booking)
                if not hold.succeeded:
                    logger.warning(f"No deposit hold for booking {booking.confirmation_code}: {hold.error}")

            capture = self.orchestrator.capture(booking)

            booking.status = new_status.value
            booking.approved_at = timezone.now()
            _save(booking, "approved_at")

            booking.add_event(BookingApproved(
                **booking.event_payload(),
                payment_issue=capture.capture_failed,
                payment_issue_detail=booking.payment_issue_detail if capture.capture_failed else '',
            ))
            uow.collect_events(booking)

        if capture.capture_failed:
            logger.warning(f"Booking {booking.confirmation_code} approved with payment issue: {capture.error}")
        else:
            logger.info(f"Booking {booking.confirmation_code} approved, deposit captured")

        credential = None
        if self.assign_on_approval and booking.property.rotating_codes_enabled:
            from apps.access.services import assign_credential

            try:
                credential = assign_credential(booking.id)
                booking.refresh_from_db()
            except Exception as e:
                # Approval is committed; the pre-stay sweep assigns later
                logger.error(f"Credential assignment failed for {booking.confirmation_code}: {e}", exc_info=True)

        return BookingResult(booking=booking, payment=capture, credential=credential)


class DeclineBookingHandler(_TransitionHandler):
    """Handler for host decline: release the hold if any, record the reason."""

    def handle(self, command: DeclineBookingCommand) -> BookingResult:
        logger.info(f"Declining booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = load_booking_for_update(command.booking_id)
            new_status = next_status(booking.status, BookingEvent.DECLINE)

            release = self.orchestrator.release_hold(booking, reason="declined by host")

            booking.status = new_status.value
            booking.host_message = command.reason
            booking.declined_at = timezone.now()
            _save(booking, "host_message", "declined_at")

            booking.add_event(BookingDeclined(**booking.event_payload(), reason=command.reason))
            uow.collect_events(booking)

        logger.info(f"Booking {booking.confirmation_code} declined")
        return BookingResult(booking=booking, payment=release)


class MarkBalancePaidHandler(_TransitionHandler):
    """Handler for recording the balance payment (APPROVED -> CONFIRMED)."""

    def handle(self, command: MarkBalancePaidCommand) -> BookingResult:
        logger.info(f"Marking balance paid for booking {command.booking_id} ({command.payment_method})")

        with DjangoUnitOfWork() as uow:
            booking = load_booking_for_update(command.booking_id)
            new_status = next_status(booking.status, BookingEvent.SETTLE_BALANCE)
            now = timezone.now()

            if command.deposit_collected and not booking.deposit_paid:
                booking.deposit_paid = True
                booking.deposit_paid_at = now
                booking.payment_issue = False
                booking.payment_issue_detail = ''

            booking.balance_paid = True
            booking.balance_paid_at = now
            booking.balance_payment_method = command.payment_method
            booking.payment_status = derive_payment_status(booking.deposit_paid, True).value
            booking.status = new_status.value
            booking.confirmed_at = now
            _save(booking, "balance_paid", "balance_paid_at", "balance_payment_method", "confirmed_at")

            booking.add_event(BookingConfirmed(**booking.event_payload(), payment_method=command.payment_method))
            uow.collect_events(booking)

        logger.info(f"Booking {booking.confirmation_code} confirmed, payment {booking.payment_status}")
        return BookingResult(booking=booking)


class CancelBookingHandler(_TransitionHandler):
    """
    Handler for cancelling a booking

    Releases an open hold, or refunds a captured deposit. A payment failure
    flags the booking but the cancellation still goes through.
    """

    def handle(self, command: CancelBookingCommand) -> BookingResult:
        logger.info(f"Cancelling booking {command.booking_id}, by {command.cancelled_by}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = load_booking_for_update(command.booking_id)
            new_status = next_status(booking.status, BookingEvent.CANCEL)

            if booking.has_open_hold:
                payment = self.orchestrator.release_hold(booking, reason=command.reason or "cancelled")
            elif booking.deposit_paid:
                payment = self.orchestrator.refund(booking, reason=command.reason or "cancelled")
            else:
                payment = None

            booking.status = new_status.value
            booking.cancellation_reason = command.reason
            booking.cancelled_by = command.cancelled_by
            booking.cancelled_at = timezone.now()
            _save(booking, "cancellation_reason", "cancelled_by", "cancelled_at")

            refunded = bool(payment and payment.refunded)
            booking.add_event(BookingCancelled(
                **booking.event_payload(),
                reason=command.reason,
                cancelled_by=command.cancelled_by,
                refunded=refunded,
            ))
            uow.collect_events(booking)

        logger.info(f"Booking {booking.confirmation_code} cancelled")
        return BookingResult(booking=booking, payment=payment)


class CompleteBookingHandler(_TransitionHandler):
    """Handler for completing a stay once the checkout date is reached."""

    def handle(self, command: CompleteBookingCommand) -> BookingResult:
        today = command.today or local_today()

        with DjangoUnitOfWork() as uow:
            booking = load_booking_for_update(command.booking_id)
            new_status = next_status(booking.status, BookingEvent.COMPLETE)
            if today < booking.check_out:
                raise IllegalTransition(booking.status, BookingEvent.COMPLETE)

            booking.status = new_status.value
            booking.completed_at = timezone.now()
            _save(booking, "completed_at")

            booking.add_event(BookingCompleted(**booking.event_payload()))
            uow.collect_events(booking)

        logger.info(f"Booking {booking.confirmation_code} completed")
        return BookingResult(booking=booking)
