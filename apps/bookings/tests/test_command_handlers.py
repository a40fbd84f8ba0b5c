"""Tests for the booking use cases: creation, approval, decline, payment, cancellation."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.core import mail
from django.db.models import F
from django.test import TestCase

from apps.bookings.application.command_handlers import (
    ApproveBookingCommand,
    ApproveBookingHandler,
    CancelBookingCommand,
    CancelBookingHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    DeclineBookingCommand,
    DeclineBookingHandler,
    MarkBalancePaidCommand,
    MarkBalancePaidHandler,
)
from apps.bookings.domain.events import BookingCompleted
from apps.bookings.domain.exceptions import (
    DateConflict,
    GuestLimitExceeded,
    IllegalTransition,
    NotFound,
    PropertyUnavailable,
)
from apps.bookings.models import Booking
from apps.bookings.services import active_booking_ranges
from apps.payments.models import PaymentTransaction
from apps.payments.tests.fakes import RecordingPaymentGateway
from apps.properties.models import Property
from shared.application.uow import DjangoUnitOfWork

from .factories import days_from_today, make_booking, make_credentials, make_property


class HandlerTestCase(TestCase):
    def setUp(self) -> None:
        RecordingPaymentGateway.reset()
        self.property = make_property()

    def create(self, check_in_days: int = 10, nights: int = 4, **overrides) -> Booking:
        check_in = days_from_today(check_in_days)
        fields = {
            "property_id": self.property.id,
            "check_in": check_in,
            "check_out": check_in + timedelta(days=nights),
            "guests_count": 2,
            "guest_name": "Ada Guest",
            "guest_email": "ada@example.com",
        }
        fields.update(overrides)
        return CreateBookingHandler().handle(CreateBookingCommand(**fields)).booking

    def approve(self, booking: Booking):
        return ApproveBookingHandler().handle(ApproveBookingCommand(booking_id=booking.id))


class CreateBookingTests(HandlerTestCase):
    def test_request_is_priced_and_holds_the_deposit(self) -> None:
        check_in = days_from_today(10)
        result = CreateBookingHandler().handle(CreateBookingCommand(
            property_id=self.property.id,
            check_in=check_in,
            check_out=check_in + timedelta(days=4),
            guests_count=2,
            guest_name="Ada Guest",
            guest_email="ada@example.com",
        ))
        booking = result.booking

        self.assertEqual(booking.status, "requested")
        self.assertEqual(booking.payment_status, "pending")
        self.assertEqual(booking.nights, 4)
        self.assertEqual(booking.total_amount, Decimal("800.00"))
        self.assertEqual(booking.deposit_amount, Decimal("80.00"))
        self.assertEqual(booking.balance_amount, Decimal("720.00"))
        self.assertTrue(booking.confirmation_code.startswith("RFD-"))
        self.assertTrue(booking.gateway_hold_ref.startswith("pi_test_"))
        self.assertTrue(result.payment.client_secret.endswith("_secret"))

        operation, amount, key = RecordingPaymentGateway.calls[0]
        self.assertEqual(operation, "open_hold")
        self.assertEqual(amount.amount, Decimal("80.00"))
        self.assertEqual(key, f"booking-{booking.id}-hold")

        self.property.refresh_from_db()
        self.assertEqual(self.property.calendar_version, 1)

    def test_overlapping_request_is_rejected(self) -> None:
        self.create(check_in_days=10, nights=4)
        with self.assertRaises(DateConflict):
            self.create(check_in_days=12, nights=4)
        self.assertEqual(Booking.objects.count(), 1)

    def test_back_to_back_requests_are_allowed(self) -> None:
        self.create(check_in_days=10, nights=4)
        self.create(check_in_days=14, nights=2)
        self.create(check_in_days=8, nights=2)
        self.assertEqual(Booking.objects.count(), 3)

    def test_inactive_bookings_do_not_block_dates(self) -> None:
        first = self.create(check_in_days=10, nights=4)
        DeclineBookingHandler().handle(DeclineBookingCommand(booking_id=first.id))

        second = self.create(check_in_days=10, nights=4)
        self.assertEqual(second.status, "requested")

    def test_guest_limit(self) -> None:
        with self.assertRaises(GuestLimitExceeded):
            self.create(guests_count=5)

    def test_inactive_property_is_unavailable(self) -> None:
        self.property.status = Property.Status.INACTIVE
        self.property.save()
        with self.assertRaises(PropertyUnavailable):
            self.create()

    def test_unsupported_currency_is_unavailable(self) -> None:
        Property.objects.filter(pk=self.property.pk).update(currency="KZT")
        with self.assertRaises(PropertyUnavailable):
            self.create()
        self.assertFalse(Booking.objects.exists())

    def test_unknown_property(self) -> None:
        with self.assertRaises(NotFound):
            self.create(property_id=999999)

    def test_failed_hold_still_records_the_request(self) -> None:
        RecordingPaymentGateway.fail("open_hold")

        booking = self.create()

        self.assertEqual(booking.status, "requested")
        self.assertIsNone(booking.gateway_hold_ref)
        self.assertTrue(
            PaymentTransaction.objects.filter(booking=booking, kind="hold", succeeded=False).exists()
        )

    def test_zero_deposit_skips_the_hold(self) -> None:
        self.property.deposit_fraction = Decimal("0")
        self.property.save()

        booking = self.create()

        self.assertEqual(booking.deposit_amount, Decimal("0.00"))
        self.assertIsNone(booking.gateway_hold_ref)
        self.assertEqual(RecordingPaymentGateway.calls, [])

    def test_request_notifies_guest_and_host(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            booking = self.create()

        recipients = sorted(m.to[0] for m in mail.outbox)
        self.assertEqual(recipients, sorted(["ada@example.com", self.property.owner.email]))
        self.assertTrue(any(booking.confirmation_code in m.subject for m in mail.outbox))


class CalendarRaceTests(HandlerTestCase):
    """Another insert lands between reading calendar_version and swapping it."""

    def racing_ranges(self, always: bool):
        calls = []

        def ranges(property_id, dates, exclude_booking_id=None):
            if always or not calls:
                Property.objects.filter(pk=property_id).update(calendar_version=F("calendar_version") + 1)
            calls.append(dates)
            return active_booking_ranges(property_id, dates, exclude_booking_id)

        return ranges, calls

    def test_lost_calendar_swap_is_retried(self) -> None:
        ranges, calls = self.racing_ranges(always=False)

        with mock.patch("apps.bookings.application.command_handlers.active_booking_ranges", side_effect=ranges):
            booking = self.create()

        self.assertEqual(len(calls), 2)
        self.assertEqual(booking.status, "requested")
        self.assertEqual(Booking.objects.count(), 1)
        self.property.refresh_from_db()
        self.assertEqual(self.property.calendar_version, 1)

    def test_calendar_that_keeps_changing_ends_in_conflict(self) -> None:
        ranges, calls = self.racing_ranges(always=True)
        handler = CreateBookingHandler(max_attempts=3)
        check_in = days_from_today(10)

        with mock.patch("apps.bookings.application.command_handlers.active_booking_ranges", side_effect=ranges):
            with self.assertRaises(DateConflict):
                handler.handle(CreateBookingCommand(
                    property_id=self.property.id,
                    check_in=check_in,
                    check_out=check_in + timedelta(days=3),
                    guests_count=2,
                    guest_name="Ada Guest",
                    guest_email="ada@example.com",
                ))

        self.assertEqual(len(calls), 3)
        self.assertFalse(Booking.objects.exists())
        self.assertEqual(RecordingPaymentGateway.calls, [])
        self.property.refresh_from_db()
        self.assertEqual(self.property.calendar_version, 0)


class ApproveBookingTests(HandlerTestCase):
    def test_approval_captures_the_deposit(self) -> None:
        booking = self.create()
        result = self.approve(booking)

        booking.refresh_from_db()
        self.assertEqual(booking.status, "approved")
        self.assertEqual(booking.payment_status, "partial")
        self.assertTrue(booking.deposit_paid)
        self.assertFalse(booking.payment_issue)
        self.assertIsNotNone(booking.approved_at)
        self.assertTrue(result.payment.succeeded)
        self.assertIn(("capture", booking.gateway_hold_ref, f"booking-{booking.id}-capture"), RecordingPaymentGateway.calls)

    def test_second_approval_is_rejected_without_capturing_again(self) -> None:
        booking = self.create()
        self.approve(booking)

        with self.assertRaises(IllegalTransition) as ctx:
            self.approve(booking)

        self.assertEqual(str(ctx.exception.current), "approved")
        self.assertEqual(RecordingPaymentGateway.operations().count("capture"), 1)
        self.assertEqual(PaymentTransaction.objects.filter(booking=booking, kind="capture").count(), 1)

    def test_capture_failure_still_approves(self) -> None:
        booking = self.create()
        RecordingPaymentGateway.fail("capture")

        result = self.approve(booking)

        booking.refresh_from_db()
        self.assertEqual(booking.status, "approved")
        self.assertEqual(booking.payment_status, "pending")
        self.assertFalse(booking.deposit_paid)
        self.assertTrue(booking.payment_issue)
        self.assertIn("capture failed", booking.payment_issue_detail)
        self.assertTrue(result.payment.capture_failed)

    def test_approval_opens_a_missing_hold(self) -> None:
        RecordingPaymentGateway.fail("open_hold")
        booking = self.create()
        RecordingPaymentGateway.reset()

        self.approve(booking)

        booking.refresh_from_db()
        self.assertEqual(RecordingPaymentGateway.operations(), ["open_hold", "capture"])
        self.assertTrue(booking.deposit_paid)

    def test_zero_deposit_is_settled_on_approval(self) -> None:
        self.property.deposit_fraction = Decimal("0")
        self.property.save()
        booking = self.create()

        self.approve(booking)

        booking.refresh_from_db()
        self.assertTrue(booking.deposit_paid)
        self.assertEqual(booking.payment_status, "partial")
        self.assertEqual(RecordingPaymentGateway.calls, [])

    def test_approval_assigns_credential_when_enabled(self) -> None:
        self.property.rotating_codes_enabled = True
        self.property.save()
        make_credentials(self.property, "1111", "2222")
        booking = self.create()

        result = ApproveBookingHandler(assign_on_approval=True).handle(ApproveBookingCommand(booking_id=booking.id))

        self.assertTrue(result.credential.assigned)
        self.assertEqual(result.booking.access_credential.code, "1111")

    def test_unknown_booking(self) -> None:
        with self.assertRaises(NotFound):
            ApproveBookingHandler().handle(ApproveBookingCommand(booking_id="not-a-uuid"))


class DeclineBookingTests(HandlerTestCase):
    def test_decline_releases_the_hold(self) -> None:
        booking = self.create()
        hold_ref = booking.gateway_hold_ref

        result = DeclineBookingHandler().handle(DeclineBookingCommand(booking_id=booking.id, reason="Owner stay"))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "declined")
        self.assertEqual(booking.payment_status, "pending")
        self.assertEqual(booking.host_message, "Owner stay")
        self.assertIsNotNone(booking.hold_released_at)
        self.assertFalse(booking.has_open_hold)
        self.assertTrue(result.payment.succeeded)
        self.assertIn(("release", hold_ref, None), RecordingPaymentGateway.calls)
        self.assertNotIn("capture", RecordingPaymentGateway.operations())

    def test_decline_after_approval_is_illegal(self) -> None:
        booking = self.create()
        self.approve(booking)
        with self.assertRaises(IllegalTransition):
            DeclineBookingHandler().handle(DeclineBookingCommand(booking_id=booking.id))

    def test_failed_release_flags_the_booking(self) -> None:
        booking = self.create()
        RecordingPaymentGateway.fail_unavailable("release")

        DeclineBookingHandler().handle(DeclineBookingCommand(booking_id=booking.id))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "declined")
        self.assertTrue(booking.payment_issue)
        self.assertIsNone(booking.hold_released_at)


class MarkBalancePaidTests(HandlerTestCase):
    def test_balance_confirms_the_booking(self) -> None:
        booking = self.create()
        self.approve(booking)

        MarkBalancePaidHandler().handle(MarkBalancePaidCommand(booking_id=booking.id, payment_method="card"))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "confirmed")
        self.assertEqual(booking.payment_status, "paid")
        self.assertTrue(booking.balance_paid)
        self.assertEqual(booking.balance_payment_method, "card")
        self.assertIsNotNone(booking.confirmed_at)

    def test_manual_deposit_resolves_a_failed_capture(self) -> None:
        booking = self.create()
        RecordingPaymentGateway.fail("capture")
        self.approve(booking)

        MarkBalancePaidHandler().handle(MarkBalancePaidCommand(booking_id=booking.id, deposit_collected=True))

        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, "paid")
        self.assertTrue(booking.deposit_paid)
        self.assertFalse(booking.payment_issue)

    def test_balance_without_deposit_is_partial(self) -> None:
        booking = self.create()
        RecordingPaymentGateway.fail("capture")
        self.approve(booking)

        MarkBalancePaidHandler().handle(MarkBalancePaidCommand(booking_id=booking.id))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "confirmed")
        self.assertEqual(booking.payment_status, "partial")
        self.assertTrue(booking.payment_issue)

    def test_requested_booking_cannot_be_settled(self) -> None:
        booking = self.create()
        with self.assertRaises(IllegalTransition):
            MarkBalancePaidHandler().handle(MarkBalancePaidCommand(booking_id=booking.id))


class CancelBookingTests(HandlerTestCase):
    def test_cancelling_a_request_releases_the_hold(self) -> None:
        booking = self.create()

        result = CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.id, reason="Plans changed"))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "cancelled")
        self.assertEqual(booking.cancelled_by, "guest")
        self.assertEqual(result.payment.operation, "release_hold")
        self.assertNotIn("refund", RecordingPaymentGateway.operations())

    def test_cancelling_after_capture_refunds_the_deposit(self) -> None:
        booking = self.create()
        self.approve(booking)

        result = CancelBookingHandler().handle(CancelBookingCommand(
            booking_id=booking.id, cancelled_by=Booking.CancelledBy.HOST,
        ))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "cancelled")
        self.assertEqual(booking.payment_status, "refunded")
        self.assertTrue(booking.gateway_refund_ref.startswith("re_test_"))
        self.assertEqual(result.payment.operation, "refund")
        self.assertIn(("refund", booking.gateway_charge_ref, f"booking-{booking.id}-refund"), RecordingPaymentGateway.calls)

    def test_failed_refund_still_cancels(self) -> None:
        booking = self.create()
        self.approve(booking)
        RecordingPaymentGateway.fail_unavailable("refund")

        CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.id))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "cancelled")
        self.assertEqual(booking.payment_status, "partial")
        self.assertTrue(booking.payment_issue)

    def test_cancelled_booking_frees_the_dates(self) -> None:
        booking = self.create()
        CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.id))
        self.create()
        self.assertEqual(Booking.objects.active().count(), 1)

    def test_cancelling_twice_is_illegal(self) -> None:
        booking = self.create()
        CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.id))
        with self.assertRaises(IllegalTransition):
            CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.id))

    def test_deposit_collected_by_hand_is_flagged_not_refunded(self) -> None:
        booking = self.create()
        RecordingPaymentGateway.fail("capture")
        self.approve(booking)
        MarkBalancePaidHandler().handle(MarkBalancePaidCommand(booking_id=booking.id, deposit_collected=True))

        result = CancelBookingHandler().handle(CancelBookingCommand(
            booking_id=booking.id, cancelled_by=Booking.CancelledBy.HOST,
        ))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "cancelled")
        self.assertFalse(result.payment.refunded)
        self.assertEqual(booking.payment_status, "paid")
        self.assertTrue(booking.payment_issue)
        self.assertIn("refund manually", booking.payment_issue_detail)
        self.assertNotIn("refund", RecordingPaymentGateway.operations())

    def test_zero_deposit_cancellation_reports_no_refund(self) -> None:
        self.property.deposit_fraction = Decimal("0")
        self.property.save()
        booking = self.create()
        self.approve(booking)

        result = CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.id))

        booking.refresh_from_db()
        self.assertFalse(result.payment.refunded)
        self.assertFalse(booking.payment_issue)


class CompleteBookingTests(HandlerTestCase):
    def confirmed_booking(self) -> Booking:
        return make_booking(
            self.property,
            check_in=days_from_today(-4),
            nights=3,
            status="confirmed",
            payment_status="paid",
            deposit_paid=True,
            balance_paid=True,
        )

    def test_completes_after_checkout(self) -> None:
        booking = self.confirmed_booking()

        CompleteBookingHandler().handle(CompleteBookingCommand(booking_id=booking.id))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "completed")
        self.assertIsNotNone(booking.completed_at)

    def test_cannot_complete_before_checkout(self) -> None:
        booking = self.confirmed_booking()
        with self.assertRaises(IllegalTransition):
            CompleteBookingHandler().handle(CompleteBookingCommand(
                booking_id=booking.id, today=booking.check_out - timedelta(days=1),
            ))


class HappyPathTests(HandlerTestCase):
    def test_request_to_completion(self) -> None:
        booking = self.create(check_in_days=1, nights=2)
        self.approve(booking)
        MarkBalancePaidHandler().handle(MarkBalancePaidCommand(booking_id=booking.id))
        CompleteBookingHandler().handle(CompleteBookingCommand(
            booking_id=booking.id, today=booking.check_out,
        ))

        booking.refresh_from_db()
        self.assertEqual(booking.status, "completed")
        self.assertEqual(booking.payment_status, "paid")
        self.assertEqual(booking.deposit_amount + booking.balance_amount, booking.total_amount)
        self.assertEqual(RecordingPaymentGateway.operations(), ["open_hold", "capture"])


class UnitOfWorkTests(HandlerTestCase):
    def test_events_are_published_only_after_commit(self) -> None:
        bus = mock.Mock()
        booking = make_booking(self.property)

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with DjangoUnitOfWork(bus=bus) as uow:
                    booking.add_event(BookingCompleted(**booking.event_payload()))
                    uow.collect_events(booking)
                    raise RuntimeError("step failed")
        bus.publish_events.assert_not_called()

        with self.captureOnCommitCallbacks(execute=True):
            with DjangoUnitOfWork(bus=bus) as uow:
                booking.add_event(BookingCompleted(**booking.event_payload()))
                uow.collect_events(booking)
            bus.publish_events.assert_not_called()

        (events,), _ = bus.publish_events.call_args
        self.assertEqual([type(e) for e in events], [BookingCompleted])
        self.assertEqual(booking.events, [])
