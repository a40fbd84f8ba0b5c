"""
Payment Orchestrator

Drives the gateway and keeps a booking's payment fields consistent with it.
The orchestrator never touches the workflow status: it mutates payment
fields on the (locked) booking instance it is handed and the caller saves
them together with the status change, so both land in one commit.

Gateway calls carry idempotency keys derived from the booking id, so if the
caller's commit fails the whole step can be retried without a second charge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from apps.bookings.domain.state_machine import BookingStatus, PaymentStatus, derive_payment_status
from shared.domain.value_objects import Money

from .exceptions import (
    CaptureFailed,
    GatewayDeclined,
    GatewayError,
    HoldAlreadyOpen,
    PaymentError,
    RefundNotAllowed,
)
from .gateways import PaymentGateway, get_payment_gateway
from .models import PaymentTransaction

logger = logging.getLogger(__name__)

# Booking columns the orchestrator may change
PAYMENT_FIELDS = [
    "gateway_hold_ref",
    "gateway_charge_ref",
    "gateway_refund_ref",
    "hold_released_at",
    "deposit_paid",
    "deposit_paid_at",
    "payment_status",
    "payment_issue",
    "payment_issue_detail",
    "updated_at",
]


@dataclass
class PaymentOutcome:
    operation: str
    succeeded: bool
    gateway_ref: str = ""
    client_secret: str = ""
    skipped: bool = False
    error: Optional[PaymentError] = None

    @property
    def capture_failed(self) -> bool:
        return isinstance(self.error, CaptureFailed)

    @property
    def refunded(self) -> bool:
        """Money actually went back through the gateway in this call."""
        return self.operation == "refund" and self.succeeded and not self.skipped

    def as_dict(self) -> dict:
        return {
            "operation": self.operation,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "gateway_ref": self.gateway_ref,
            "error": str(self.error) if self.error else None,
        }


class PaymentOrchestrator:
    def __init__(self, gateway: Optional[PaymentGateway] = None):
        self.gateway = gateway or get_payment_gateway()

    @staticmethod
    def _key(booking, operation: str) -> str:
        return f"booking-{booking.id}-{operation}"

    @staticmethod
    def _record(booking, kind: str, amount: Money, succeeded: bool, ref: str = "", error: str = ""):
        PaymentTransaction.objects.create(
            booking=booking,
            kind=kind,
            amount=amount.amount,
            currency=amount.currency,
            succeeded=succeeded,
            gateway_ref=ref or "",
            error_message=error[:500],
        )

    def open_hold(self, booking) -> PaymentOutcome:
        """
        Authorize the deposit. At most once per booking.

        Gateway errors are returned in the outcome; the booking stays
        without a hold and approval opens one later.
        """
        if booking.gateway_hold_ref:
            raise HoldAlreadyOpen(f"Booking {booking.confirmation_code} already has hold {booking.gateway_hold_ref}")

        deposit = booking.deposit
        if deposit.amount == Decimal("0"):
            logger.info(f"Booking {booking.confirmation_code} has no deposit, skipping hold")
            return PaymentOutcome(operation="open_hold", succeeded=True, skipped=True)

        metadata = {
            "booking_id": str(booking.id),
            "confirmation_code": booking.confirmation_code,
            "property_id": booking.property_id,
            "check_in": booking.check_in.isoformat(),
            "check_out": booking.check_out.isoformat(),
        }
        try:
            receipt = self.gateway.open_hold(deposit, metadata, self._key(booking, "hold"))
        except GatewayError as e:
            logger.error(f"Could not open deposit hold for booking {booking.confirmation_code}: {e}")
            self._record(booking, PaymentTransaction.Kind.HOLD, deposit, False, error=str(e))
            return PaymentOutcome(operation="open_hold", succeeded=False, error=e)

        booking.gateway_hold_ref = receipt.ref
        self._record(booking, PaymentTransaction.Kind.HOLD, deposit, True, ref=receipt.ref)
        logger.info(f"Opened hold {receipt.ref} for booking {booking.confirmation_code}")
        return PaymentOutcome(
            operation="open_hold",
            succeeded=True,
            gateway_ref=receipt.ref,
            client_secret=receipt.client_secret,
        )

    def capture(self, booking) -> PaymentOutcome:
        """
        Capture the held deposit.

        Never raises for gateway failures: the outcome carries CaptureFailed
        and the booking is flagged for manual collection.
        """
        deposit = booking.deposit
        if booking.deposit_paid:
            return PaymentOutcome(operation="capture", succeeded=True, skipped=True, gateway_ref=booking.gateway_charge_ref)

        if deposit.amount == Decimal("0"):
            booking.deposit_paid = True
            booking.deposit_paid_at = timezone.now()
            booking.payment_status = derive_payment_status(True, booking.balance_paid).value
            return PaymentOutcome(operation="capture", succeeded=True, skipped=True)

        if not booking.gateway_hold_ref or booking.hold_released_at:
            error = CaptureFailed("No open deposit hold to capture")
            booking.flag_payment_issue("Deposit not authorized; collect manually")
            return PaymentOutcome(operation="capture", succeeded=False, error=error)

        try:
            charge_ref = self.gateway.capture(booking.gateway_hold_ref, self._key(booking, "capture"))
        except GatewayError as e:
            logger.warning(f"Capture failed for booking {booking.confirmation_code}: {e}")
            self._record(booking, PaymentTransaction.Kind.CAPTURE, deposit, False, ref=booking.gateway_hold_ref, error=str(e))
            booking.flag_payment_issue(f"Deposit capture failed: {e}. Collect manually.")
            return PaymentOutcome(operation="capture", succeeded=False, error=CaptureFailed(str(e)))

        booking.deposit_paid = True
        booking.deposit_paid_at = timezone.now()
        booking.gateway_charge_ref = charge_ref
        booking.payment_status = derive_payment_status(True, booking.balance_paid).value
        self._record(booking, PaymentTransaction.Kind.CAPTURE, deposit, True, ref=charge_ref)
        logger.info(f"Captured deposit {deposit} for booking {booking.confirmation_code}")
        return PaymentOutcome(operation="capture", succeeded=True, gateway_ref=charge_ref)

    def release_hold(self, booking, reason: str = "") -> PaymentOutcome:
        """Cancel an un-captured hold. No-op when there is none or it is already released."""
        if not booking.has_open_hold:
            return PaymentOutcome(operation="release_hold", succeeded=True, skipped=True)

        try:
            self.gateway.release(booking.gateway_hold_ref)
        except GatewayError as e:
            logger.error(f"Could not release hold {booking.gateway_hold_ref}: {e}")
            self._record(booking, PaymentTransaction.Kind.RELEASE, booking.deposit, False, ref=booking.gateway_hold_ref, error=str(e))
            booking.flag_payment_issue(f"Deposit hold could not be released: {e}")
            return PaymentOutcome(operation="release_hold", succeeded=False, error=e)

        booking.hold_released_at = timezone.now()
        self._record(booking, PaymentTransaction.Kind.RELEASE, booking.deposit, True, ref=booking.gateway_hold_ref)
        logger.info(f"Released hold {booking.gateway_hold_ref} ({reason or 'no reason'})")
        return PaymentOutcome(operation="release_hold", succeeded=True, gateway_ref=booking.gateway_hold_ref)

    def refund(self, booking, reason: str = "") -> PaymentOutcome:
        """Refund the captured deposit. Only legal once the deposit was actually paid."""
        if not booking.deposit_paid:
            raise RefundNotAllowed(f"Deposit of booking {booking.confirmation_code} was never paid")

        if booking.gateway_refund_ref:
            booking.payment_status = PaymentStatus.REFUNDED.value
            return PaymentOutcome(operation="refund", succeeded=True, skipped=True, gateway_ref=booking.gateway_refund_ref)

        deposit = booking.deposit
        if not booking.gateway_charge_ref:
            if deposit.amount == Decimal("0"):
                return PaymentOutcome(operation="refund", succeeded=True, skipped=True)
            # Collected outside the gateway, so nothing to refund through it
            error = PaymentError("Deposit was collected by hand and cannot be refunded through the gateway")
            booking.flag_payment_issue("Deposit collected by hand; refund manually")
            logger.warning(f"Booking {booking.confirmation_code} needs a manual deposit refund")
            return PaymentOutcome(operation="refund", succeeded=False, skipped=True, error=error)

        try:
            refund_ref = self.gateway.refund(booking.gateway_charge_ref, deposit, self._key(booking, "refund"))
        except GatewayError as e:
            logger.error(f"Refund failed for booking {booking.confirmation_code}: {e}")
            self._record(booking, PaymentTransaction.Kind.REFUND, deposit, False, ref=booking.gateway_charge_ref, error=str(e))
            booking.flag_payment_issue(f"Deposit refund failed: {e}. Refund manually.")
            return PaymentOutcome(operation="refund", succeeded=False, error=e)

        booking.gateway_refund_ref = refund_ref
        booking.payment_status = PaymentStatus.REFUNDED.value
        self._record(booking, PaymentTransaction.Kind.REFUND, deposit, True, ref=refund_ref)
        logger.info(f"Refunded deposit {deposit} for booking {booking.confirmation_code} ({reason or 'no reason'})")
        return PaymentOutcome(operation="refund", succeeded=True, gateway_ref=refund_ref)

    # ----- Gateway-initiated changes (webhooks) -----

    def record_gateway_capture(self, booking, charge_ref: str) -> PaymentOutcome:
        """The deposit was captured at the gateway, by us or from its dashboard."""
        if booking.deposit_paid:
            return PaymentOutcome(operation="capture", succeeded=True, skipped=True, gateway_ref=booking.gateway_charge_ref)

        deposit = booking.deposit
        self._record(booking, PaymentTransaction.Kind.CAPTURE, deposit, True, ref=charge_ref)
        if booking.status in (BookingStatus.REQUESTED.value, BookingStatus.DECLINED.value):
            booking.flag_payment_issue(f"Deposit captured at the gateway while booking is {booking.status}; refund manually")
            logger.warning(f"Unexpected capture {charge_ref} for {booking.status} booking {booking.confirmation_code}")
            return PaymentOutcome(operation="capture", succeeded=False, skipped=True, error=CaptureFailed("Booking was not approved"))

        booking.deposit_paid = True
        booking.deposit_paid_at = timezone.now()
        booking.gateway_charge_ref = charge_ref
        if booking.status == BookingStatus.CANCELLED.value:
            booking.flag_payment_issue("Deposit captured after cancellation; refund manually")
        else:
            booking.payment_status = derive_payment_status(True, booking.balance_paid).value
            booking.payment_issue = False
            booking.payment_issue_detail = ""
        logger.info(f"Gateway reported capture {charge_ref} for booking {booking.confirmation_code}")
        return PaymentOutcome(operation="capture", succeeded=True, gateway_ref=charge_ref)

    def record_gateway_release(self, booking) -> PaymentOutcome:
        """The hold was cancelled at the gateway (expired or cancelled from its dashboard)."""
        if not booking.has_open_hold:
            return PaymentOutcome(operation="release_hold", succeeded=True, skipped=True)

        booking.hold_released_at = timezone.now()
        self._record(booking, PaymentTransaction.Kind.RELEASE, booking.deposit, True, ref=booking.gateway_hold_ref)
        if booking.status in (BookingStatus.REQUESTED.value, BookingStatus.APPROVED.value):
            booking.flag_payment_issue("Deposit hold was cancelled at the gateway; collect manually")
        logger.info(f"Gateway released hold {booking.gateway_hold_ref} for booking {booking.confirmation_code}")
        return PaymentOutcome(operation="release_hold", succeeded=True, gateway_ref=booking.gateway_hold_ref)

    def record_gateway_failure(self, booking, message: str) -> PaymentOutcome:
        """The guest's authorization of the deposit failed."""
        error = GatewayDeclined(message or "Deposit authorization failed")
        self._record(booking, PaymentTransaction.Kind.HOLD, booking.deposit, False, ref=booking.gateway_hold_ref or "", error=str(error))
        if not booking.deposit_paid and booking.status in (BookingStatus.REQUESTED.value, BookingStatus.APPROVED.value):
            booking.flag_payment_issue(f"Deposit authorization failed: {error}")
        logger.warning(f"Gateway reported failed authorization for booking {booking.confirmation_code}: {error}")
        return PaymentOutcome(operation="open_hold", succeeded=False, error=error)

    def record_gateway_refund(self, booking, refund_ref: str) -> PaymentOutcome:
        """The captured deposit was refunded at the gateway."""
        if booking.gateway_refund_ref or not booking.deposit_paid:
            return PaymentOutcome(operation="refund", succeeded=True, skipped=True, gateway_ref=booking.gateway_refund_ref)

        booking.gateway_refund_ref = refund_ref
        self._record(booking, PaymentTransaction.Kind.REFUND, booking.deposit, True, ref=refund_ref)
        if booking.status == BookingStatus.CANCELLED.value:
            booking.payment_status = PaymentStatus.REFUNDED.value
        else:
            # Refunded is only a valid payment state for cancelled bookings
            booking.flag_payment_issue("Deposit was refunded at the gateway; review the booking")
        logger.info(f"Gateway reported refund {refund_ref} for booking {booking.confirmation_code}")
        return PaymentOutcome(operation="refund", succeeded=True, gateway_ref=refund_ref)
