"""
Stripe webhook reconciliation.

Stripe reports changes made outside our own calls: a guest whose card fails
to authorize, a hold that expires, a capture or refund done from the Stripe
dashboard. Each event is matched to a booking by its PaymentIntent id and
applied through the orchestrator under the booking row lock. Replayed
events are no-ops because every update checks the booking's current state.
"""

from __future__ import annotations

import logging
from typing import Optional

from apps.bookings.models import Booking
from apps.bookings.services import load_booking_for_update
from shared.application.uow import DjangoUnitOfWork

from .orchestrator import PAYMENT_FIELDS, PaymentOrchestrator, PaymentOutcome

logger = logging.getLogger(__name__)

HANDLED_EVENTS = (
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
    "charge.refunded",
)


def _field(obj, name: str):
    try:
        return obj[name]
    except (KeyError, TypeError):
        return None


def _intent_id(event_type: str, obj) -> Optional[str]:
    if event_type.startswith("charge."):
        return _field(obj, "payment_intent")
    return _field(obj, "id")


def _refund_ref(charge) -> str:
    refunds = _field(_field(charge, "refunds"), "data") or []
    if refunds:
        return _field(refunds[0], "id") or _field(charge, "id")
    return _field(charge, "id")


def _failure_message(intent) -> str:
    return _field(_field(intent, "last_payment_error"), "message") or ""


def reconcile_stripe_event(event, orchestrator: Optional[PaymentOrchestrator] = None) -> Optional[PaymentOutcome]:
    """Apply one verified Stripe event. Returns None when it concerns no booking."""
    event_type = event["type"]
    if event_type not in HANDLED_EVENTS:
        logger.debug(f"Ignoring Stripe event {event_type}")
        return None

    obj = event["data"]["object"]
    intent_id = _intent_id(event_type, obj)
    booking_id = (
        Booking.objects.filter(gateway_hold_ref=intent_id).values_list("id", flat=True).first()
        if intent_id else None
    )
    if booking_id is None:
        logger.info(f"Stripe event {event_type} for {intent_id} matches no booking")
        return None

    orchestrator = orchestrator or PaymentOrchestrator()
    with DjangoUnitOfWork():
        booking = load_booking_for_update(booking_id)
        if event_type == "payment_intent.succeeded":
            outcome = orchestrator.record_gateway_capture(booking, intent_id)
        elif event_type == "payment_intent.payment_failed":
            outcome = orchestrator.record_gateway_failure(booking, _failure_message(obj))
        elif event_type == "payment_intent.canceled":
            outcome = orchestrator.record_gateway_release(booking)
        else:
            outcome = orchestrator.record_gateway_refund(booking, _refund_ref(obj))
        booking.save(update_fields=PAYMENT_FIELDS)

    logger.info(f"Reconciled {event_type} for booking {booking.confirmation_code}: {outcome.as_dict()}")
    return outcome
