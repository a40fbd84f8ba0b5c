"""Message bus subscribers for booking events.

Each handler only enqueues a Celery task with the event's serialized
payload; delivery happens out of band.
"""

from __future__ import annotations

import logging

from apps.bookings.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingDeclined,
    BookingLifecycleEvent,
    BookingRequested,
    CredentialAssigned,
    PreStayWindowReached,
)
from shared.application.message_bus import message_bus

logger = logging.getLogger(__name__)

NOTIFIED_EVENTS = (
    BookingRequested,
    BookingApproved,
    BookingDeclined,
    BookingConfirmed,
    BookingCancelled,
    BookingCompleted,
    CredentialAssigned,
    PreStayWindowReached,
)


def enqueue_booking_notification(event: BookingLifecycleEvent) -> None:
    from .tasks import deliver_booking_event

    event_type = type(event).__name__
    deliver_booking_event.delay(event_type, event.to_dict())
    logger.debug(f"Queued {event_type} notification for booking {event.confirmation_code}")


def register_handlers(bus=message_bus) -> None:
    for event_type in NOTIFIED_EVENTS:
        bus.register_event_handler(event_type, enqueue_booking_notification)
