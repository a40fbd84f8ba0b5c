"""Celery tasks for notification delivery."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import deliver_event

logger = logging.getLogger(__name__)


@shared_task(name="notifications.deliver_booking_event")
def deliver_booking_event(event_type: str, payload: dict) -> dict[str, int]:
    """
    Deliver guest and host messages for one booking event.

    Failures are logged and swallowed; the transition that produced the
    event is already committed.
    """
    try:
        result = deliver_event(event_type, payload)
    except Exception as e:
        logger.error(
            f"Error delivering {event_type} for booking {payload.get('confirmation_code')}: {e}",
            exc_info=True,
        )
        return {"emails": 0, "failed": 0, "notices": 0, "error": 1}

    logger.info(f"Delivered {event_type} for booking {payload.get('confirmation_code')}: {result}")
    return result
