"""
Unit of Work Pattern

Wraps a database transaction around a booking workflow step and makes sure
domain events are handed to the message bus only after the commit succeeded.
A rolled back step publishes nothing.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    One atomic block plus the events its aggregates recorded.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = load_booking_for_update(booking_id)
            booking.status = next_status(booking.status, BookingEvent.APPROVE).value
            booking.add_event(BookingApproved(...))
            booking.save()
            uow.collect_events(booking)
        # Events are published once the outermost transaction commits

    Nested units share the outer transaction; their events wait for it.
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._atomic = None
        self._bus = bus

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing for when the outermost transaction commits.

        transaction.on_commit() drops the callback if the transaction is
        rolled back later, so a failed commit never leaks events.
        """
        events, self._events = self._events, []
        logger.debug(f"Committing unit of work with {len(events)} events")
        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        if self._events:
            logger.warning(f"Rolling back unit of work, discarding {len(self._events)} events")
        self._events = []

    def collect_events(self, aggregate):
        """Move all pending events from an aggregate into this unit of work."""
        new_events = aggregate.events
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(f"Collected {len(new_events)} events from {aggregate.__class__.__name__} {aggregate.pk}")

    def _publish_events(self, events: List[DomainEvent]):
        if self._bus is None:
            from shared.application.message_bus import message_bus
            bus = message_bus
        else:
            bus = self._bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            bus.publish_events(events)
        except Exception as e:
            # State is already committed; a lost event only costs a notification
            logger.error(f"Error publishing events: {e}", exc_info=True)
