"""
Base Domain Classes

This module provides the foundational building blocks shared by every app:
- ValueObject: Immutable objects compared by value
- EventRecorder: Mixin letting an aggregate (ORM model or plain object)
  collect domain events that are published after the transaction commits
- DomainEvent: Events that represent something that happened
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


class EventRecorder:
    """
    Mixin for aggregate roots

    Aggregates are the consistency boundaries in DDD.
    They collect domain events that will be published after successful transaction.
    The event list is created lazily so the mixin works on Django models,
    whose __init__ we do not control.
    """

    def _event_buffer(self) -> List['DomainEvent']:
        buffer = self.__dict__.get('_recorded_events')
        if buffer is None:
            buffer = []
            self.__dict__['_recorded_events'] = buffer
        return buffer

    def add_event(self, event: 'DomainEvent'):
        """Add a domain event to be published"""
        self._event_buffer().append(event)

    def clear_events(self):
        """Clear all collected events (called after publishing)"""
        self._event_buffer().clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Get copy of collected events"""
        return list(self._event_buffer())


def _serialize(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ValueObject):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    return value


@dataclass(kw_only=True)
class DomainEvent:
    """
    Base class for domain events

    Domain events represent something that happened in the domain.
    They are used to communicate between bounded contexts.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: UUID | None = None

    def to_dict(self) -> dict:
        """Convert event to a JSON-friendly dictionary for serialization"""
        payload = {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
        for f in fields(self):
            if f.name in payload:
                continue
            payload[f.name] = _serialize(getattr(self, f.name))
        return payload
