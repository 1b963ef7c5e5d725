"""
Base Domain Classes

Building blocks shared by every app:
- ValueObject: immutable objects compared by value
- Aggregate: consistency boundary that records domain events
- DomainEvent: something that happened, published after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


class Aggregate:
    """
    Base class for aggregate roots

    Aggregates collect domain events while they change. The unit of work
    pulls them out and publishes them once the transaction has committed.
    Subclasses must expose an ``id``.
    """

    id = None

    def _pending_events(self) -> List['DomainEvent']:
        if not hasattr(self, '_events'):
            self._events = []
        return self._events

    def add_event(self, event: 'DomainEvent'):
        self._pending_events().append(event)

    def clear_events(self):
        self._pending_events().clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Copy of the events recorded so far"""
        return list(self._pending_events())


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Subclasses add their own fields; all of them must have defaults so
    the base fields can stay keyword-only in practice.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    aggregate_id: Optional[UUID] = None

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict:
        """Convert event to a JSON friendly dictionary"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.event_type,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
