"""
Unit of Work

Wraps a Django atomic block. Domain events recorded during the block are
handed to the message bus through ``transaction.on_commit``, so nothing
downstream ever sees an event for a rolled back write.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Usage:
        with DjangoUnitOfWork() as uow:
            inventory = inventory_repo.get(room_type_id, dates, lock=True)
            inventory.allocate(reservation_id, booking_id, dates, rooms_booked)
            inventory_repo.save(inventory)
            uow.collect_events(inventory)
        # events are published here, after commit
    """

    def __init__(self, using=None):
        self._using = using
        self._events: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self._schedule_publish()
            else:
                logger.warning(
                    f"Rolling back unit of work ({exc_type.__name__}), "
                    f"discarding {len(self._events)} events"
                )
                self._events.clear()
        finally:
            # Releases the transaction on every exit path
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def collect_events(self, aggregate):
        """Move every pending event off an aggregate"""
        new_events = aggregate.events
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} ({aggregate.id})"
            )

    def record(self, event: DomainEvent):
        """Record an event that is not owned by an aggregate"""
        self._events.append(event)

    def _schedule_publish(self):
        events = self._events.copy()
        self._events.clear()
        if events:
            transaction.on_commit(lambda: self._publish(events), using=self._using)

    @staticmethod
    def _publish(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")
        message_bus.publish_events(events)
