"""
Message Bus

In-process event dispatch. Apps subscribe handlers in their
``AppConfig.ready`` and the unit of work publishes after commit.
"""

from typing import Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """One event type, any number of handlers"""

    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler):
        handlers = self._handlers.setdefault(event_type, [])
        # AppConfig.ready may run more than once in tests
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Subscribed {handler.__name__} to {event_type.__name__}")

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler):
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    def publish_events(self, events: List[DomainEvent]):
        """
        Call every handler for every event.

        The transaction has already committed when this runs, so a failing
        handler is logged and the remaining handlers still run.
        """
        for event in events:
            handlers = self.handlers_for(type(event))
            if not handlers:
                logger.debug(f"No handlers for {event.event_type}")
                continue

            logger.info(f"Publishing {event.event_type} ({event.event_id})")
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Handler {handler.__name__} failed for {event.event_type}: {e}",
                        exc_info=True,
                    )


message_bus = MessageBus()
