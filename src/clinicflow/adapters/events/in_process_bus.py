"""
In-process event bus: audit line per event, then fan-out to subscribers.
"""

import logging
from collections import defaultdict
from typing import Awaitable, Callable, DefaultDict, List, Optional, Type

from ...application.ports.services.event_publisher import EventPublisher
from ...domain.events.visit_events import VisitEvent
from ...observability.audit import audit_log_event
from ...observability.metrics import record_error

logger = logging.getLogger("clinicflow")

Subscriber = Callable[[VisitEvent], Awaitable[None]]


class InProcessEventBus(EventPublisher):
    """Delivers events to subscribers registered per event type.

    Events reach the bus only after the visit change is committed, so a
    failing subscriber is logged and counted but cannot undo anything.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[Type[VisitEvent], List[Subscriber]] = defaultdict(list)

    def subscribe(self, handler: Subscriber, event_type: Optional[Type[VisitEvent]] = None) -> None:
        """Register ``handler`` for ``event_type`` (all events when omitted)."""
        self._subscribers[event_type or VisitEvent].append(handler)

    async def publish(self, event: VisitEvent) -> None:
        await audit_log_event(
            event=event.event_type,
            patient_id=event.patient_id,
            visit_id=event.visit_id,
            payload=event.to_payload(),
        )

        for event_type, handlers in list(self._subscribers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in handlers:
                try:
                    await handler(event)
                except Exception as e:
                    record_error(type(e).__name__, f"subscriber.{event.event_type}")
                    logger.error(
                        f"Subscriber {getattr(handler, '__qualname__', handler)} failed "
                        f"on {event.event_type} for visit {event.visit_id}: {e}",
                        exc_info=True,
                    )
