"""
Event publisher interface for visit lifecycle events.
"""

from abc import ABC, abstractmethod

from ....domain.events.visit_events import VisitEvent


class EventPublisher(ABC):
    """Delivers committed visit events to interested collaborators."""

    @abstractmethod
    async def publish(self, event: VisitEvent) -> None:
        """Publish one event. Must not raise for subscriber failures."""
        pass
