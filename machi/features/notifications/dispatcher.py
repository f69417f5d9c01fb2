"""
NotificationDispatcher: the single seam between the recruitment lifecycle
and notification delivery.
"""

from typing import Protocol

from machi.features.notifications.events import DomainEvent


class NotificationDispatcher(Protocol):
    async def dispatch(self, event: DomainEvent) -> None:
        """Deliver one event to its recipients. May raise; callers swallow."""
        ...
