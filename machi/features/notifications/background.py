"""
Fire-and-forget delivery on top of any NotificationDispatcher.

dispatch() schedules the wrapped dispatcher on the running loop and returns
immediately, so a request never waits for the notification insert or the
push round-trip. Failures are logged when the task finishes.
"""

import asyncio

from machi.features.notifications.dispatcher import NotificationDispatcher
from machi.features.notifications.events import DomainEvent
from machi.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class BackgroundDispatcher:
    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher
        # Strong references keep scheduled deliveries alive until they finish
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def dispatch(self, event: DomainEvent) -> None:
        task = asyncio.create_task(self._deliver(event), name=f"notify:{event.event_type}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, event: DomainEvent) -> None:
        try:
            await self.dispatcher.dispatch(event)
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                event_type=event.event_type,
                recruitment_id=event.recruitment_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for scheduled deliveries; cancel whatever is left after timeout."""
        if not self._tasks:
            return

        _, unfinished = await asyncio.wait(set(self._tasks), timeout=timeout)
        if not unfinished:
            return

        for task in unfinished:
            task.cancel()
        await asyncio.gather(*unfinished, return_exceptions=True)
        logger.warning("Notification deliveries cancelled", count=len(unfinished))
