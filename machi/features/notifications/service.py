"""
Notification delivery: an in-app notification row per recipient, then a
best-effort Expo push to every recipient with a registered push token.

Push failures are logged and never raised; a failed insert propagates so
the lifecycle can log it.
"""

import httpx

from machi.config import settings
from machi.features.notifications.events import DomainEvent
from machi.features.notifications.repository import NotificationRepository
from machi.features.notifications.templates import RenderedNotification, render_notification
from machi.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Expo accepts at most 100 messages per request
EXPO_BATCH_SIZE = 100


class NotificationService:
    """NotificationDispatcher backed by Postgres and the Expo push API."""

    def __init__(
        self,
        repository: NotificationRepository,
        http_client: httpx.AsyncClient,
        push_enabled: bool | None = None,
        push_url: str | None = None,
    ):
        self.repository = repository
        self.http_client = http_client
        if push_enabled is None:
            push_enabled = settings.PUSH_NOTIFICATIONS_ENABLED
        self.push_enabled = push_enabled
        self.push_url = push_url or settings.EXPO_PUSH_URL

    async def dispatch(self, event: DomainEvent) -> None:
        recipients = list(dict.fromkeys(event.recipient_ids))
        if not recipients:
            return

        notification = render_notification(event)
        stored = await self.repository.insert_many(recipients, notification)
        logger.info(
            "Notifications stored",
            type=notification.type,
            recipient_count=stored,
            recruitment_id=event.recruitment_id,
        )

        if self.push_enabled:
            await self._push(recipients, notification)

    async def _push(self, user_ids: list[str], notification: RenderedNotification) -> None:
        try:
            tokens = await self.repository.get_push_tokens(user_ids)
        except Exception as e:
            logger.warning("Push token lookup failed", type=notification.type, error=str(e))
            return

        if not tokens:
            return

        messages = [
            {
                "to": token,
                "title": notification.title,
                "body": notification.body,
                "data": notification.data,
                "sound": "default",
            }
            for token in tokens
        ]

        for start in range(0, len(messages), EXPO_BATCH_SIZE):
            batch = messages[start : start + EXPO_BATCH_SIZE]
            await self._send_batch(batch, notification.type)

    async def _send_batch(self, batch: list[dict], notification_type: str) -> None:
        try:
            response = await self.http_client.post(
                self.push_url,
                json=batch,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=settings.PUSH_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Push request failed",
                type=notification_type,
                batch_size=len(batch),
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        if not response.is_success:
            logger.warning(
                "Push request rejected",
                type=notification_type,
                status_code=response.status_code,
                batch_size=len(batch),
            )
            return

        try:
            tickets = response.json().get("data") or []
        except ValueError:
            logger.warning("Push response was not JSON", type=notification_type)
            return

        failed = [ticket for ticket in tickets if ticket.get("status") == "error"]
        if failed:
            logger.warning(
                "Push tickets reported errors",
                type=notification_type,
                failed_count=len(failed),
                first_error=failed[0].get("message"),
            )
        else:
            logger.debug("Push batch sent", type=notification_type, batch_size=len(batch))
