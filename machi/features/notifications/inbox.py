"""
Reading and acknowledging the notifications a user has received.
"""

from machi.errors import ForbiddenError, NotFoundError, ValidationError
from machi.features.notifications.models import Notification
from machi.features.notifications.repository import NotificationInboxRepository
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.pagination import Page

logger = get_logger(__name__)

PAGE_LIMIT_MAX = 100


class NotificationInbox:
    def __init__(self, repository: NotificationInboxRepository):
        self.repository = repository

    async def list(
        self, user_id: str, page: int = 1, limit: int = 20, unread_only: bool = False
    ) -> Page[Notification]:
        if page < 1 or not 1 <= limit <= PAGE_LIMIT_MAX:
            raise ValidationError(f"page must be positive and limit between 1 and {PAGE_LIMIT_MAX}")
        return await self.repository.list_for_user(user_id, page, limit, unread_only)

    async def unread_count(self, user_id: str) -> int:
        return await self.repository.count_unread(user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        notification = await self.repository.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.user_id != user_id:
            raise ForbiddenError("You cannot mark this notification as read")
        if notification.is_read:
            return notification
        return await self.repository.mark_read(notification_id)

    async def mark_all_read(self, user_id: str) -> int:
        updated = await self.repository.mark_all_read(user_id)
        logger.info("Notifications marked read", user_id=user_id, count=updated)
        return updated
