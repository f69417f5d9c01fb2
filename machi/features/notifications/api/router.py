"""
Notification inbox routes.

    GET  /notifications               - paged list, newest first
    GET  /notifications/unread-count  - number of unread notifications
    POST /notifications/{id}/read     - mark one as read
    POST /notifications/read-all      - mark every unread one as read
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from machi.auth.verify import current_user_id
from machi.features.notifications.inbox import PAGE_LIMIT_MAX, NotificationInbox

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_inbox(request: Request) -> NotificationInbox:
    return request.app.state.notification_inbox


@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=PAGE_LIMIT_MAX),
    unread_only: bool = Query(False, alias="unreadOnly"),
    user_id: str = Depends(current_user_id),
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> dict:
    result = await inbox.list(user_id, page=page, limit=limit, unread_only=unread_only)
    return {
        "success": True,
        "data": [notification.to_dict() for notification in result.items],
        "pagination": result.pagination(),
    }


@router.get("/unread-count")
async def unread_count(
    user_id: str = Depends(current_user_id),
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> dict:
    return {"success": True, "data": {"count": await inbox.unread_count(user_id)}}


@router.post("/read-all")
async def mark_all_read(
    user_id: str = Depends(current_user_id),
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> dict:
    updated = await inbox.mark_all_read(user_id)
    return {"success": True, "data": {"updated_count": updated}}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    user_id: str = Depends(current_user_id),
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> dict:
    notification = await inbox.mark_read(str(notification_id), user_id)
    return {"success": True, "data": {"id": notification.id, "is_read": notification.is_read}}
