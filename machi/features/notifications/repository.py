"""
Storage for in-app notifications and push token lookup.

NotificationRepository is the write side used during delivery;
NotificationInboxRepository is what a recipient reads back.
"""

from typing import Protocol

import psycopg
from psycopg.types.json import Jsonb

from machi.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one, fetch_val
from machi.db.pool import db_pool
from machi.features.notifications.models import Notification
from machi.features.notifications.templates import RenderedNotification
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.pagination import Page

logger = get_logger(__name__)


class NotificationRepository(Protocol):
    async def insert_many(
        self, user_ids: list[str], notification: RenderedNotification
    ) -> int: ...

    async def get_push_tokens(self, user_ids: list[str]) -> list[str]: ...


class NotificationInboxRepository(Protocol):
    async def list_for_user(
        self, user_id: str, page: int, limit: int, unread_only: bool
    ) -> Page[Notification]: ...

    async def count_unread(self, user_id: str) -> int: ...

    async def get(self, notification_id: str) -> Notification | None: ...

    async def mark_read(self, notification_id: str) -> Notification: ...

    async def mark_all_read(self, user_id: str) -> int: ...


class PostgresNotificationRepository:
    async def insert_many(self, user_ids: list[str], notification: RenderedNotification) -> int:
        if not user_ids:
            return 0

        query = """
            INSERT INTO notifications (user_id, type, title, body, data)
            VALUES (%s, %s, %s, %s, %s)
        """
        payload = [
            (
                user_id,
                notification.type,
                notification.title,
                notification.body,
                Jsonb(notification.data),
            )
            for user_id in user_ids
        ]

        try:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.executemany(query, payload)
        except psycopg.Error as e:
            logger.error("Notification insert failed", type=notification.type, error=str(e))
            raise DatabaseError(f"Notification insert failed: {e}", operation="insert_many") from e

        return len(payload)

    async def get_push_tokens(self, user_ids: list[str]) -> list[str]:
        if not user_ids:
            return []

        rows = await fetch_all(
            """
            SELECT push_token FROM users
            WHERE id = ANY(%s) AND push_token IS NOT NULL AND push_token <> ''
            """,
            (user_ids,),
        )
        return [row["push_token"] for row in rows]

    async def list_for_user(
        self, user_id: str, page: int, limit: int, unread_only: bool
    ) -> Page[Notification]:
        where = "user_id = %s AND NOT is_read" if unread_only else "user_id = %s"
        total = await fetch_val(f"SELECT COUNT(*) FROM notifications WHERE {where}", (user_id,))
        result: Page[Notification] = Page(items=[], page=page, limit=limit, total=total)
        rows = await fetch_all(
            f"""
            SELECT * FROM notifications
            WHERE {where}
            ORDER BY created_at DESC, id
            LIMIT %s OFFSET %s
            """,
            (user_id, limit, result.offset),
        )
        result.items = [_notification(row) for row in rows]
        return result

    async def count_unread(self, user_id: str) -> int:
        return await fetch_val(
            "SELECT COUNT(*) FROM notifications WHERE user_id = %s AND NOT is_read", (user_id,)
        )

    async def get(self, notification_id: str) -> Notification | None:
        row = await fetch_one("SELECT * FROM notifications WHERE id = %s", (notification_id,))
        return _notification(row) if row else None

    async def mark_read(self, notification_id: str) -> Notification:
        row = await fetch_one(
            "UPDATE notifications SET is_read = true WHERE id = %s RETURNING *",
            (notification_id,),
        )
        return _notification(row)

    async def mark_all_read(self, user_id: str) -> int:
        return await execute_query(
            "UPDATE notifications SET is_read = true WHERE user_id = %s AND NOT is_read",
            (user_id,),
        )


def _notification(row: dict) -> Notification:
    return Notification(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        type=row["type"],
        title=row["title"],
        body=row["body"],
        data=row["data"],
        is_read=row["is_read"],
        created_at=row["created_at"],
    )
