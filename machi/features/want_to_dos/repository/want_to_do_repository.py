"""
Persistence for want-to-dos and the interest data suggestions rely on.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from machi.db.helpers import fetch_all, fetch_one, fetch_val
from machi.features.want_to_dos.domain.models import (
    SuggestionQuery,
    Timing,
    WantToDo,
    WantToDoDraft,
    WantToDoQuery,
    WantToDoStatus,
)
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.pagination import Page
from machi.models.domain.user_domain import CategorySummary, PublicProfile

logger = get_logger(__name__)

_UPDATABLE_COLUMNS = frozenset({"timing", "comment", "expires_at", "status"})

_SELECT = """
    SELECT
        w.id, w.user_id, w.timing, w.comment, w.location_name,
        w.latitude, w.longitude, w.status, w.expires_at, w.created_at,
        c.id AS category_id, c.name AS category_name, c.icon AS category_icon,
        u.nickname AS user_nickname, u.avatar_url AS user_avatar_url, u.area AS user_area
    FROM want_to_dos w
    JOIN categories c ON c.id = w.category_id
    JOIN users u ON u.id = w.user_id
"""


class WantToDoRepository(Protocol):
    async def get_category(self, category_id: str) -> CategorySummary | None: ...

    async def get(self, want_to_do_id: str) -> WantToDo | None: ...

    async def find_active_in_category(
        self, user_id: str, category_id: str, now: datetime
    ) -> WantToDo | None: ...

    async def insert(self, draft: WantToDoDraft, expires_at: datetime) -> WantToDo: ...

    async def update(self, want_to_do_id: str, changes: dict[str, Any]) -> WantToDo: ...

    async def list_for_user(self, user_id: str) -> list[WantToDo]: ...

    async def get_interests(self, user_id: str) -> tuple[frozenset[str], str | None]: ...

    async def find_suggestions(self, query: SuggestionQuery) -> list[WantToDo]: ...

    async def browse(self, query: WantToDoQuery) -> Page[WantToDo]: ...


class PostgresWantToDoRepository:
    async def get_category(self, category_id: str) -> CategorySummary | None:
        row = await fetch_one(
            "SELECT id, name, icon FROM categories WHERE id = %s", (category_id,)
        )
        if not row:
            return None
        return CategorySummary(id=str(row["id"]), name=row["name"], icon=row["icon"])

    async def get(self, want_to_do_id: str) -> WantToDo | None:
        row = await fetch_one(f"{_SELECT} WHERE w.id = %s", (want_to_do_id,))
        return _want_to_do(row) if row else None

    async def find_active_in_category(
        self, user_id: str, category_id: str, now: datetime
    ) -> WantToDo | None:
        row = await fetch_one(
            f"""
            {_SELECT}
            WHERE w.user_id = %s AND w.category_id = %s
              AND w.status = 'ACTIVE' AND w.expires_at > %s
            LIMIT 1
            """,
            (user_id, category_id, now),
        )
        return _want_to_do(row) if row else None

    async def insert(self, draft: WantToDoDraft, expires_at: datetime) -> WantToDo:
        row = await fetch_one(
            """
            INSERT INTO want_to_dos (
                user_id, category_id, timing, comment, location_name,
                latitude, longitude, status, expires_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, 'ACTIVE', %s)
            RETURNING id
            """,
            (
                draft.user_id,
                draft.category_id,
                draft.timing.value,
                draft.comment,
                draft.location_name,
                draft.latitude,
                draft.longitude,
                expires_at,
            ),
        )
        return await self.get(str(row["id"]))

    async def update(self, want_to_do_id: str, changes: dict[str, Any]) -> WantToDo:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown want-to-do columns: {sorted(unknown)}")

        columns = sorted(changes)
        assignments = ", ".join(f"{column} = %s" for column in columns)
        params = [_db_value(changes[column]) for column in columns]
        await fetch_one(
            f"UPDATE want_to_dos SET {assignments}, updated_at = NOW() WHERE id = %s RETURNING id",
            (*params, want_to_do_id),
        )
        return await self.get(want_to_do_id)

    async def list_for_user(self, user_id: str) -> list[WantToDo]:
        rows = await fetch_all(
            f"""
            {_SELECT}
            WHERE w.user_id = %s AND w.status <> 'DELETED'
            ORDER BY w.created_at DESC
            """,
            (user_id,),
        )
        return [_want_to_do(row, with_user=False) for row in rows]

    async def get_interests(self, user_id: str) -> tuple[frozenset[str], str | None]:
        rows = await fetch_all(
            "SELECT category_id FROM user_categories WHERE user_id = %s", (user_id,)
        )
        area_row = await fetch_one("SELECT area FROM users WHERE id = %s", (user_id,))
        return (
            frozenset(str(row["category_id"]) for row in rows),
            area_row["area"] if area_row else None,
        )

    async def find_suggestions(self, query: SuggestionQuery) -> list[WantToDo]:
        conditions = [
            "w.category_id = ANY(%s)",
            "w.user_id <> %s",
            "w.status = 'ACTIVE'",
            "w.expires_at > %s",
        ]
        params: list = [sorted(query.category_ids), query.user_id, query.now]
        if query.area:
            conditions.append("u.area = %s")
            params.append(query.area)
        params.append(query.limit)

        rows = await fetch_all(
            f"""
            {_SELECT}
            WHERE {" AND ".join(conditions)}
            ORDER BY w.created_at DESC
            LIMIT %s
            """,
            tuple(params),
        )
        logger.debug("Want-to-do suggestions fetched", user_id=query.user_id, count=len(rows))
        return [_want_to_do(row) for row in rows]

    async def browse(self, query: WantToDoQuery) -> Page[WantToDo]:
        conditions = ["w.status = 'ACTIVE'", "w.expires_at > %s"]
        params: list = [query.now]
        if query.category_id:
            conditions.append("w.category_id = %s")
            params.append(query.category_id)
        if query.area:
            conditions.append("u.area = %s")
            params.append(query.area)
        if query.timing:
            conditions.append("w.timing = %s")
            params.append(query.timing.value)
        where = " AND ".join(conditions)

        total = await fetch_val(
            f"""
            SELECT COUNT(*) FROM want_to_dos w
            JOIN users u ON u.id = w.user_id
            WHERE {where}
            """,
            tuple(params),
        )
        page: Page[WantToDo] = Page(items=[], page=query.page, limit=query.limit, total=total)
        rows = await fetch_all(
            f"""
            {_SELECT}
            WHERE {where}
            ORDER BY w.created_at DESC, w.id
            LIMIT %s OFFSET %s
            """,
            (*params, query.limit, page.offset),
        )
        page.items = [_want_to_do(row) for row in rows]
        return page


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _want_to_do(row: dict, with_user: bool = True) -> WantToDo:
    user = None
    if with_user:
        user = PublicProfile(
            id=str(row["user_id"]),
            nickname=row["user_nickname"],
            avatar_url=row["user_avatar_url"],
            area=row["user_area"],
        )
    return WantToDo(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        category=CategorySummary(
            id=str(row["category_id"]), name=row["category_name"], icon=row["category_icon"]
        ),
        timing=Timing(row["timing"]),
        comment=row["comment"],
        location_name=row["location_name"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        status=WantToDoStatus(row["status"]),
        expires_at=row["expires_at"],
        created_at=row["created_at"],
        user=user,
    )
