"""
Persistence for recruitments, applications, offers and groups.

All state transitions run through RecruitmentTransaction, which the
Postgres implementation backs with a single database transaction. The
recruitment row is locked with SELECT ... FOR UPDATE before any capacity
check, so concurrent approvals on the same recruitment serialize.
"""

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime
from typing import Any, Protocol

import psycopg

from machi.db.helpers import execute_query, fetch_all, fetch_one, fetch_val
from machi.db.pool import db_pool
from machi.features.recruitments.domain.models import (
    UPDATABLE_FIELDS,
    Application,
    ApplicationStatus,
    Group,
    GroupRole,
    Offer,
    OfferStatus,
    Recruitment,
    RecruitmentDraft,
    RecruitmentQuery,
    RecruitmentRef,
    RecruitmentStatus,
)
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.pagination import Page
from machi.models.domain.user_domain import CategorySummary, PublicProfile

logger = get_logger(__name__)

_RECRUITMENT_COLUMNS = """
    id, creator_id, category_id, title, description, scheduled_at,
    flexible_time, location_name, latitude, longitude, min_people,
    max_people, current_people, status, created_at, closed_at
"""

_WRITABLE_COLUMNS = UPDATABLE_FIELDS | {"status", "current_people", "closed_at"}

# Recruitment summary joined onto a user's own applications and offers
_REF_COLUMNS = """
    r.title AS ref_title, r.status AS ref_status,
    c.id AS ref_category_id, c.name AS ref_category_name, c.icon AS ref_category_icon,
    u.id AS ref_creator_id, u.nickname AS ref_creator_nickname,
    u.avatar_url AS ref_creator_avatar_url, u.area AS ref_creator_area
"""

_REF_JOINS = """
    JOIN recruitments r ON r.id = {alias}.recruitment_id
    JOIN categories c ON c.id = r.category_id
    JOIN users u ON u.id = r.creator_id
"""


class RecruitmentTransaction(Protocol):
    """Operations available inside one atomic unit of work."""

    async def lock_recruitment(self, recruitment_id: str) -> Recruitment | None: ...

    async def get_profile(self, user_id: str) -> PublicProfile | None: ...

    async def is_participant(self, recruitment_id: str, user_id: str) -> bool: ...

    async def update_recruitment(
        self, recruitment_id: str, changes: dict[str, Any]
    ) -> Recruitment: ...

    async def get_application(self, application_id: str) -> Application | None: ...

    async def find_active_application(
        self, recruitment_id: str, applicant_id: str
    ) -> Application | None: ...

    async def insert_application(
        self, recruitment_id: str, applicant_id: str, message: str | None
    ) -> Application: ...

    async def set_application_status(
        self, application_id: str, status: ApplicationStatus, responded_at: datetime
    ) -> Application: ...

    async def approve_application_for(
        self, recruitment_id: str, applicant_id: str, responded_at: datetime
    ) -> Application: ...

    async def get_offer(self, offer_id: str) -> Offer | None: ...

    async def find_open_offer(self, recruitment_id: str, receiver_id: str) -> Offer | None: ...

    async def insert_offer(
        self, recruitment_id: str, sender_id: str, receiver_id: str, message: str | None
    ) -> Offer: ...

    async def set_offer_status(
        self, offer_id: str, status: OfferStatus, responded_at: datetime
    ) -> Offer: ...

    async def expire_pending_offers(self, recruitment_id: str, responded_at: datetime) -> int: ...

    async def get_group(self, recruitment_id: str) -> Group | None: ...

    async def create_group(self, recruitment_id: str, name: str) -> Group: ...

    async def add_group_member(self, group_id: str, user_id: str, role: GroupRole) -> None: ...

    async def list_group_member_ids(self, group_id: str) -> list[str]: ...


class RecruitmentRepository(Protocol):
    async def get_category(self, category_id: str) -> CategorySummary | None: ...

    async def get_recruitment(self, recruitment_id: str) -> Recruitment | None: ...

    async def create_recruitment(self, draft: RecruitmentDraft) -> Recruitment: ...

    async def list_applications(self, recruitment_id: str) -> list[Application]: ...

    async def browse(self, query: RecruitmentQuery) -> Page[Recruitment]: ...

    async def list_by_creator(self, creator_id: str) -> list[Recruitment]: ...

    async def list_offers_for_receiver(self, receiver_id: str) -> list[Offer]: ...

    async def list_applications_for_applicant(self, applicant_id: str) -> list[Application]: ...

    def transaction(self) -> AbstractAsyncContextManager[RecruitmentTransaction]: ...


class PostgresRecruitmentTransaction:
    """RecruitmentTransaction bound to one open psycopg transaction."""

    def __init__(self, conn: psycopg.AsyncConnection):
        self.conn = conn

    async def lock_recruitment(self, recruitment_id: str) -> Recruitment | None:
        row = await fetch_one(
            f"SELECT {_RECRUITMENT_COLUMNS} FROM recruitments WHERE id = %s FOR UPDATE",
            (recruitment_id,),
            connection=self.conn,
        )
        return _recruitment(row) if row else None

    async def get_profile(self, user_id: str) -> PublicProfile | None:
        row = await fetch_one(
            "SELECT id, nickname, avatar_url, area FROM users WHERE id = %s",
            (user_id,),
            connection=self.conn,
        )
        return _profile(row) if row else None

    async def is_participant(self, recruitment_id: str, user_id: str) -> bool:
        return bool(
            await fetch_val(
                """
                SELECT EXISTS (
                    SELECT 1 FROM applications
                    WHERE recruitment_id = %s AND applicant_id = %s AND status = 'APPROVED'
                    UNION ALL
                    SELECT 1 FROM offers
                    WHERE recruitment_id = %s AND receiver_id = %s AND status = 'ACCEPTED'
                    UNION ALL
                    SELECT 1 FROM group_members gm
                    JOIN groups g ON g.id = gm.group_id
                    WHERE g.recruitment_id = %s AND gm.user_id = %s
                ) AS participating
                """,
                (recruitment_id, user_id) * 3,
                connection=self.conn,
            )
        )

    async def update_recruitment(self, recruitment_id: str, changes: dict[str, Any]) -> Recruitment:
        unknown = set(changes) - _WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown recruitment columns: {sorted(unknown)}")

        columns = sorted(changes)
        assignments = ", ".join(f"{column} = %s" for column in columns)
        params = [_db_value(changes[column]) for column in columns]
        row = await fetch_one(
            f"""
            UPDATE recruitments
            SET {assignments}, updated_at = NOW()
            WHERE id = %s
            RETURNING {_RECRUITMENT_COLUMNS}
            """,
            (*params, recruitment_id),
            connection=self.conn,
        )
        return _recruitment(row)

    async def get_application(self, application_id: str) -> Application | None:
        row = await fetch_one(
            "SELECT * FROM applications WHERE id = %s FOR UPDATE",
            (application_id,),
            connection=self.conn,
        )
        return _application(row) if row else None

    async def find_active_application(
        self, recruitment_id: str, applicant_id: str
    ) -> Application | None:
        row = await fetch_one(
            """
            SELECT * FROM applications
            WHERE recruitment_id = %s AND applicant_id = %s AND status <> 'CANCELLED'
            LIMIT 1
            """,
            (recruitment_id, applicant_id),
            connection=self.conn,
        )
        return _application(row) if row else None

    async def insert_application(
        self, recruitment_id: str, applicant_id: str, message: str | None
    ) -> Application:
        row = await fetch_one(
            """
            INSERT INTO applications (recruitment_id, applicant_id, message, status)
            VALUES (%s, %s, %s, 'PENDING')
            RETURNING *
            """,
            (recruitment_id, applicant_id, message),
            connection=self.conn,
        )
        return _application(row)

    async def set_application_status(
        self, application_id: str, status: ApplicationStatus, responded_at: datetime
    ) -> Application:
        row = await fetch_one(
            """
            UPDATE applications SET status = %s, responded_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (status.value, responded_at, application_id),
            connection=self.conn,
        )
        return _application(row)

    async def approve_application_for(
        self, recruitment_id: str, applicant_id: str, responded_at: datetime
    ) -> Application:
        row = await fetch_one(
            """
            INSERT INTO applications (recruitment_id, applicant_id, status, responded_at)
            VALUES (%s, %s, 'APPROVED', %s)
            ON CONFLICT (recruitment_id, applicant_id) WHERE status <> 'CANCELLED'
            DO UPDATE SET
                status = 'APPROVED',
                responded_at = CASE
                    WHEN applications.status = 'APPROVED' THEN applications.responded_at
                    ELSE EXCLUDED.responded_at
                END
            RETURNING *
            """,
            (recruitment_id, applicant_id, responded_at),
            connection=self.conn,
        )
        return _application(row)

    async def get_offer(self, offer_id: str) -> Offer | None:
        row = await fetch_one(
            "SELECT * FROM offers WHERE id = %s FOR UPDATE", (offer_id,), connection=self.conn
        )
        return _offer(row) if row else None

    async def find_open_offer(self, recruitment_id: str, receiver_id: str) -> Offer | None:
        row = await fetch_one(
            """
            SELECT * FROM offers
            WHERE recruitment_id = %s AND receiver_id = %s
              AND status IN ('PENDING', 'ACCEPTED')
            LIMIT 1
            """,
            (recruitment_id, receiver_id),
            connection=self.conn,
        )
        return _offer(row) if row else None

    async def insert_offer(
        self, recruitment_id: str, sender_id: str, receiver_id: str, message: str | None
    ) -> Offer:
        row = await fetch_one(
            """
            INSERT INTO offers (recruitment_id, sender_id, receiver_id, message, status)
            VALUES (%s, %s, %s, %s, 'PENDING')
            RETURNING *
            """,
            (recruitment_id, sender_id, receiver_id, message),
            connection=self.conn,
        )
        return _offer(row)

    async def set_offer_status(
        self, offer_id: str, status: OfferStatus, responded_at: datetime
    ) -> Offer:
        row = await fetch_one(
            """
            UPDATE offers SET status = %s, responded_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (status.value, responded_at, offer_id),
            connection=self.conn,
        )
        return _offer(row)

    async def expire_pending_offers(self, recruitment_id: str, responded_at: datetime) -> int:
        return await execute_query(
            """
            UPDATE offers SET status = 'EXPIRED', responded_at = %s
            WHERE recruitment_id = %s AND status = 'PENDING'
            """,
            (responded_at, recruitment_id),
            connection=self.conn,
        )

    async def get_group(self, recruitment_id: str) -> Group | None:
        row = await fetch_one(
            "SELECT id, recruitment_id, name, created_at FROM groups WHERE recruitment_id = %s",
            (recruitment_id,),
            connection=self.conn,
        )
        return _group(row) if row else None

    async def create_group(self, recruitment_id: str, name: str) -> Group:
        row = await fetch_one(
            """
            INSERT INTO groups (recruitment_id, name)
            VALUES (%s, %s)
            RETURNING id, recruitment_id, name, created_at
            """,
            (recruitment_id, name),
            connection=self.conn,
        )
        return _group(row)

    async def add_group_member(self, group_id: str, user_id: str, role: GroupRole) -> None:
        await execute_query(
            """
            INSERT INTO group_members (group_id, user_id, role)
            VALUES (%s, %s, %s)
            ON CONFLICT (group_id, user_id) DO NOTHING
            """,
            (group_id, user_id, role.value),
            connection=self.conn,
        )

    async def list_group_member_ids(self, group_id: str) -> list[str]:
        rows = await fetch_all(
            "SELECT user_id FROM group_members WHERE group_id = %s ORDER BY joined_at",
            (group_id,),
            connection=self.conn,
        )
        return [str(row["user_id"]) for row in rows]


class PostgresRecruitmentRepository:
    """RecruitmentRepository backed by the shared psycopg pool."""

    async def get_category(self, category_id: str) -> CategorySummary | None:
        row = await fetch_one(
            "SELECT id, name, icon FROM categories WHERE id = %s", (category_id,)
        )
        if not row:
            return None
        return CategorySummary(id=str(row["id"]), name=row["name"], icon=row["icon"])

    async def get_recruitment(self, recruitment_id: str) -> Recruitment | None:
        row = await fetch_one(
            f"SELECT {_RECRUITMENT_COLUMNS} FROM recruitments WHERE id = %s", (recruitment_id,)
        )
        return _recruitment(row) if row else None

    async def create_recruitment(self, draft: RecruitmentDraft) -> Recruitment:
        row = await fetch_one(
            f"""
            INSERT INTO recruitments (
                creator_id, category_id, title, description, scheduled_at,
                flexible_time, location_name, latitude, longitude,
                min_people, max_people, current_people, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 1, 'OPEN')
            RETURNING {_RECRUITMENT_COLUMNS}
            """,
            (
                draft.creator_id,
                draft.category_id,
                draft.title,
                draft.description,
                draft.scheduled_at,
                draft.flexible_time,
                draft.location_name,
                draft.latitude,
                draft.longitude,
                draft.min_people,
                draft.max_people,
            ),
        )
        logger.info("Recruitment inserted", recruitment_id=str(row["id"]))
        return _recruitment(row)

    async def list_applications(self, recruitment_id: str) -> list[Application]:
        rows = await fetch_all(
            "SELECT * FROM applications WHERE recruitment_id = %s ORDER BY created_at DESC",
            (recruitment_id,),
        )
        return [_application(row) for row in rows]

    async def browse(self, query: RecruitmentQuery) -> Page[Recruitment]:
        conditions = ["status = %s"]
        params: list = [query.status.value]
        if query.category_id:
            conditions.append("category_id = %s")
            params.append(query.category_id)
        where = " AND ".join(conditions)

        total = await fetch_val(f"SELECT COUNT(*) FROM recruitments WHERE {where}", tuple(params))
        page: Page[Recruitment] = Page(items=[], page=query.page, limit=query.limit, total=total)
        rows = await fetch_all(
            f"""
            SELECT {_RECRUITMENT_COLUMNS} FROM recruitments
            WHERE {where}
            ORDER BY created_at DESC, id
            LIMIT %s OFFSET %s
            """,
            (*params, query.limit, page.offset),
        )
        page.items = [_recruitment(row) for row in rows]
        return page

    async def list_by_creator(self, creator_id: str) -> list[Recruitment]:
        rows = await fetch_all(
            f"""
            SELECT {_RECRUITMENT_COLUMNS} FROM recruitments
            WHERE creator_id = %s
            ORDER BY created_at DESC
            """,
            (creator_id,),
        )
        return [_recruitment(row) for row in rows]

    async def list_offers_for_receiver(self, receiver_id: str) -> list[Offer]:
        rows = await fetch_all(
            f"""
            SELECT o.*, {_REF_COLUMNS}
            FROM offers o
            {_REF_JOINS.format(alias="o")}
            WHERE o.receiver_id = %s
            ORDER BY o.created_at DESC
            """,
            (receiver_id,),
        )
        return [_offer(row, recruitment=_recruitment_ref(row)) for row in rows]

    async def list_applications_for_applicant(self, applicant_id: str) -> list[Application]:
        rows = await fetch_all(
            f"""
            SELECT a.*, {_REF_COLUMNS}
            FROM applications a
            {_REF_JOINS.format(alias="a")}
            WHERE a.applicant_id = %s
            ORDER BY a.created_at DESC
            """,
            (applicant_id,),
        )
        return [_application(row, recruitment=_recruitment_ref(row)) for row in rows]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresRecruitmentTransaction]:
        async with db_pool.transaction() as conn:
            yield PostgresRecruitmentTransaction(conn)


# ===========================================================================
# ROW MAPPERS
# ===========================================================================


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, RecruitmentStatus) else value


def _recruitment(row: dict) -> Recruitment:
    return Recruitment(
        id=str(row["id"]),
        creator_id=str(row["creator_id"]),
        category_id=str(row["category_id"]),
        title=row["title"],
        description=row["description"],
        scheduled_at=row["scheduled_at"],
        flexible_time=row["flexible_time"],
        location_name=row["location_name"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        min_people=row["min_people"],
        max_people=row["max_people"],
        current_people=row["current_people"],
        status=RecruitmentStatus(row["status"]),
        created_at=row["created_at"],
        closed_at=row.get("closed_at"),
    )


def _application(row: dict, recruitment: RecruitmentRef | None = None) -> Application:
    return Application(
        id=str(row["id"]),
        recruitment_id=str(row["recruitment_id"]),
        applicant_id=str(row["applicant_id"]),
        message=row["message"],
        status=ApplicationStatus(row["status"]),
        created_at=row["created_at"],
        responded_at=row.get("responded_at"),
        recruitment=recruitment,
    )


def _offer(row: dict, recruitment: RecruitmentRef | None = None) -> Offer:
    return Offer(
        id=str(row["id"]),
        recruitment_id=str(row["recruitment_id"]),
        sender_id=str(row["sender_id"]),
        receiver_id=str(row["receiver_id"]),
        message=row["message"],
        status=OfferStatus(row["status"]),
        created_at=row["created_at"],
        responded_at=row.get("responded_at"),
        recruitment=recruitment,
    )


def _group(row: dict) -> Group:
    return Group(
        id=str(row["id"]),
        recruitment_id=str(row["recruitment_id"]),
        name=row["name"],
        created_at=row["created_at"],
    )


def _profile(row: dict) -> PublicProfile:
    return PublicProfile(
        id=str(row["id"]),
        nickname=row["nickname"],
        avatar_url=row["avatar_url"],
        area=row["area"],
    )


def _recruitment_ref(row: dict) -> RecruitmentRef:
    return RecruitmentRef(
        id=str(row["recruitment_id"]),
        title=row["ref_title"],
        status=RecruitmentStatus(row["ref_status"]),
        category=CategorySummary(
            id=str(row["ref_category_id"]),
            name=row["ref_category_name"],
            icon=row["ref_category_icon"],
        ),
        creator=PublicProfile(
            id=str(row["ref_creator_id"]),
            nickname=row["ref_creator_nickname"],
            avatar_url=row["ref_creator_avatar_url"],
            area=row["ref_creator_area"],
        ),
    )
