"""
Candidate queries for nearby search.

Both queries are plain range scans over the bounding box; exact distance
filtering happens in the service. Nothing here is cached, every search
reads the store directly.
"""

import math
from typing import Protocol

from machi.db.helpers import fetch_all
from machi.features.nearby.domain.models import (
    CandidateQuery,
    RecruitmentCandidate,
    WantToDoCandidate,
)
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.user_domain import CategorySummary, PublicProfile

logger = get_logger(__name__)


class NearbyRepository(Protocol):
    async def find_recruitment_candidates(
        self, query: CandidateQuery
    ) -> list[RecruitmentCandidate]: ...

    async def find_want_to_do_candidates(self, query: CandidateQuery) -> list[WantToDoCandidate]: ...


class PostgresNearbyRepository:
    """NearbyRepository backed by the shared psycopg pool."""

    async def find_recruitment_candidates(
        self, query: CandidateQuery
    ) -> list[RecruitmentCandidate]:
        conditions = [
            "r.status = 'OPEN'",
            "r.latitude IS NOT NULL",
            "r.longitude IS NOT NULL",
            "r.latitude BETWEEN %s AND %s",
        ]
        params: list = [query.bounds.min_lat, query.bounds.max_lat]
        longitude, longitude_params = _longitude_clause("r", query)
        conditions.append(longitude)
        params.extend(longitude_params)
        if query.category_ids:
            conditions.append("r.category_id = ANY(%s)")
            params.append(sorted(query.category_ids))

        order, order_params = _order_clause("r", query)
        params.extend(order_params)
        params.append(query.fetch_limit)

        sql = f"""
            SELECT
                r.id, r.latitude, r.longitude, r.title, r.description,
                r.scheduled_at, r.flexible_time, r.location_name,
                r.max_people, r.created_at,
                (SELECT COUNT(*) FROM applications a
                  WHERE a.recruitment_id = r.id AND a.status = 'APPROVED') AS approved_count,
                (SELECT COUNT(*) FROM offers o
                  WHERE o.recruitment_id = r.id AND o.status = 'ACCEPTED'
                    AND NOT EXISTS (
                        SELECT 1 FROM applications a
                        WHERE a.recruitment_id = r.id AND a.applicant_id = o.receiver_id
                          AND a.status = 'APPROVED'
                    )) AS accepted_offer_count,
                u.id AS creator_id, u.nickname AS creator_nickname,
                u.avatar_url AS creator_avatar_url, u.area AS creator_area,
                c.id AS category_id, c.name AS category_name, c.icon AS category_icon
            FROM recruitments r
            JOIN users u ON u.id = r.creator_id
            JOIN categories c ON c.id = r.category_id
            WHERE {" AND ".join(conditions)}
            ORDER BY {order}
            LIMIT %s
        """

        rows = await fetch_all(sql, tuple(params))
        logger.debug("Recruitment candidates fetched", count=len(rows))

        return [
            RecruitmentCandidate(
                id=str(row["id"]),
                latitude=row["latitude"],
                longitude=row["longitude"],
                title=row["title"],
                description=row["description"],
                scheduled_at=row["scheduled_at"],
                flexible_time=row["flexible_time"],
                location_name=row["location_name"],
                approved_count=row["approved_count"],
                accepted_offer_count=row["accepted_offer_count"],
                max_people=row["max_people"],
                creator=PublicProfile(
                    id=str(row["creator_id"]),
                    nickname=row["creator_nickname"],
                    avatar_url=row["creator_avatar_url"],
                    area=row["creator_area"],
                ),
                category=_category(row),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    async def find_want_to_do_candidates(self, query: CandidateQuery) -> list[WantToDoCandidate]:
        conditions = [
            "w.status = 'ACTIVE'",
            "w.expires_at > %s",
            "w.latitude IS NOT NULL",
            "w.longitude IS NOT NULL",
            "w.latitude BETWEEN %s AND %s",
        ]
        params: list = [query.now, query.bounds.min_lat, query.bounds.max_lat]
        longitude, longitude_params = _longitude_clause("w", query)
        conditions.append(longitude)
        params.extend(longitude_params)
        if query.exclude_user_id:
            conditions.append("w.user_id <> %s")
            params.append(query.exclude_user_id)
        if query.category_ids:
            conditions.append("w.category_id = ANY(%s)")
            params.append(sorted(query.category_ids))

        order, order_params = _order_clause("w", query)
        params.extend(order_params)
        params.append(query.fetch_limit)

        sql = f"""
            SELECT
                w.id, w.latitude, w.longitude, w.timing, w.comment,
                w.location_name, w.expires_at, w.created_at,
                u.id AS user_id, u.nickname AS user_nickname,
                u.avatar_url AS user_avatar_url, u.area AS user_area,
                c.id AS category_id, c.name AS category_name, c.icon AS category_icon
            FROM want_to_dos w
            JOIN users u ON u.id = w.user_id
            JOIN categories c ON c.id = w.category_id
            WHERE {" AND ".join(conditions)}
            ORDER BY {order}
            LIMIT %s
        """

        rows = await fetch_all(sql, tuple(params))
        logger.debug("Want-to-do candidates fetched", count=len(rows))

        return [
            WantToDoCandidate(
                id=str(row["id"]),
                latitude=row["latitude"],
                longitude=row["longitude"],
                timing=row["timing"],
                comment=row["comment"],
                location_name=row["location_name"],
                expires_at=row["expires_at"],
                user=PublicProfile(
                    id=str(row["user_id"]),
                    nickname=row["user_nickname"],
                    avatar_url=row["user_avatar_url"],
                    area=row["user_area"],
                ),
                category=_category(row),
                created_at=row["created_at"],
            )
            for row in rows
        ]


def _longitude_clause(alias: str, query: CandidateQuery) -> tuple[str, list]:
    ranges = query.bounds.longitude_ranges()
    clause = " OR ".join(f"{alias}.longitude BETWEEN %s AND %s" for _ in ranges)
    return f"({clause})", [bound for span in ranges for bound in span]


def _order_clause(alias: str, query: CandidateQuery) -> tuple[str, list]:
    if query.origin is None:
        return f"{alias}.created_at DESC, {alias}.id", []
    # Equirectangular approximation; only used to pick which rows survive
    # the fetch limit, exact distance is computed by the service. The
    # longitude difference is taken the short way round the antimeridian.
    lng_scale = max(math.cos(math.radians(query.origin.lat)), 1e-6)
    lng_delta = f"least(abs({alias}.longitude - %s), 360 - abs({alias}.longitude - %s))"
    clause = f"power({alias}.latitude - %s, 2) + power({lng_delta} * %s, 2), {alias}.id"
    return clause, [query.origin.lat, query.origin.lng, query.origin.lng, lng_scale]


def _category(row: dict) -> CategorySummary:
    return CategorySummary(
        id=str(row["category_id"]), name=row["category_name"], icon=row["category_icon"]
    )
