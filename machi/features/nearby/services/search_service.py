"""
Nearby search over recruitments and want-to-dos.

Two modes:
    - centre: bounding-box prefilter, exact haversine post-filter, ranked by
      distance ascending.
    - viewport: the rectangle is used verbatim with no post-filter, ranked by
      creation time descending.

Ties fall back to creation time descending, then id, so results are
deterministic. The service is read-only and holds no state between calls.
"""

from datetime import UTC, datetime

from machi.config import settings
from machi.errors import ValidationError
from machi.features.nearby.domain.geo import bounding_box, distance_meters, is_valid_coordinate
from machi.features.nearby.domain.models import (
    CandidateQuery,
    EntityType,
    NearbyItem,
    NearbySearchRequest,
    RecruitmentCandidate,
    WantToDoCandidate,
)
from machi.features.nearby.repository.nearby_repository import NearbyRepository
from machi.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class NearbySearchService:
    """Ranks nearby recruitments and want-to-dos for a centre or viewport."""

    def __init__(self, repository: NearbyRepository, overfetch_factor: int | None = None):
        self.repository = repository
        factor = overfetch_factor if overfetch_factor is not None else settings.NEARBY_OVERFETCH_FACTOR
        self.overfetch_factor = max(2, factor)

    async def search(self, request: NearbySearchRequest) -> list[NearbyItem]:
        """
        Run a nearby search.

        Raises:
            ValidationError: malformed centre/viewport/radius/limit; raised
                before the repository is touched.
            InfrastructureError: repository failure, propagated as-is.
        """
        self._validate(request)
        now = request.now or datetime.now(UTC)

        if request.center is not None:
            items = await self._search_center(request, now)
        else:
            items = await self._search_viewport(request, now)

        logger.info(
            "Nearby search completed",
            mode="center" if request.center is not None else "viewport",
            types=sorted(t.value for t in request.entity_types),
            result_count=len(items),
            limit=request.limit,
        )
        return items

    # =======================================================================
    # MODES
    # =======================================================================

    async def _search_center(self, request: NearbySearchRequest, now: datetime) -> list[NearbyItem]:
        center = request.center
        radius = request.radius_meters
        query = CandidateQuery(
            bounds=bounding_box(center.lat, center.lng, radius),
            now=now,
            fetch_limit=request.limit * self.overfetch_factor,
            category_ids=request.category_ids or None,
            exclude_user_id=request.exclude_user_id,
            origin=center,
        )

        items: list[NearbyItem] = []
        for candidate in await self._fetch(request, query):
            distance = distance_meters(center.lat, center.lng, candidate.latitude, candidate.longitude)
            if distance <= radius:
                items.append(_to_item(candidate, distance))

        items.sort(key=lambda item: (item.distance_meters, -item.created_at.timestamp(), item.id))
        return items[: request.limit]

    async def _search_viewport(
        self, request: NearbySearchRequest, now: datetime
    ) -> list[NearbyItem]:
        bounds = request.viewport.to_bounding_box()
        query = CandidateQuery(
            bounds=bounds,
            now=now,
            fetch_limit=request.limit,
            category_ids=request.category_ids or None,
            exclude_user_id=request.exclude_user_id,
        )

        mid_lat, mid_lng = bounds.center()
        items = [
            _to_item(
                candidate,
                distance_meters(mid_lat, mid_lng, candidate.latitude, candidate.longitude),
            )
            for candidate in await self._fetch(request, query)
        ]

        items.sort(key=lambda item: (-item.created_at.timestamp(), item.id))
        return items[: request.limit]

    async def _fetch(
        self, request: NearbySearchRequest, query: CandidateQuery
    ) -> list[RecruitmentCandidate | WantToDoCandidate]:
        candidates: list[RecruitmentCandidate | WantToDoCandidate] = []

        if EntityType.RECRUITMENT in request.entity_types:
            candidates.extend(await self.repository.find_recruitment_candidates(query))

        if EntityType.WANT_TO_DO in request.entity_types:
            for candidate in await self.repository.find_want_to_do_candidates(query):
                # Expired and own entries never reach the result
                if candidate.expires_at <= query.now:
                    continue
                if request.exclude_user_id and candidate.user.id == request.exclude_user_id:
                    continue
                candidates.append(candidate)

        return [c for c in candidates if c.latitude is not None and c.longitude is not None]

    # =======================================================================
    # VALIDATION
    # =======================================================================

    @staticmethod
    def _validate(request: NearbySearchRequest) -> None:
        has_center = request.center is not None
        has_viewport = request.viewport is not None

        if has_center == has_viewport:
            raise ValidationError("Exactly one of center or viewport must be provided")

        if not isinstance(request.limit, int) or request.limit <= 0:
            raise ValidationError("limit must be a positive integer")

        if not request.entity_types:
            raise ValidationError("At least one entity type must be requested")

        if has_center:
            if not is_valid_coordinate(request.center.lat, request.center.lng):
                raise ValidationError("Invalid center coordinates")
            if request.radius_meters is None or not request.radius_meters > 0:
                raise ValidationError("radius must be positive")
            return

        viewport = request.viewport
        if not (
            is_valid_coordinate(viewport.north, viewport.east)
            and is_valid_coordinate(viewport.south, viewport.west)
        ):
            raise ValidationError("Invalid viewport coordinates")
        if viewport.south > viewport.north:
            raise ValidationError("Viewport south must not exceed north")
        if viewport.west > viewport.east:
            raise ValidationError("Viewport crossing the antimeridian is not supported")


def _to_item(candidate: RecruitmentCandidate | WantToDoCandidate, distance: float) -> NearbyItem:
    if isinstance(candidate, RecruitmentCandidate):
        return NearbyItem(
            entity_type=EntityType.RECRUITMENT,
            id=candidate.id,
            latitude=candidate.latitude,
            longitude=candidate.longitude,
            distance_meters=distance,
            category=candidate.category,
            created_at=candidate.created_at,
            details={
                "title": candidate.title,
                "description": candidate.description,
                "scheduled_at": (
                    candidate.scheduled_at.isoformat() if candidate.scheduled_at else None
                ),
                "flexible_time": candidate.flexible_time,
                "location_name": candidate.location_name,
                "current_people": candidate.current_people,
                "max_people": candidate.max_people,
                "creator": candidate.creator.to_dict(),
            },
        )

    return NearbyItem(
        entity_type=EntityType.WANT_TO_DO,
        id=candidate.id,
        latitude=candidate.latitude,
        longitude=candidate.longitude,
        distance_meters=distance,
        category=candidate.category,
        created_at=candidate.created_at,
        details={
            "timing": candidate.timing,
            "comment": candidate.comment,
            "location_name": candidate.location_name,
            "expires_at": candidate.expires_at.isoformat(),
            "user": candidate.user.to_dict(),
        },
    )
