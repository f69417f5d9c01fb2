"""
Nearby search routes.

    GET /nearby         - centre + radius search, ranked by distance
    GET /nearby/bounds  - map viewport search, ranked by recency
"""

from fastapi import APIRouter, Depends, Query, Request

from machi.auth.verify import current_user_id
from machi.config import settings
from machi.errors import ValidationError
from machi.features.nearby.domain.models import (
    ALL_ENTITY_TYPES,
    EntityType,
    GeoPoint,
    NearbySearchRequest,
    Viewport,
)
from machi.features.nearby.services.search_service import NearbySearchService

router = APIRouter(prefix="/nearby", tags=["nearby"])

_TYPE_ALIASES = {
    "recruitment": EntityType.RECRUITMENT,
    "recruitments": EntityType.RECRUITMENT,
    "wanttodo": EntityType.WANT_TO_DO,
    "want_to_do": EntityType.WANT_TO_DO,
    "wanttodos": EntityType.WANT_TO_DO,
}


def get_nearby_service(request: Request) -> NearbySearchService:
    return request.app.state.nearby_service


def parse_entity_types(raw: str | None) -> frozenset[EntityType]:
    """Parse `all`, a single type, or a comma separated list of types."""
    if raw is None or raw.strip().lower() in ("", "all"):
        return ALL_ENTITY_TYPES

    types = set()
    for part in raw.split(","):
        key = part.strip().lower()
        if not key:
            continue
        if key == "all":
            return ALL_ENTITY_TYPES
        if key not in _TYPE_ALIASES:
            raise ValidationError(f"Unknown type: {part.strip()}")
        types.add(_TYPE_ALIASES[key])
    return frozenset(types) or ALL_ENTITY_TYPES


def parse_category_ids(raw: str | None) -> frozenset[str] | None:
    if not raw:
        return None
    ids = frozenset(part.strip() for part in raw.split(",") if part.strip())
    return ids or None


@router.get("")
async def search_nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(
        settings.NEARBY_DEFAULT_RADIUS_M,
        ge=settings.NEARBY_MIN_RADIUS_M,
        le=settings.NEARBY_MAX_RADIUS_M,
    ),
    types: str | None = Query(None),
    category_ids: str | None = Query(None, alias="categoryIds"),
    limit: int = Query(settings.NEARBY_DEFAULT_LIMIT, ge=1, le=settings.NEARBY_MAX_LIMIT),
    user_id: str = Depends(current_user_id),
    service: NearbySearchService = Depends(get_nearby_service),
) -> dict:
    items = await service.search(
        NearbySearchRequest(
            center=GeoPoint(lat=lat, lng=lng),
            radius_meters=radius,
            entity_types=parse_entity_types(types),
            category_ids=parse_category_ids(category_ids),
            exclude_user_id=user_id,
            limit=limit,
        )
    )
    return {
        "success": True,
        "data": {
            "items": [item.to_dict() for item in items],
            "center": {"lat": lat, "lng": lng},
            "radius": radius,
            "count": len(items),
        },
    }


@router.get("/bounds")
async def search_nearby_bounds(
    north: float = Query(..., ge=-90, le=90),
    south: float = Query(..., ge=-90, le=90),
    east: float = Query(..., ge=-180, le=180),
    west: float = Query(..., ge=-180, le=180),
    types: str | None = Query(None),
    category_ids: str | None = Query(None, alias="categoryIds"),
    limit: int = Query(
        settings.NEARBY_BOUNDS_DEFAULT_LIMIT, ge=1, le=settings.NEARBY_BOUNDS_MAX_LIMIT
    ),
    user_id: str = Depends(current_user_id),
    service: NearbySearchService = Depends(get_nearby_service),
) -> dict:
    items = await service.search(
        NearbySearchRequest(
            viewport=Viewport(north=north, south=south, east=east, west=west),
            entity_types=parse_entity_types(types),
            category_ids=parse_category_ids(category_ids),
            exclude_user_id=user_id,
            limit=limit,
        )
    )
    return {
        "success": True,
        "data": {
            "items": [item.to_dict() for item in items],
            "bounds": {"north": north, "south": south, "east": east, "west": west},
            "count": len(items),
        },
    }
