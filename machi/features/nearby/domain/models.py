"""
Domain models for the nearby search feature.

Requests and candidate queries are explicit dataclasses so repositories
never see ad-hoc filter dictionaries.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from machi.features.nearby.domain.geo import BoundingBox
from machi.models.domain.user_domain import CategorySummary, PublicProfile


class EntityType(StrEnum):
    RECRUITMENT = "RECRUITMENT"
    WANT_TO_DO = "WANT_TO_DO"


ALL_ENTITY_TYPES = frozenset(EntityType)


@dataclass(slots=True, frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(slots=True, frozen=True)
class Viewport:
    north: float
    south: float
    east: float
    west: float

    def to_bounding_box(self) -> BoundingBox:
        return BoundingBox(
            min_lat=self.south, max_lat=self.north, min_lng=self.west, max_lng=self.east
        )


@dataclass(slots=True)
class NearbySearchRequest:
    """Either center + radius_meters or viewport must be set, never both."""

    center: GeoPoint | None = None
    radius_meters: float | None = None
    viewport: Viewport | None = None
    entity_types: frozenset[EntityType] = ALL_ENTITY_TYPES
    category_ids: frozenset[str] | None = None
    exclude_user_id: str | None = None
    limit: int = 50
    now: datetime | None = None


@dataclass(slots=True, frozen=True)
class CandidateQuery:
    """Parameters for one repository candidate fetch."""

    bounds: BoundingBox
    now: datetime
    fetch_limit: int
    category_ids: frozenset[str] | None = None
    exclude_user_id: str | None = None
    # When set, the store returns the rows closest to this point first;
    # otherwise newest first.
    origin: GeoPoint | None = None


@dataclass(slots=True)
class RecruitmentCandidate:
    id: str
    latitude: float
    longitude: float
    title: str
    description: str | None
    scheduled_at: datetime | None
    flexible_time: str | None
    location_name: str | None
    approved_count: int
    # Accepted offers whose receiver holds no approved application
    accepted_offer_count: int
    max_people: int
    creator: PublicProfile
    category: CategorySummary
    created_at: datetime

    @property
    def current_people(self) -> int:
        # creator + approved applicants + accepted offers
        return 1 + self.approved_count + self.accepted_offer_count


@dataclass(slots=True)
class WantToDoCandidate:
    id: str
    latitude: float
    longitude: float
    timing: str
    comment: str | None
    location_name: str | None
    expires_at: datetime
    user: PublicProfile
    category: CategorySummary
    created_at: datetime


@dataclass(slots=True)
class NearbyItem:
    """One ranked search result, tagged with its entity type."""

    entity_type: EntityType
    id: str
    latitude: float
    longitude: float
    distance_meters: float
    category: CategorySummary
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.entity_type.value,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "distance": round(self.distance_meters, 1),
            "category": self.category.to_dict(),
            "created_at": self.created_at.isoformat(),
            **self.details,
        }
