"""
Domain subpackage for nearby search.
"""

from .geo import BoundingBox, bounding_box, distance_meters, is_valid_coordinate
from .models import (
    ALL_ENTITY_TYPES,
    CandidateQuery,
    EntityType,
    GeoPoint,
    NearbyItem,
    NearbySearchRequest,
    RecruitmentCandidate,
    Viewport,
    WantToDoCandidate,
)

__all__ = [
    "ALL_ENTITY_TYPES",
    "BoundingBox",
    "CandidateQuery",
    "EntityType",
    "GeoPoint",
    "NearbyItem",
    "NearbySearchRequest",
    "RecruitmentCandidate",
    "Viewport",
    "WantToDoCandidate",
    "bounding_box",
    "distance_meters",
    "is_valid_coordinate",
]
