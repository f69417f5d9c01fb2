"""
Pure geometry helpers for nearby search.

The bounding box is a cheap rectangular prefilter that the store can
answer with a range scan; it is always at least as large as the search
circle. Exact filtering and ranking use the haversine distance.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_000.0


@dataclass(slots=True, frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        if not self.min_lat <= lat <= self.max_lat:
            return False
        return any(low <= lng <= high for low, high in self.longitude_ranges())

    def longitude_ranges(self) -> list[tuple[float, float]]:
        """
        Longitude spans in [-180, 180] covered by the box.

        A box that runs past the antimeridian is split in two.
        """
        if self.min_lng < -180.0:
            return [(self.min_lng + 360.0, 180.0), (-180.0, self.max_lng)]
        if self.max_lng > 180.0:
            return [(self.min_lng, 180.0), (-180.0, self.max_lng - 360.0)]
        return [(self.min_lng, self.max_lng)]

    def center(self) -> tuple[float, float]:
        return (self.min_lat + self.max_lat) / 2, (self.min_lng + self.max_lng) / 2

    def is_empty(self) -> bool:
        return self.min_lat == self.max_lat and self.min_lng == self.max_lng


def bounding_box(lat: float, lng: float, radius_meters: float) -> BoundingBox:
    """
    Rectangle around (lat, lng) that encloses a circle of radius_meters.

    A non-positive radius gives a zero-area box at the centre, which
    matches nothing but the exact point.
    """
    if radius_meters <= 0:
        return BoundingBox(lat, lat, lng, lng)

    angular = radius_meters / EARTH_RADIUS_M
    lat_delta = math.degrees(angular)
    cos_lat = math.cos(math.radians(lat))

    # The widest meridian offset of the circle is asin(sin(d) / cos(lat)).
    # Once the circle reaches a pole that ratio hits 1 and every meridian
    # is covered.
    if angular >= math.pi / 2 or cos_lat <= 1e-12 or math.sin(angular) >= cos_lat:
        min_lng, max_lng = -180.0, 180.0
    else:
        lng_delta = math.degrees(math.asin(math.sin(angular) / cos_lat))
        min_lng, max_lng = lng - lng_delta, lng + lng_delta

    return BoundingBox(
        min_lat=max(lat - lat_delta, -90.0),
        max_lat=min(lat + lat_delta, 90.0),
        min_lng=min_lng,
        max_lng=max_lng,
    )


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points (haversine)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(lat: float, lng: float) -> bool:
    return (
        lat is not None
        and lng is not None
        and math.isfinite(lat)
        and math.isfinite(lng)
        and -90.0 <= lat <= 90.0
        and -180.0 <= lng <= 180.0
    )
