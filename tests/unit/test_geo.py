"""
Tests for the nearby geometry helpers.
"""

import math

import pytest

from machi.features.nearby.domain.geo import (
    bounding_box,
    distance_meters,
    is_valid_coordinate,
)

TOKYO_STATION = (35.681, 139.767)


def test_distance_to_self_is_zero():
    assert distance_meters(*TOKYO_STATION, *TOKYO_STATION) == 0


def test_distance_is_symmetric():
    a = TOKYO_STATION
    b = (35.70, 139.80)
    assert distance_meters(*a, *b) == pytest.approx(distance_meters(*b, *a))


def test_distance_known_values():
    assert distance_meters(35.681, 139.767, 35.6812, 139.7671) == pytest.approx(24.2, abs=1.0)
    assert distance_meters(35.681, 139.767, 35.70, 139.80) == pytest.approx(3700, rel=0.03)
    # One degree of latitude on the mean sphere
    assert distance_meters(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)


def test_bounding_box_contains_circle_edge_points():
    lat, lng = TOKYO_STATION
    radius = 1000
    box = bounding_box(lat, lng, radius)

    for bearing in range(0, 360, 15):
        theta = math.radians(bearing)
        # Walk slightly less than the radius along the bearing
        d = (radius * 0.999) / 6_371_000
        phi1, lam1 = math.radians(lat), math.radians(lng)
        phi2 = math.asin(
            math.sin(phi1) * math.cos(d) + math.cos(phi1) * math.sin(d) * math.cos(theta)
        )
        lam2 = lam1 + math.atan2(
            math.sin(theta) * math.sin(d) * math.cos(phi1),
            math.cos(d) - math.sin(phi1) * math.sin(phi2),
        )
        point = (math.degrees(phi2), math.degrees(lam2))

        assert distance_meters(lat, lng, *point) <= radius
        assert box.contains(*point)


def test_bounding_box_zero_radius_is_point():
    box = bounding_box(10.0, 20.0, 0)
    assert box.is_empty()
    assert box.contains(10.0, 20.0)
    assert not box.contains(10.0001, 20.0)


def test_bounding_box_near_pole_spans_all_longitudes():
    box = bounding_box(89.99, 0.0, 5000)
    assert box.min_lng == -180.0
    assert box.max_lng == 180.0
    assert box.max_lat == 90.0


def test_bounding_box_is_clamped_to_valid_latitudes():
    box = bounding_box(-89.999, 10.0, 50_000)
    assert box.min_lat == -90.0


@pytest.mark.parametrize(
    ("lat", "lng", "valid"),
    [
        (0, 0, True),
        (90, 180, True),
        (-90, -180, True),
        (90.0001, 0, False),
        (0, 180.5, False),
        (float("nan"), 0, False),
        (0, float("inf"), False),
    ],
)
def test_is_valid_coordinate(lat, lng, valid):
    assert is_valid_coordinate(lat, lng) is valid


def test_bounding_box_across_antimeridian_splits_longitudes():
    box = bounding_box(0.0, 179.999, 5000)

    ranges = box.longitude_ranges()

    assert len(ranges) == 2
    assert ranges[0][1] == 180.0
    assert ranges[1][0] == -180.0
    assert all(-180.0 <= low <= high <= 180.0 for low, high in ranges)


def test_bounding_box_keeps_points_on_far_side_of_antimeridian():
    box = bounding_box(0.0, 179.999, 5000)
    # About 1.1 km east, on the other side of the antimeridian
    point = (0.0, -179.991)

    assert distance_meters(0.0, 179.999, *point) < 5000
    assert box.contains(*point)
    assert not box.contains(0.0, 0.0)


def test_bounding_box_away_from_antimeridian_is_one_range():
    box = bounding_box(*TOKYO_STATION, 1000)
    assert box.longitude_ranges() == [(box.min_lng, box.max_lng)]
