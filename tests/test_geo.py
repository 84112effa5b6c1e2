"""
Geo math: Haversine distance, weighted centroid, bounding radius, medoid.
"""

import pytest

from walkgroups.core.geo import (
    bounding_radius_m,
    centroid,
    distance_m,
    haversine_m,
    medoid,
)
from walkgroups.domain.errors import InvalidInputError
from walkgroups.domain.models import Coordinate

from .conftest import offset


def test_berlin_to_potsdam_is_about_27_km():
    d = haversine_m(52.5200, 13.4050, 52.3906, 13.0645)
    assert 25_000 < d < 30_000


def test_same_point_is_zero():
    a = Coordinate(52.52, 13.405)
    assert distance_m(a, a) == 0.0


def test_short_distances_within_tenth_of_percent():
    a = offset()
    for meters in (100.0, 500.0, 2000.0, 10_000.0, 45_000.0):
        b = offset(north_m=meters)
        assert distance_m(a, b) == pytest.approx(meters, rel=1e-3)


def test_negative_coordinates():
    assert haversine_m(-33.8688, 151.2093, -33.9, 151.2) > 0


def test_weighted_centroid_pulls_toward_heavier_point():
    c = centroid([(Coordinate(52.0, 13.0), 1), (Coordinate(52.0, 13.3), 2)])
    assert c.lat == pytest.approx(52.0)
    assert c.lng == pytest.approx(13.2)


def test_centroid_of_empty_set_raises():
    with pytest.raises(ValueError):
        centroid([])


def test_bounding_radius_is_max_distance():
    center = offset()
    pts = [offset(north_m=300), offset(east_m=-800), offset(north_m=100, east_m=100)]
    assert bounding_radius_m(center, pts) == pytest.approx(800, rel=1e-3)
    assert bounding_radius_m(center, []) == 0.0


def test_medoid_is_one_of_the_points():
    pts = [offset(), offset(north_m=-2000), offset(north_m=-1000)]
    point, total = medoid(pts)
    assert point == pts[2]
    assert total == pytest.approx(2000, rel=1e-3)


@pytest.mark.parametrize("lat,lng", [(91.0, 0.0), (0.0, 181.0), (float("nan"), 0.0)])
def test_coordinate_rejects_out_of_range(lat, lng):
    with pytest.raises(InvalidInputError):
        Coordinate(lat, lng)
