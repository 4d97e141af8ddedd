from math import degrees

import pytest

from core.errors import ValidationError
from models.coordinate import Coordinate
from models.perimeter import Perimeter
from utils.geofence import (
    EARTH_RADIUS_M,
    distance_meters,
    haversine_dist,
    is_within_perimeter,
    validate_coordinate,
)

CENTER = Coordinate(latitude=40.7589, longitude=-73.9851)


def perimeter_around(center: Coordinate, radius: float) -> Perimeter:
    return Perimeter(
        organization_id="org",
        display_name="Site",
        center_lat=center.latitude,
        center_lng=center.longitude,
        radius_meters=radius,
    )


def point_north_of(center: Coordinate, meters: float) -> Coordinate:
    return Coordinate(
        latitude=center.latitude + degrees(meters / EARTH_RADIUS_M),
        longitude=center.longitude,
    )


def test_distance_is_zero_for_same_point():
    assert distance_meters(CENTER, CENTER) == 0.0


def test_distance_is_symmetric():
    other = Coordinate(latitude=40.7700, longitude=-73.9900)
    assert distance_meters(CENTER, other) == pytest.approx(distance_meters(other, CENTER))
    assert distance_meters(CENTER, other) > 0


def test_distance_along_equator():
    # 0.01 degrees of longitude at the equator is ~1112 m
    d = distance_meters(Coordinate(latitude=0, longitude=0), Coordinate(latitude=0, longitude=0.01))
    assert d == pytest.approx(1111.95, abs=0.5)


def test_haversine_matches_coordinate_form():
    assert haversine_dist(0, 0, 0, 0.01) == distance_meters(
        Coordinate(latitude=0, longitude=0), Coordinate(latitude=0, longitude=0.01)
    )


def test_center_is_inside_perimeter():
    assert is_within_perimeter(CENTER, perimeter_around(CENTER, 100))


def test_boundary_counts_as_inside():
    point = point_north_of(CENTER, 100)
    exact_radius = distance_meters(point, CENTER)
    assert exact_radius == pytest.approx(100, abs=1e-6)
    assert is_within_perimeter(point, perimeter_around(CENTER, exact_radius))
    assert not is_within_perimeter(point, perimeter_around(CENTER, exact_radius - 1e-6))


def test_just_outside_radius():
    point = point_north_of(CENTER, 100.001)
    assert not is_within_perimeter(point, perimeter_around(CENTER, 100))


@pytest.mark.parametrize(
    "lat, lng",
    [(91, 0), (-90.5, 0), (0, 180.1), (0, -181), (float("nan"), 0)],
)
def test_validate_coordinate_rejects_out_of_range(lat, lng):
    with pytest.raises(ValidationError):
        validate_coordinate(Coordinate(latitude=lat, longitude=lng))


def test_validate_coordinate_accepts_extremes():
    validate_coordinate(Coordinate(latitude=90, longitude=-180))
    validate_coordinate(Coordinate(latitude=-90, longitude=180))
