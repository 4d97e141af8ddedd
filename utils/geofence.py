# app/utils/geofence.py

from math import radians, sin, cos, sqrt, atan2
from typing import TYPE_CHECKING

from core.errors import ValidationError
from models.coordinate import Coordinate

if TYPE_CHECKING:
    from models.perimeter import Perimeter

EARTH_RADIUS_M = 6371000


def haversine_dist(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    R = EARTH_RADIUS_M
    φ1, φ2 = radians(lat1), radians(lat2)
    Δφ = radians(lat2 - lat1)
    Δλ = radians(lng2 - lng1)

    a = sin(Δφ/2)**2 + cos(φ1) * cos(φ2) * sin(Δλ/2)**2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return R * c


def is_within_radius(
    lat: float,
    lng: float,
    center_lat: float,
    center_lng: float,
    radius_m: float
) -> bool:

    return haversine_dist(lat, lng, center_lat, center_lng) <= radius_m


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates, in meters."""
    return haversine_dist(a.latitude, a.longitude, b.latitude, b.longitude)


def is_within_perimeter(point: Coordinate, perimeter: "Perimeter") -> bool:
    """True when the point lies inside or exactly on the perimeter's circle."""
    return is_within_radius(
        point.latitude,
        point.longitude,
        perimeter.center_lat,
        perimeter.center_lng,
        perimeter.radius_meters,
    )


def validate_coordinate(point: Coordinate, field: str = "location") -> None:
    # NaN fails both comparisons, so it is rejected here too
    if not -90.0 <= point.latitude <= 90.0:
        raise ValidationError(f"{field}: latitude {point.latitude} is outside [-90, 90].")
    if not -180.0 <= point.longitude <= 180.0:
        raise ValidationError(f"{field}: longitude {point.longitude} is outside [-180, 180].")
