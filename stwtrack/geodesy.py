"""
Spherical geodesy and speed/direction vector helpers.

All angles are degrees at the public boundary; radians are used only
internally. Directions follow the navigation convention: 0 = north,
clockwise positive, so east = speed * sin(dir) and north = speed * cos(dir).
"""

import math
from typing import Tuple

EARTH_RADIUS_KM = 6371.0
KNOTS_PER_MS = 1.943844
NM_PER_KM = 0.539956803


def normalize_360(deg: float) -> float:
    """Wrap an angle into [0, 360)."""
    x = deg % 360.0
    # -1e-17 % 360 rounds to 360.0
    return 0.0 if x >= 360.0 else x


def to_lon360(lon: float) -> float:
    """Convert longitude from [-180, 180] to the 0-360 grid convention."""
    return lon + 360.0 if lon < 0 else lon


def from_lon360(lon: float) -> float:
    """Convert a 0-360 longitude back to [-180, 180)."""
    return lon - 360.0 if lon >= 180.0 else lon


def ms_to_knots(speed_ms: float) -> float:
    return speed_ms * KNOTS_PER_MS


def km_to_nm(km: float) -> float:
    return km * NM_PER_KM


def distance_and_bearing(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> Tuple[float, float]:
    """
    Great-circle distance and initial bearing between two points.

    Args:
        lat1, lon1: First point in degrees
        lat2, lon2: Second point in degrees

    Returns:
        (distance_km, bearing_deg) with bearing in [0, 360)
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)

    a = (math.sin(dphi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    y = math.sin(dlam) * math.cos(phi2)
    x = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(dlam))

    return EARTH_RADIUS_KM * c, normalize_360(math.degrees(math.atan2(y, x)))


def destination_point(
    lat: float, lon: float, bearing_deg: float, distance_km: float
) -> Tuple[float, float]:
    """
    Point reached by travelling distance_km along bearing_deg from (lat, lon).

    Returns:
        (lat, lon) in degrees, longitude wrapped to [-180, 180)
    """
    delta = distance_km / EARTH_RADIUS_KM
    theta = math.radians(bearing_deg)
    phi1 = math.radians(lat)
    lam1 = math.radians(lon)

    sin_phi2 = (math.sin(phi1) * math.cos(delta) +
                math.cos(phi1) * math.sin(delta) * math.cos(theta))
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))

    y = math.sin(theta) * math.sin(delta) * math.cos(phi1)
    x = math.cos(delta) - math.sin(phi1) * sin_phi2
    lam2 = lam1 + math.atan2(y, x)

    lon2 = (math.degrees(lam2) + 540.0) % 360.0 - 180.0
    return math.degrees(phi2), lon2


def vector_from_speed_direction(speed: float, dir_deg: float) -> Tuple[float, float]:
    """Split a speed/direction pair into (east, north) components."""
    theta = math.radians(dir_deg)
    return speed * math.sin(theta), speed * math.cos(theta)


def speed_direction_from_vector(east: float, north: float) -> Tuple[float, float]:
    """Inverse of vector_from_speed_direction: (speed, dir_deg in [0, 360))."""
    speed = math.hypot(east, north)
    return speed, normalize_360(math.degrees(math.atan2(east, north)))
