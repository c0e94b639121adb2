"""Great-circle distance between coordinate pairs."""

import math
from typing import Union

from .models import GeoPoint

EARTH_RADIUS_KM = 6371.0

Coordinates = Union[GeoPoint, tuple[float, float], list[float]]


def _lng_lat(point: Coordinates) -> tuple[float, float]:
    if isinstance(point, GeoPoint):
        return point.coordinates
    longitude, latitude = point
    return float(longitude), float(latitude)


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """
    Distance in kilometers between two points using the Haversine formula.

    Points are GeoPoints or (longitude, latitude) pairs.
    """
    lng1, lat1 = _lng_lat(a)
    lng2, lat2 = _lng_lat(b)

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    h = min(1.0, h)  # rounding can push antipodal points just past 1
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
