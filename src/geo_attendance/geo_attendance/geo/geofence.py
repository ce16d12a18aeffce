from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from ..common.validators import require_number, require_positive_radius
from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class GeoPoint:
    """A (latitude, longitude) pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        lat = require_number(self.latitude, "latitude")
        lng = require_number(self.longitude, "longitude")
        if not -90.0 <= lat <= 90.0:
            raise ValidationError("latitude must be between -90 and 90")
        if not -180.0 <= lng <= 180.0:
            raise ValidationError("longitude must be between -180 and 180")
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lng)

    @classmethod
    def from_mapping(cls, data: Any) -> "GeoPoint":
        """Build a point from ``{"latitude", "longitude"}`` (``lat``/``lng`` also accepted)."""
        if isinstance(data, GeoPoint):
            return data
        if not isinstance(data, Mapping):
            raise ValidationError("Valid location data is required (latitude and longitude)")
        lat = data.get("latitude", data.get("lat"))
        lng = data.get("longitude", data.get("lng"))
        if lat is None or lng is None:
            raise ValidationError("Valid location data is required (latitude and longitude)")
        return cls(latitude=lat, longitude=lng)

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great circle distance between two points using the Haversine formula.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance between the points in meters
    """
    a = GeoPoint.from_mapping(a)
    b = GeoPoint.from_mapping(b)

    lat1, lon1, lat2, lon2 = map(math.radians, [a.latitude, a.longitude, b.latitude, b.longitude])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Clamp against rounding drift above 1.0 for antipodal points.
    c = 2 * math.asin(math.sqrt(min(1.0, h)))

    return c * EARTH_RADIUS_METERS


def is_within_radius(center: GeoPoint, radius_meters: float, point: GeoPoint) -> bool:
    """True when ``point`` lies inside the circle; the boundary counts as inside."""
    within, _ = check_geofence(center, radius_meters, point)
    return within


def check_geofence(center: GeoPoint, radius_meters: float, point: GeoPoint) -> Tuple[bool, float]:
    """
    Check a point against a circular geofence.

    Returns:
        Tuple of (is_within_radius, distance)
    """
    radius = require_positive_radius(radius_meters)
    distance = distance_meters(center, point)
    return distance <= radius, distance
