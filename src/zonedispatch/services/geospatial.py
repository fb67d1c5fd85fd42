"""Geospatial helper functions."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from shapely.geometry import MultiPoint

from ..errors import DegenerateGeometryError, InputError
from ..models.domain import Location, Order

EARTH_RADIUS_KM = 6371.0
WORLD_BOUNDS: tuple[float, float, float, float] = (-180.0, -85.0, 180.0, 85.0)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def location_distance_km(a: Location, b: Location) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def order_distance_km(first: Order, second: Order) -> Optional[float]:
    """Distance between two orders, or None when either one lacks coordinates."""

    a, b = first.location, second.location
    if a is None or b is None:
        return None
    return location_distance_km(a, b)


def format_distance(km: float) -> str:
    """Render a distance for display: whole meters below 1 km, one decimal above."""

    if not math.isfinite(km):
        raise InputError(f"Cannot format non-finite distance {km!r}")
    value = Decimal(str(km))
    if value < 1:
        meters = (value * 1000).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{meters} m"
    return f"{value.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)} km"


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    try:
        return parse_coordinates(lat, lng) is not None
    except InputError:
        return False


def parse_coordinates(lat: Any, lng: Any) -> Optional[tuple[float, float]]:
    """Parse a raw latitude/longitude pair.

    Returns None when both values are absent. Raises InputError when only one is
    present, when a value is not numeric, not finite or out of range.
    """

    lat_missing = _is_blank(lat)
    lng_missing = _is_blank(lng)
    if lat_missing and lng_missing:
        return None
    if lat_missing or lng_missing:
        raise InputError(f"Coordinate pair is incomplete: latitude={lat!r}, longitude={lng!r}")
    try:
        lat_value = float(lat)
        lng_value = float(lng)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Coordinates are not numeric: latitude={lat!r}, longitude={lng!r}") from exc
    if isinstance(lat, bool) or isinstance(lng, bool):
        raise InputError("Coordinates must not be booleans")
    if not (math.isfinite(lat_value) and math.isfinite(lng_value)):
        raise InputError(f"Coordinates are not finite: latitude={lat!r}, longitude={lng!r}")
    if not (-90.0 <= lat_value <= 90.0 and -180.0 <= lng_value <= 180.0):
        raise InputError(f"Coordinates out of range: latitude={lat_value}, longitude={lng_value}")
    return lat_value, lng_value


def bounding_box(
    locations: Iterable[Location], padding: float = 0.0
) -> tuple[float, float, float, float]:
    """Return (west, south, east, north) around the finite locations, padded in degrees."""

    coords = [
        (loc.longitude, loc.latitude)
        for loc in locations
        if math.isfinite(loc.latitude) and math.isfinite(loc.longitude)
    ]
    if not coords:
        raise DegenerateGeometryError("No finite coordinates to bound")
    west, south, east, north = MultiPoint(coords).bounds
    bounds = (west - padding, south - padding, east + padding, north + padding)
    if not all(math.isfinite(value) for value in bounds):
        raise DegenerateGeometryError(f"Bounding box is not finite: {bounds}")
    return bounds


def radius_km(center: Location, locations: Iterable[Location]) -> float:
    """Largest great-circle distance from center to any of the locations."""

    return max((location_distance_km(center, loc) for loc in locations), default=0.0)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
