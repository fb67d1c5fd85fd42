"""Nearest-driver selection for zone centers."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from ..models.domain import Driver, Location, Zone
from .geospatial import location_distance_km

logger = logging.getLogger(__name__)


def nearest_driver(center: Location, drivers: Sequence[Driver]) -> str:
    """Return the id of the located driver closest to ``center``.

    Ties go to the earliest driver. When no driver has a location the first
    driver is returned as a fallback, and an empty list yields ``""``.
    """

    if not drivers:
        return ""
    located = [driver for driver in drivers if driver.location is not None]
    if not located:
        return drivers[0].driver_id
    best = min(located, key=lambda driver: location_distance_km(center, driver.location))
    return best.driver_id


def apply_default_drivers(zones: Sequence[Zone], drivers: Sequence[Driver]) -> list[Zone]:
    """Fill in a display-only nearest driver for zones that have none."""

    if not drivers:
        return list(zones)
    result: list[Zone] = []
    for zone in zones:
        if zone.is_unassigned or zone.assigned_driver_id:
            result.append(zone)
            continue
        driver_id = nearest_driver(zone.center, drivers)
        logger.debug(f"Defaulting {zone.zone_id} to nearest driver {driver_id}")
        result.append(replace(zone, assigned_driver_id=driver_id or None, driver_is_default=bool(driver_id)))
    return result
