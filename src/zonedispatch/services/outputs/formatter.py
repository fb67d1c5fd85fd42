"""Utilities to serialize zoning results into JSON/CSV artifacts."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ...models.domain import Zone
from ...schemas.zones import BuildZonesResponse
from ..geospatial import format_distance, location_distance_km

FIELDNAMES = [
    "zone_id",
    "order_id",
    "customer_name",
    "address",
    "latitude",
    "longitude",
    "driver_id",
    "distance_from_center",
]


def build_response_to_json(response: BuildZonesResponse) -> dict:
    return response.model_dump(by_alias=True)


def zones_to_csv(zones: Sequence[Zone]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=FIELDNAMES)
    writer.writeheader()
    for zone in zones:
        for order in zone.orders:
            location = order.location
            distance = ""
            if location is not None and not zone.is_unassigned:
                distance = format_distance(location_distance_km(zone.center, location))
            writer.writerow(
                {
                    "zone_id": zone.zone_id,
                    "order_id": order.order_id,
                    "customer_name": order.customer_name,
                    "address": order.address,
                    "latitude": "" if order.latitude is None else order.latitude,
                    "longitude": "" if order.longitude is None else order.longitude,
                    "driver_id": order.driver_id or zone.assigned_driver_id or "",
                    "distance_from_center": distance,
                }
            )
    return buffer.getvalue()
