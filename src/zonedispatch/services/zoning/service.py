"""Stateless zoning runs over posted orders."""

from __future__ import annotations

import logging

from ...persistence.filesystem import FileStorage
from ...schemas.zones import BuildZonesRequest, BuildZonesResponse
from ..outputs.formatter import build_response_to_json, zones_to_csv
from ..transform import order_from_request, zone_to_model
from .builder import ZoneBuilder, partition_orders


def process_build_request(payload: BuildZonesRequest, builder: ZoneBuilder | None = None) -> BuildZonesResponse:
    builder = builder or ZoneBuilder()
    orders = [order_from_request(item) for item in payload.orders]
    with_coords, without_coords = partition_orders(orders)
    zones = builder.build_zones(orders)

    response = BuildZonesResponse(
        zones=[zone_to_model(zone, "assigned" if zone.is_assigned else "unassigned") for zone in zones],
        total_orders=len(orders),
        unassigned_orders=len(without_coords),
        density=builder.density_for(len(with_coords)) if with_coords else None,
    )
    logging.info(f"Built {len(zones)} zones for {len(orders)} orders ({len(without_coords)} without coordinates)")

    if payload.persist:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=payload.run_label or "zones")
        response = response.model_copy(update={"output_dir": str(run_dir)})
        storage.write_json(run_dir / "summary.json", build_response_to_json(response))
        storage.write_csv(run_dir / "assignments.csv", zones_to_csv(zones))
        logging.info(f"Zoning outputs written to {run_dir}")

    return response
