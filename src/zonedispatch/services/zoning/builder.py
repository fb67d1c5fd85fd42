"""Build display zones from a raw order set."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ...config import settings
from ...errors import DegenerateGeometryError
from ...models.domain import UNASSIGNED_ZONE_ID, Location, Order, Zone
from ..geospatial import WORLD_BOUNDS, bounding_box, radius_km
from .clustering import GeoPoint, SpatialClusterer, describe

logger = logging.getLogger(__name__)

UNASSIGNED_CENTER = Location(latitude=0.0, longitude=0.0)


def partition_orders(orders: Iterable[Order]) -> tuple[list[Order], list[Order]]:
    """Split orders into (coordinated, uncoordinated), preserving order."""

    with_coords: list[Order] = []
    without_coords: list[Order] = []
    for order in orders:
        (with_coords if order.has_coordinates else without_coords).append(order)
    return with_coords, without_coords


def unassigned_zone(orders: Sequence[Order]) -> Zone:
    return Zone(zone_id=UNASSIGNED_ZONE_ID, center=UNASSIGNED_CENTER, orders=tuple(orders))


def shared_driver(orders: Sequence[Order]) -> Optional[str]:
    """The one driver the zone's assigned orders share; unassigned orders are ignored."""

    drivers = {order.driver_id for order in orders if order.driver_id}
    if len(drivers) == 1:
        return next(iter(drivers))
    return None


class ZoneBuilder:
    def __init__(
        self,
        radius: float | None = None,
        min_points: int | None = None,
        extent: int | None = None,
        coarse_density: int | None = None,
        fine_density: int | None = None,
        density_order_threshold: int | None = None,
        padding: float | None = None,
    ) -> None:
        self.radius = radius if radius is not None else settings.cluster_radius
        self.min_points = min_points if min_points is not None else settings.cluster_min_points
        self.extent = extent if extent is not None else settings.cluster_extent
        self.coarse_density = coarse_density if coarse_density is not None else settings.coarse_density
        self.fine_density = fine_density if fine_density is not None else settings.fine_density
        self.density_order_threshold = (
            density_order_threshold if density_order_threshold is not None else settings.density_order_threshold
        )
        self.padding = padding if padding is not None else settings.bbox_padding_degrees
        if self.fine_density < self.coarse_density:
            raise ValueError("fine_density must not be coarser than coarse_density")

    def density_for(self, order_count: int) -> int:
        if order_count > self.density_order_threshold:
            return self.fine_density
        return self.coarse_density

    def bounding_box(self, orders: Sequence[Order]) -> tuple[float, float, float, float]:
        locations = [order.location for order in orders if order.location is not None]
        try:
            return bounding_box(locations, padding=self.padding)
        except DegenerateGeometryError as exc:
            logger.warning(f"Falling back to world bounds: {exc}")
            return WORLD_BOUNDS

    def build_zones(self, orders: Iterable[Order]) -> list[Zone]:
        with_coords, without_coords = partition_orders(orders)

        if not with_coords:
            return [unassigned_zone(without_coords)] if without_coords else []

        bbox = self.bounding_box(with_coords)
        density = self.density_for(len(with_coords))
        clusterer = SpatialClusterer(
            radius=self.radius,
            max_zoom=density,
            min_points=self.min_points,
            extent=self.extent,
        )
        points = [GeoPoint(order.latitude, order.longitude, order) for order in with_coords]
        clusters = clusterer.cluster(points, zoom=density, bbox=bbox)
        logger.info(f"Zoning {len(with_coords)} orders at density {density}: {describe(clusters)}")

        zones: list[Zone] = []
        for number, cluster in enumerate(clusters, start=1):
            members = tuple(point.payload for point in cluster.members)
            center = Location(latitude=cluster.latitude, longitude=cluster.longitude)
            zones.append(
                Zone(
                    zone_id=f"Zone {number}",
                    center=center,
                    orders=members,
                    assigned_driver_id=shared_driver(members),
                    radius_km=radius_km(center, (order.location for order in members)),
                )
            )

        if without_coords:
            zones.append(unassigned_zone(without_coords))
        return zones


def build_zones(orders: Iterable[Order], builder: ZoneBuilder | None = None) -> list[Zone]:
    """Group orders into zones with the configured clustering policy."""

    return (builder or ZoneBuilder()).build_zones(orders)
