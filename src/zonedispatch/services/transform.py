"""Conversions between backend wire rows, domain records and service models."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping, Optional, Sequence

from ..errors import InputError
from ..models.domain import Driver, Location, Order, Zone
from ..schemas.drivers import ApiDriver, DriverModel
from ..schemas.orders import ApiOrder, CreateOrderRequest, OrderModel
from ..schemas.routing import OptimizeRouteResponse
from ..schemas.zones import ApiZone, CenterModel, CreateZoneRequest, ZoneModel
from .geospatial import parse_coordinates
from .matching import apply_default_drivers
from .routing.models import RouteSequence, SequencedStop
from .zoning.builder import shared_driver, unassigned_zone

logger = logging.getLogger(__name__)


def _coordinates(order_ref: str, lat: object, lng: object) -> tuple[Optional[float], Optional[float]]:
    try:
        parsed = parse_coordinates(lat, lng)
    except InputError as exc:
        logger.debug(f"Order {order_ref} treated as uncoordinated: {exc}")
        return None, None
    if parsed is None:
        return None, None
    return parsed


def order_from_api(row: ApiOrder) -> Order:
    latitude, longitude = _coordinates(row.id, row.latitude, row.longitude)
    return Order(
        order_id=row.order_number or row.id,
        server_id=row.id,
        customer_name=row.customer_name,
        address=row.address,
        latitude=latitude,
        longitude=longitude,
        driver_id=row.driver_id,
        rank=row.route_rank,
        zone_server_id=row.zone_id,
        amount=row.amount,
        items=row.items,
        phone=row.phone,
        notes=row.notes,
        priority=row.priority,
        raw=dict(row.raw_data or {}),
    )


def order_from_request(request: CreateOrderRequest) -> Order:
    latitude, longitude = _coordinates(request.order_number, request.latitude, request.longitude)
    return Order(
        order_id=request.order_number,
        customer_name=request.customer_name,
        address=request.address,
        latitude=latitude,
        longitude=longitude,
        driver_id=request.driver_id,
        rank=request.route_rank,
        amount=request.amount,
        items=request.items,
        phone=request.phone,
        notes=request.notes,
        priority=request.priority or "normal",
        raw=dict(request.raw_data or {}),
    )


def order_to_api(order: Order) -> ApiOrder:
    return ApiOrder(
        id=order.identifier,
        order_number=order.order_id,
        customer_name=order.customer_name,
        address=order.address,
        phone=order.phone,
        notes=order.notes,
        amount=order.amount,
        items=order.items,
        priority=order.priority,
        latitude=order.latitude,
        longitude=order.longitude,
        driver_id=order.driver_id,
        zone_id=order.zone_server_id,
        route_rank=order.rank,
        raw_data=dict(order.raw) or None,
    )


def order_to_model(order: Order) -> OrderModel:
    return OrderModel(
        order_id=order.order_id,
        server_id=order.server_id,
        customer_name=order.customer_name,
        address=order.address,
        latitude=order.latitude,
        longitude=order.longitude,
        driver_id=order.driver_id,
        rank=order.rank,
        zone_server_id=order.zone_server_id,
        amount=order.amount,
        items=order.items,
        phone=order.phone,
        notes=order.notes,
        priority=order.priority,
    )


def _initials(name: str) -> str:
    return "".join(part[0] for part in name.split() if part)[:2].upper()


def driver_from_api(row: ApiDriver) -> Driver:
    location = Location(row.location.lat, row.location.lng) if row.location else None
    return Driver(
        driver_id=row.id,
        name=row.name,
        initials=row.initials or _initials(row.name),
        phone=row.phone,
        color=row.color,
        location=location,
        is_active=row.is_active,
    )


def driver_from_model(model: DriverModel) -> Driver:
    location = Location(model.location.lat, model.location.lng) if model.location else None
    return Driver(
        driver_id=model.driver_id,
        name=model.name,
        initials=model.initials or _initials(model.name),
        phone=model.phone,
        color=model.color,
        location=location,
    )


def driver_to_model(driver: Driver) -> DriverModel:
    location = CenterModel(lat=driver.location.latitude, lng=driver.location.longitude) if driver.location else None
    return DriverModel(
        driver_id=driver.driver_id,
        name=driver.name,
        initials=driver.initials,
        phone=driver.phone,
        color=driver.color,
        location=location,
    )


def zone_from_api(row: ApiZone, orders_by_server_id: Mapping[str, Order] | None = None) -> Zone:
    """Build a zone from a persisted row, preferring already-known order records."""

    known = orders_by_server_id or {}
    members = tuple(known.get(api_order.id) or order_from_api(api_order) for api_order in row.orders)
    return Zone(
        zone_id=row.name,
        server_id=row.id,
        center=Location(row.center.lat, row.center.lng),
        orders=members,
        assigned_driver_id=shared_driver(members) if members else None,
        radius_km=row.radius,
    )


def zones_from_api(
    rows: Iterable[ApiZone],
    orders: Sequence[Order] = (),
    drivers: Sequence[Driver] = (),
) -> list[Zone]:
    """Persisted zones with members and nearest drivers defaulted.

    Orders no persisted zone claims are gathered into the Unassigned Zone,
    which is synthesized (without a server id) when the store has none.
    """

    by_server_id = {order.server_id: order for order in orders if order.server_id}
    zones = [zone_from_api(row, by_server_id) for row in rows]
    zoned = {order.identifier for zone in zones for order in zone.orders}
    orphans = tuple(order for order in orders if order.identifier not in zoned)
    if orphans:
        index = next((i for i, zone in enumerate(zones) if zone.is_unassigned), None)
        if index is None:
            zones.append(unassigned_zone(orphans))
        else:
            zones[index] = replace(zones[index], orders=zones[index].orders + orphans)
    return apply_default_drivers(zones, drivers)


def zone_to_create_request(zone: Zone) -> CreateZoneRequest:
    return CreateZoneRequest(
        name=zone.zone_id,
        center=CenterModel(lat=zone.center.latitude, lng=zone.center.longitude),
        radius=zone.radius_km,
        order_ids=[order.server_id for order in zone.orders if order.server_id],
    )


def zone_to_model(zone: Zone, state: str = "unassigned", include_orders: bool = True) -> ZoneModel:
    return ZoneModel(
        zone_id=zone.zone_id,
        server_id=zone.server_id,
        center=CenterModel(lat=zone.center.latitude, lng=zone.center.longitude),
        order_count=zone.order_count,
        radius_km=zone.radius_km,
        assigned_driver_id=zone.assigned_driver_id,
        default_driver=zone.driver_is_default,
        state=state,
        orders=[order_to_model(order) for order in zone.orders] if include_orders else [],
    )


def route_sequence_from_api(payload: OptimizeRouteResponse) -> RouteSequence:
    stops = tuple(
        SequencedStop(
            order_id=item.order_id,
            order_number=item.order_number,
            rank=item.rank,
            distance_from_prev_km=item.distance_from_prev,
        )
        for item in sorted(payload.orders, key=lambda item: item.rank)
    )
    return RouteSequence(
        driver_id=payload.driver_id,
        stops=stops,
        total_distance_km=payload.total_distance,
        total_duration_min=payload.total_duration,
    )
