"""In-process store used for offline runs and tests."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Sequence

from ..errors import TransportError
from ..schemas.drivers import ApiDriver
from ..schemas.orders import ApiOrder, CreateOrderRequest, CreateOrdersResponse
from ..schemas.zones import ApiZone, AssignDriverResponse, CreateZoneRequest, CreateZonesResponse
from .base import ZoneStore

logger = logging.getLogger(__name__)


class InMemoryZoneStore(ZoneStore):
    """Keeps backend rows in dictionaries keyed by server id, in insertion order."""

    name = "memory"

    def __init__(
        self,
        orders: Iterable[ApiOrder] = (),
        drivers: Iterable[ApiDriver] = (),
        zones: Iterable[ApiZone] = (),
    ) -> None:
        self.orders: dict[str, ApiOrder] = {order.id: order for order in orders}
        self.drivers: dict[str, ApiDriver] = {driver.id: driver for driver in drivers}
        self._zones: dict[str, ApiZone] = {}
        for zone in zones:
            self._zones[zone.id] = zone.model_copy(update={"orders": [], "order_count": 0})
            for api_order in zone.orders:
                self.orders.setdefault(api_order.id, api_order)
                self.orders[api_order.id] = self.orders[api_order.id].model_copy(update={"zone_id": zone.id})
        self.calls: list[str] = []

    async def fetch_orders(self) -> list[ApiOrder]:
        self.calls.append("fetch_orders")
        return list(self.orders.values())

    async def create_orders(self, orders: Sequence[CreateOrderRequest]) -> CreateOrdersResponse:
        self.calls.append("create_orders")
        known_numbers = {order.order_number for order in self.orders.values()}
        created: list[ApiOrder] = []
        skipped = 0
        for request in orders:
            if request.order_number in known_numbers:
                skipped += 1
                continue
            row = ApiOrder(
                id=str(uuid.uuid4()),
                order_number=request.order_number,
                customer_name=request.customer_name,
                address=request.address,
                phone=request.phone,
                notes=request.notes,
                amount=request.amount,
                items=request.items,
                priority=request.priority or "normal",
                latitude=request.latitude,
                longitude=request.longitude,
                driver_id=request.driver_id,
                route_rank=request.route_rank,
                raw_data=request.raw_data,
            )
            self.orders[row.id] = row
            known_numbers.add(request.order_number)
            created.append(row)
        logger.info(f"Stored {len(created)} orders ({skipped} duplicates skipped)")
        return CreateOrdersResponse(success=True, created=len(created), skipped=skipped, orders=created)

    async def fetch_drivers(self) -> list[ApiDriver]:
        self.calls.append("fetch_drivers")
        return [driver for driver in self.drivers.values() if driver.is_active]

    async def fetch_zones(self) -> list[ApiZone]:
        self.calls.append("fetch_zones")
        return [self._with_orders(zone) for zone in self._zones.values()]

    async def create_zones(self, zones: Sequence[CreateZoneRequest]) -> CreateZonesResponse:
        self.calls.append("create_zones")
        created: list[ApiZone] = []
        for request in zones:
            zone = ApiZone(id=str(uuid.uuid4()), name=request.name, center=request.center, radius=request.radius)
            self._zones[zone.id] = zone
            for order_id in request.order_ids:
                if order_id in self.orders:
                    self.orders[order_id] = self.orders[order_id].model_copy(update={"zone_id": zone.id})
            created.append(self._with_orders(zone))
        return CreateZonesResponse(success=True, created=len(created), zones=created)

    async def assign_driver_to_zone(self, zone_server_id: str, driver_id: str) -> AssignDriverResponse:
        self.calls.append("assign_driver_to_zone")
        endpoint = f"/api/zones/{zone_server_id}/assign-driver"
        if zone_server_id not in self._zones:
            raise TransportError("Zone not found", status_code=404, endpoint=endpoint)
        if driver_id not in self.drivers:
            raise TransportError("Driver not found", status_code=400, endpoint=endpoint)
        order_ids: list[str] = []
        for order_id, order in self.orders.items():
            if order.zone_id == zone_server_id:
                self.orders[order_id] = order.model_copy(update={"driver_id": driver_id})
                order_ids.append(order_id)
        return AssignDriverResponse(
            success=True,
            zone_id=zone_server_id,
            driver_id=driver_id,
            updated=len(order_ids),
            order_ids=order_ids,
        )

    def _with_orders(self, zone: ApiZone) -> ApiZone:
        members = [order for order in self.orders.values() if order.zone_id == zone.id]
        return zone.model_copy(update={"orders": members, "order_count": len(members)})
