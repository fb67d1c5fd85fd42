"""Supabase-backed store for orders, drivers and zones."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence

from pydantic import ValidationError

from ..db.supabase import get_supabase_client
from ..errors import TransportError
from ..schemas.drivers import ApiDriver
from ..schemas.orders import ApiOrder, CreateOrderRequest, CreateOrdersResponse
from ..schemas.zones import ApiZone, AssignDriverResponse, CenterModel, CreateZoneRequest, CreateZonesResponse
from .base import ZoneStore

logger = logging.getLogger(__name__)

ORDER_COLUMNS = (
    "id, order_number, customer_name, address, phone, notes, amount, items, priority, "
    "latitude, longitude, driver_id, zone_id, route_rank, raw_data"
)


class SupabaseZoneStore(ZoneStore):
    name = "supabase"

    def __init__(self, client: Any | None = None) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise ValueError("Supabase is not configured. Set ZD_SUPABASE_URL and ZD_SUPABASE_KEY.")

    async def _run(self, table: str, operation: Callable[[Any], Any]) -> list[dict[str, Any]]:
        def execute() -> list[dict[str, Any]]:
            response = operation(self.client.table(table)).execute()
            return list(response.data or [])

        try:
            return await asyncio.to_thread(execute)
        except Exception as exc:
            logger.error(f"Supabase call on '{table}' failed: {exc}")
            raise TransportError(f"Supabase call on '{table}' failed: {exc}", endpoint=table) from exc

    async def fetch_orders(self) -> list[ApiOrder]:
        rows = await self._run(
            "orders",
            lambda t: t.select(ORDER_COLUMNS).order("created_at").limit(1000),
        )
        return [_validate(ApiOrder, row, "orders") for row in rows]

    async def create_orders(self, orders: Sequence[CreateOrderRequest]) -> CreateOrdersResponse:
        if not orders:
            return CreateOrdersResponse(success=True)
        wanted = [order.order_number for order in orders]
        existing = await self._run("orders", lambda t: t.select("order_number").in_("order_number", wanted))
        known = {row["order_number"] for row in existing}
        payload = [
            order.model_dump(exclude_none=True)
            for order in orders
            if order.order_number not in known
        ]
        created: list[dict[str, Any]] = []
        if payload:
            created = await self._run("orders", lambda t: t.insert(payload))
        return CreateOrdersResponse(
            success=True,
            created=len(created),
            skipped=len(orders) - len(payload),
            orders=[_validate(ApiOrder, row, "orders") for row in created],
        )

    async def fetch_drivers(self) -> list[ApiDriver]:
        rows = await self._run("drivers", lambda t: t.select("*").eq("is_active", True).order("name"))
        return [_validate(ApiDriver, _driver_row(row), "drivers") for row in rows]

    async def fetch_zones(self) -> list[ApiZone]:
        zone_rows = await self._run("zones", lambda t: t.select("*").order("created_at"))
        order_rows = await self._run(
            "orders",
            lambda t: t.select(ORDER_COLUMNS).not_.is_("zone_id", "null").order("route_rank", nullsfirst=False),
        )
        members: dict[str, list[ApiOrder]] = {}
        for row in order_rows:
            members.setdefault(row["zone_id"], []).append(_validate(ApiOrder, row, "orders"))
        return [_zone_row(row, members.get(row["id"], [])) for row in zone_rows]

    async def create_zones(self, zones: Sequence[CreateZoneRequest]) -> CreateZonesResponse:
        created: list[ApiZone] = []
        for request in zones:
            inserted = await self._run(
                "zones",
                lambda t, request=request: t.insert(
                    {
                        "name": request.name,
                        "center_lat": request.center.lat,
                        "center_lng": request.center.lng,
                        "radius": request.radius,
                    }
                ),
            )
            zone_id = inserted[0]["id"]
            assigned: list[dict[str, Any]] = []
            if request.order_ids:
                assigned = await self._run(
                    "orders",
                    lambda t, ids=request.order_ids, zid=zone_id: t.update({"zone_id": zid}).in_("id", ids),
                )
            created.append(_zone_row(inserted[0], [_validate(ApiOrder, row, "orders") for row in assigned]))
        return CreateZonesResponse(success=True, created=len(created), zones=created)

    async def assign_driver_to_zone(self, zone_server_id: str, driver_id: str) -> AssignDriverResponse:
        endpoint = f"zones/{zone_server_id}"
        if not await self._run("zones", lambda t: t.select("id").eq("id", zone_server_id)):
            raise TransportError("Zone not found", status_code=404, endpoint=endpoint)
        if not await self._run("drivers", lambda t: t.select("id").eq("id", driver_id)):
            raise TransportError("Driver not found", status_code=400, endpoint=endpoint)
        updated = await self._run(
            "orders",
            lambda t: t.update({"driver_id": driver_id}).eq("zone_id", zone_server_id),
        )
        return AssignDriverResponse(
            success=True,
            zone_id=zone_server_id,
            driver_id=driver_id,
            updated=len(updated),
            order_ids=[row["id"] for row in updated],
        )


def _driver_row(row: dict[str, Any]) -> dict[str, Any]:
    lat, lng = row.get("location_lat"), row.get("location_lng")
    location = {"lat": float(lat), "lng": float(lng)} if lat is not None and lng is not None else None
    return {**row, "location": location}


def _zone_row(row: dict[str, Any], orders: list[ApiOrder]) -> ApiZone:
    return ApiZone(
        id=row["id"],
        name=row["name"],
        center=CenterModel(lat=float(row["center_lat"]), lng=float(row["center_lng"])),
        radius=row.get("radius"),
        orders=orders,
        order_count=len(orders),
    )


def _validate(model: Any, row: dict[str, Any], table: str) -> Any:
    try:
        return model.model_validate(row)
    except ValidationError as exc:
        raise TransportError(f"Unexpected row shape in '{table}': {exc}", endpoint=table) from exc
