"""Optimistic driver assignment and synchronization of the zone cache."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from ...config import settings
from ...errors import (
    DispatchError,
    DriverNotFoundError,
    InputError,
    TransportError,
    ZoneNotFoundError,
)
from ...models.domain import Order, Zone
from ...persistence.base import ZoneStore
from ...schemas.orders import CreateOrderRequest, CreateOrdersResponse
from ...schemas.zones import ApiZone, CreateZonesResponse
from ..matching import apply_default_drivers
from ..routing.models import RouteSequence
from ..routing.sequencing import RouteSequencingClient
from ..transform import driver_from_api, order_from_api, zone_to_create_request, zones_from_api
from ..zoning.builder import ZoneBuilder
from .store import ZoneCache

logger = logging.getLogger(__name__)


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"


class ZoneState(str, Enum):
    UNASSIGNED = "unassigned"
    PENDING = "pending"
    ASSIGNED = "assigned"


@dataclass(frozen=True, slots=True)
class MutationResult:
    status: AssignmentStatus
    zone_id: str
    driver_id: str
    updated_orders: int = 0
    error: Optional[DispatchError] = None

    @property
    def ok(self) -> bool:
        return self.status is AssignmentStatus.ASSIGNED

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class ZoneAssignmentCoordinator:
    """Applies cache mutations ahead of the store and undoes them when the store fails.

    Each assignment snapshots the cache as it is when the call starts, so
    concurrent assignments compose; two overlapping assignments that both fail
    can restore over each other.
    """

    def __init__(
        self,
        cache: ZoneCache,
        store: ZoneStore,
        builder: ZoneBuilder | None = None,
        sequencer: RouteSequencingClient | None = None,
        resync_after_assignment: bool | None = None,
    ) -> None:
        self.cache = cache
        self.store = store
        self.builder = builder or ZoneBuilder()
        self.sequencer = sequencer
        self.resync_after_assignment = (
            resync_after_assignment if resync_after_assignment is not None else settings.resync_after_assignment
        )
        self._pending: Counter[str] = Counter()
        self._generation = 0
        self._zone_creation_lock = asyncio.Lock()
        self._background: set[asyncio.Task] = set()

    # -- assignment -------------------------------------------------------

    async def assign_driver_to_zone(self, zone_id: str, driver_id: str) -> MutationResult:
        zone = self.cache.find_zone(zone_id)
        if zone is None:
            return self._rejected(zone_id, driver_id, ZoneNotFoundError(zone_id))
        if not zone.server_id:
            return self._rejected(zone_id, driver_id, ZoneNotFoundError(zone_id, "zone has not been persisted"))
        if self.cache.drivers is not None and self.cache.find_driver(driver_id) is None:
            return self._rejected(zone_id, driver_id, DriverNotFoundError(driver_id))

        snapshot = self.cache.snapshot()
        updated = self._apply_assignment(zone.server_id, driver_id)
        self._pending[zone.server_id] += 1
        try:
            response = await self.store.assign_driver_to_zone(zone.server_id, driver_id)
        except asyncio.CancelledError:
            self.cache.restore(snapshot)
            raise
        except Exception as exc:
            self.cache.restore(snapshot)
            error = exc if isinstance(exc, TransportError) else TransportError(f"Assignment failed: {exc}")
            if error is not exc:
                error.__cause__ = exc
            logger.warning(f"Rolled back assignment of {zone.zone_id} to {driver_id}: {error}")
            return MutationResult(AssignmentStatus.ROLLED_BACK, zone.zone_id, driver_id, error=error)
        finally:
            self._pending[zone.server_id] -= 1
            if self._pending[zone.server_id] <= 0:
                del self._pending[zone.server_id]

        if not response.success:
            self.cache.restore(snapshot)
            logger.warning(f"Store refused assignment of {zone.zone_id} to {driver_id}; rolled back")
            error = TransportError("Store reported the assignment as unsuccessful")
            return MutationResult(AssignmentStatus.ROLLED_BACK, zone.zone_id, driver_id, error=error)

        logger.info(f"Assigned {zone.zone_id} ({updated} orders) to driver {driver_id}")
        if self.resync_after_assignment:
            self._spawn(self.refresh())
        return MutationResult(AssignmentStatus.ASSIGNED, zone.zone_id, driver_id, updated_orders=updated)

    def _rejected(self, zone_id: str, driver_id: str, error: DispatchError) -> MutationResult:
        logger.info(f"Rejected assignment of {zone_id} to {driver_id}: {error}")
        return MutationResult(AssignmentStatus.REJECTED, zone_id, driver_id, error=error)

    def _apply_assignment(self, zone_server_id: str, driver_id: str) -> int:
        zones: list[Zone] = []
        members: set[str] = set()
        for zone in self.cache.zones:
            if zone.server_id == zone_server_id:
                members.update(order.identifier for order in zone.orders)
                zone = replace(
                    zone,
                    assigned_driver_id=driver_id,
                    driver_is_default=False,
                    orders=tuple(order.with_driver(driver_id) for order in zone.orders),
                )
            zones.append(zone)
        orders = [
            order.with_driver(driver_id) if order.identifier in members else order
            for order in self.cache.orders
        ]
        self.cache.replace(zones=zones, orders=orders)
        return len(members)

    def zone_state(self, zone_id: str) -> ZoneState:
        zone = self.cache.find_zone(zone_id)
        if zone is None:
            raise ZoneNotFoundError(zone_id)
        if zone.server_id and self._pending.get(zone.server_id):
            return ZoneState.PENDING
        if zone.is_assigned:
            return ZoneState.ASSIGNED
        return ZoneState.UNASSIGNED

    # -- synchronization --------------------------------------------------

    async def refresh(self) -> bool:
        """Reload orders, drivers and zones from the store.

        Returns False when the result was discarded because a newer refresh
        started or the cache changed while the fetch was in flight.
        """

        self._generation += 1
        generation = self._generation
        version = self.cache.version

        order_rows, driver_rows, zone_rows = await asyncio.gather(
            self.store.fetch_orders(),
            self.store.fetch_drivers(),
            self.store.fetch_zones(),
        )
        orders = [order_from_api(row) for row in order_rows]
        drivers = [driver_from_api(row) for row in driver_rows]

        if not zone_rows and orders:
            zone_rows = await self._create_missing_zones(orders)
            if zone_rows:
                orders = [order_from_api(row) for row in await self.store.fetch_orders()]

        if generation != self._generation or version != self.cache.version:
            logger.info("Discarding superseded refresh result")
            return False

        zones = zones_from_api(zone_rows, orders, drivers)
        self.cache.replace(zones=zones, orders=orders, drivers=drivers)
        logger.info(f"Refreshed cache: {len(zones)} zones, {len(orders)} orders, {len(drivers)} drivers")
        return True

    async def _create_missing_zones(self, orders: Sequence[Order]) -> list[ApiZone]:
        async with self._zone_creation_lock:
            existing = await self.store.fetch_zones()
            if existing:
                return existing
            requests = [zone_to_create_request(zone) for zone in self.builder.build_zones(orders)]
            requests = [request for request in requests if request.order_ids]
            if not requests:
                return []
            response = await self.store.create_zones(requests)
            logger.info(f"Created {response.created} zones for {len(orders)} orders")
            return await self.store.fetch_zones()

    def load_orders(self, orders: Iterable[Order]) -> list[Zone]:
        """Recluster a freshly imported order set locally; zones stay unpersisted."""

        orders = list(orders)
        zones = self.builder.build_zones(orders)
        if self.cache.drivers:
            zones = apply_default_drivers(zones, self.cache.drivers)
        self.cache.replace(zones=zones, orders=orders)
        return zones

    async def import_orders(self, orders: Sequence[CreateOrderRequest]) -> CreateOrdersResponse:
        response = await self.store.create_orders(orders)
        logger.info(f"Imported {response.created} orders ({response.skipped} skipped, {response.failed} failed)")
        await self.refresh()
        return response

    async def persist_zones(self) -> CreateZonesResponse:
        requests = [zone_to_create_request(zone) for zone in self.cache.zones if not zone.server_id]
        requests = [request for request in requests if request.order_ids]
        if not requests:
            return CreateZonesResponse(success=True, created=0)
        response = await self.store.create_zones(requests)
        await self.refresh()
        return response

    # -- ranks ------------------------------------------------------------

    def reorder_driver_orders(self, driver_id: str, order_ids: Sequence[str]) -> list[Order]:
        """Rank the listed orders 1..n; the driver's other ranked orders follow."""

        driver_orders = [order for order in self.cache.orders if order.driver_id == driver_id]
        listed: list[Order] = []
        for identifier in order_ids:
            match = next((order for order in driver_orders if order.matches(identifier)), None)
            if match is None:
                raise InputError(f"Order '{identifier}' is not assigned to driver {driver_id}")
            if match not in listed:
                listed.append(match)
        listed_ids = {order.identifier for order in listed}
        rest = sorted(
            (order for order in driver_orders if order.identifier not in listed_ids and order.rank is not None),
            key=lambda order: order.rank,
        )
        ranks = {order.identifier: position for position, order in enumerate(listed + rest, start=1)}

        self._rewrite_orders(
            lambda order: replace(order, rank=ranks[order.identifier])
            if order.driver_id == driver_id and order.identifier in ranks
            else order
        )
        return sorted(
            (order for order in self.cache.orders if order.driver_id == driver_id and order.rank is not None),
            key=lambda order: order.rank,
        )

    async def optimize_route(self, driver_id: str, order_ids: Sequence[str] | None = None) -> RouteSequence:
        if self.sequencer is None:
            raise TransportError("Route sequencing is not configured")
        server_ids: list[str] | None = None
        if order_ids:
            server_ids = []
            for identifier in order_ids:
                order = self.cache.find_order(identifier)
                server_ids.append(order.identifier if order else identifier)
        sequence = await self.sequencer.optimize(driver_id, server_ids)
        self.apply_route_sequence(sequence)
        return sequence

    def apply_route_sequence(self, sequence: RouteSequence) -> int:
        """Write sequenced ranks into the cache and clear stale ranks for the driver.

        Stale ranks are cleared for the driver's other orders in the zones the
        route touches, or for all of them when the route touches no zone.
        """

        ranks = sequence.ranks()
        sequenced = [order for order in self.cache.orders if order.identifier in ranks]
        zones = {order.zone_server_id for order in sequenced if order.zone_server_id}

        def update(order: Order) -> Order:
            if order.identifier in ranks:
                return replace(order, driver_id=sequence.driver_id, rank=ranks[order.identifier])
            if order.driver_id == sequence.driver_id and order.rank is not None:
                if not zones or order.zone_server_id in zones:
                    return replace(order, rank=None)
            return order

        self._rewrite_orders(update)
        return len(sequenced)

    def _rewrite_orders(self, update: Callable[[Order], Order]) -> None:
        orders = [update(order) for order in self.cache.orders]
        by_id = {order.identifier: order for order in orders}
        zones = [
            replace(zone, orders=tuple(by_id.get(order.identifier, update(order)) for order in zone.orders))
            for zone in self.cache.zones
        ]
        self.cache.replace(zones=zones, orders=orders)

    # -- lifecycle --------------------------------------------------------

    def _spawn(self, coroutine) -> asyncio.Task:
        task = asyncio.create_task(coroutine)
        self._background.add(task)
        task.add_done_callback(self._finish_background)
        return task

    def _finish_background(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Background resync failed: {task.exception()}")

    async def aclose(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
