"""In-memory view of zones, orders and drivers shared by the service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ...models.domain import Driver, Order, Zone

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True, slots=True)
class CacheSnapshot:
    zones: tuple[Zone, ...]
    orders: tuple[Order, ...]
    version: int


class ZoneCache:
    """Holds immutable tuples; every write replaces a collection and bumps ``version``.

    ``drivers`` is ``None`` until a driver list has been loaded.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._zones: tuple[Zone, ...] = ()
        self._orders: tuple[Order, ...] = ()
        self._drivers: Optional[tuple[Driver, ...]] = None
        self._version = 0

    @property
    def zones(self) -> tuple[Zone, ...]:
        return self._zones

    @property
    def orders(self) -> tuple[Order, ...]:
        return self._orders

    @property
    def drivers(self) -> Optional[tuple[Driver, ...]]:
        return self._drivers

    @property
    def version(self) -> int:
        return self._version

    def set_zones(self, zones: Iterable[Zone]) -> None:
        self.replace(zones=zones)

    def set_orders(self, orders: Iterable[Order]) -> None:
        self.replace(orders=orders)

    def set_drivers(self, drivers: Optional[Iterable[Driver]]) -> None:
        self.replace(drivers=drivers)

    def replace(self, *, zones: object = _UNSET, orders: object = _UNSET, drivers: object = _UNSET) -> None:
        if zones is not _UNSET:
            self._zones = tuple(zones)
        if orders is not _UNSET:
            self._orders = tuple(orders)
        if drivers is not _UNSET:
            self._drivers = None if drivers is None else tuple(drivers)
        self._version += 1

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(zones=self._zones, orders=self._orders, version=self._version)

    def restore(self, snapshot: CacheSnapshot) -> None:
        """Put back the zones and orders captured by ``snapshot`` verbatim."""

        self._zones = snapshot.zones
        self._orders = snapshot.orders
        self._version += 1
        logger.debug(f"Cache restored to snapshot taken at version {snapshot.version}")

    def find_zone(self, identifier: str) -> Optional[Zone]:
        """Resolve a zone by display id first, then by server id."""

        for zone in self._zones:
            if zone.zone_id == identifier:
                return zone
        for zone in self._zones:
            if zone.server_id and zone.server_id == identifier:
                return zone
        return None

    def find_order(self, identifier: str) -> Optional[Order]:
        for order in self._orders:
            if order.matches(identifier):
                return order
        return None

    def find_driver(self, driver_id: str) -> Optional[Driver]:
        for driver in self._drivers or ():
            if driver.driver_id == driver_id:
                return driver
        return None
