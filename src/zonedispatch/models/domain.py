"""Domain models for orders, zones and drivers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Optional

UNASSIGNED_ZONE_ID = "Unassigned Zone"


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Order:
    order_id: str
    customer_name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    server_id: Optional[str] = None
    driver_id: Optional[str] = None
    rank: Optional[int] = None
    zone_server_id: Optional[str] = None
    amount: Optional[float] = None
    items: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    priority: str = "normal"
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def has_coordinates(self) -> bool:
        lat, lng = self.latitude, self.longitude
        if not _is_number(lat) or not _is_number(lng):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0

    @property
    def location(self) -> Location | None:
        if not self.has_coordinates:
            return None
        return Location(latitude=float(self.latitude), longitude=float(self.longitude))

    @property
    def identifier(self) -> str:
        """Server id when persisted, local id otherwise."""
        return self.server_id or self.order_id

    def matches(self, identifier: str) -> bool:
        return identifier in (self.order_id, self.server_id)

    def with_driver(self, driver_id: Optional[str]) -> "Order":
        return replace(self, driver_id=driver_id)


@dataclass(frozen=True, slots=True)
class Zone:
    zone_id: str
    center: Location
    orders: tuple[Order, ...] = ()
    server_id: Optional[str] = None
    assigned_driver_id: Optional[str] = None
    radius_km: Optional[float] = None
    driver_is_default: bool = False

    @property
    def order_count(self) -> int:
        return len(self.orders)

    @property
    def is_assigned(self) -> bool:
        """True when the driver was confirmed rather than suggested for display."""
        return bool(self.assigned_driver_id) and not self.driver_is_default

    @property
    def is_unassigned(self) -> bool:
        return self.zone_id == UNASSIGNED_ZONE_ID

    def order_ids(self) -> tuple[str, ...]:
        return tuple(order.order_id for order in self.orders)

    def matches(self, identifier: str) -> bool:
        return identifier in (self.zone_id, self.server_id)


@dataclass(frozen=True, slots=True)
class Driver:
    driver_id: str
    name: str
    initials: str = ""
    phone: Optional[str] = None
    color: Optional[str] = None
    location: Optional[Location] = None
    is_active: bool = True


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
