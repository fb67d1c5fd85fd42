"""Interface for the durable store of orders, drivers and zones."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..schemas.drivers import ApiDriver
from ..schemas.orders import ApiOrder, CreateOrderRequest, CreateOrdersResponse
from ..schemas.zones import ApiZone, AssignDriverResponse, CreateZoneRequest, CreateZonesResponse


class ZoneStore(ABC):
    """Asynchronous persistence collaborator.

    Implementations raise :class:`~zonedispatch.errors.TransportError` for any
    failure to reach or be understood by the underlying store.
    """

    name: str = "abstract"

    @abstractmethod
    async def fetch_orders(self) -> list[ApiOrder]:
        raise NotImplementedError

    @abstractmethod
    async def create_orders(self, orders: Sequence[CreateOrderRequest]) -> CreateOrdersResponse:
        raise NotImplementedError

    @abstractmethod
    async def fetch_drivers(self) -> list[ApiDriver]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_zones(self) -> list[ApiZone]:
        raise NotImplementedError

    @abstractmethod
    async def create_zones(self, zones: Sequence[CreateZoneRequest]) -> CreateZonesResponse:
        raise NotImplementedError

    @abstractmethod
    async def assign_driver_to_zone(self, zone_server_id: str, driver_id: str) -> AssignDriverResponse:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
