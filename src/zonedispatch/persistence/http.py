"""Dispatch backend REST adapter built on httpx."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

from ..config import settings
from ..errors import TransportError
from ..schemas.drivers import ApiDriver, GetDriversResponse
from ..schemas.orders import ApiOrder, CreateOrderRequest, CreateOrdersResponse
from ..schemas.zones import (
    ApiZone,
    AssignDriverResponse,
    CreateZoneRequest,
    CreateZonesResponse,
    GetZonesResponse,
)
from .base import ZoneStore

logger = logging.getLogger(__name__)

RETRYABLE_METHODS = frozenset({"GET", "PUT"})
ORDER_PAGE_LIMIT = 1000


class BackendClient:
    """Async JSON client with retry and exponential backoff for idempotent calls."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.backend_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Backend base URL is not configured.")
        self.timeout = timeout if timeout is not None else settings.backend_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.backend_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backend_backoff_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        method = method.upper()
        retries = self.max_retries if method in RETRYABLE_METHODS else 0
        attempt = 0
        while True:
            try:
                response = await self._client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code < 500 or attempt >= retries:
                    raise TransportError(
                        f"{method} {path} failed with status {status_code}: {_error_detail(exc.response)}",
                        status_code=status_code,
                        endpoint=path,
                    ) from exc
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt >= retries:
                    logger.warning(f"{method} {path} failed after {attempt + 1} attempts: {exc}")
                    raise TransportError(f"{method} {path} unreachable: {exc}", endpoint=path) from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {path} failed: {exc}", endpoint=path) from exc
            except ValueError as exc:
                raise TransportError(f"{method} {path} returned a non-JSON body", endpoint=path) from exc
            attempt += 1
            wait_time = self.backoff_seconds * (2 ** (attempt - 1))
            logger.debug(f"Retrying {method} {path} in {wait_time:.2f}s (attempt {attempt}/{retries})")
            await asyncio.sleep(wait_time)


class HttpZoneStore(ZoneStore):
    name = "http"

    def __init__(
        self,
        client: BackendClient | None = None,
        page_size: int = ORDER_PAGE_LIMIT,
        **client_kwargs: Any,
    ) -> None:
        self.client = client or BackendClient(**client_kwargs)
        self.page_size = page_size

    async def fetch_orders(self) -> list[ApiOrder]:
        """Fetch every order, following ``limit``/``offset`` pages until one comes back short."""

        orders: list[ApiOrder] = []
        offset = 0
        while True:
            payload = await self.client.request(
                "GET", "/api/orders", params={"limit": self.page_size, "offset": offset}
            )
            if not isinstance(payload, dict):
                return orders + _parse(list[ApiOrder], payload, "/api/orders")
            page = _parse(list[ApiOrder], payload.get("orders", []), "/api/orders")
            orders.extend(page)
            offset += len(page)
            total = payload.get("total")
            if len(page) < self.page_size or (isinstance(total, int) and offset >= total):
                logger.debug(f"Fetched {len(orders)} orders")
                return orders

    async def create_orders(self, orders: Sequence[CreateOrderRequest]) -> CreateOrdersResponse:
        body = {"orders": [order.model_dump(by_alias=True, exclude_none=True) for order in orders]}
        payload = await self.client.request("POST", "/api/orders", json=body)
        return _parse(CreateOrdersResponse, payload, "/api/orders")

    async def fetch_drivers(self) -> list[ApiDriver]:
        payload = await self.client.request("GET", "/api/drivers", params={"is_active": "true"})
        return _parse(GetDriversResponse, payload, "/api/drivers").drivers

    async def fetch_zones(self) -> list[ApiZone]:
        payload = await self.client.request("GET", "/api/zones")
        return _parse(GetZonesResponse, payload, "/api/zones").zones

    async def create_zones(self, zones: Sequence[CreateZoneRequest]) -> CreateZonesResponse:
        body = {"zones": [zone.model_dump(by_alias=True, exclude_none=True) for zone in zones]}
        payload = await self.client.request("POST", "/api/zones", json=body)
        return _parse(CreateZonesResponse, payload, "/api/zones")

    async def assign_driver_to_zone(self, zone_server_id: str, driver_id: str) -> AssignDriverResponse:
        path = f"/api/zones/{zone_server_id}/assign-driver"
        payload = await self.client.request("PUT", path, json={"driverId": driver_id})
        return _parse(AssignDriverResponse, payload, path)

    async def aclose(self) -> None:
        await self.client.aclose()


def _parse(model: Any, payload: Any, endpoint: str) -> Any:
    try:
        return TypeAdapter(model).validate_python(payload)
    except ValidationError as exc:
        raise TransportError(f"Unexpected response shape from {endpoint}: {exc}", endpoint=endpoint) from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)
