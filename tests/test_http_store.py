import asyncio
import json

import httpx
import pytest

from zonedispatch.errors import TransportError
from zonedispatch.persistence.http import BackendClient, HttpZoneStore
from zonedispatch.schemas.zones import CenterModel, CreateZoneRequest
from zonedispatch.services.routing.sequencing import RouteSequencingClient

BASE_URL = "http://backend.test"


def _store(handler, max_retries: int = 2) -> HttpZoneStore:
    client = BackendClient(
        base_url=BASE_URL,
        max_retries=max_retries,
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
    )
    return HttpZoneStore(client=client)


def _run(store: HttpZoneStore, coroutine_factory):
    async def scenario():
        try:
            return await coroutine_factory(store)
        finally:
            await store.aclose()

    return asyncio.run(scenario())


def test_fetch_zones_parses_backend_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/zones"
        return httpx.Response(
            200,
            json={
                "zones": [
                    {
                        "id": "z-1",
                        "name": "Zone 1",
                        "center": {"lat": 24.7, "lng": 46.6},
                        "radius": 2.5,
                        "orderCount": 1,
                        "orders": [{"id": "u1", "order_number": "ORD-1", "latitude": 24.7, "longitude": 46.6}],
                    }
                ]
            },
        )

    zones = _run(_store(handler), lambda store: store.fetch_zones())

    assert len(zones) == 1
    assert zones[0].order_count == 1
    assert zones[0].orders[0].order_number == "ORD-1"


def test_idempotent_calls_retry_server_errors() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.method)
        if len(attempts) < 3:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json={"drivers": [{"id": "D1", "name": "Dana"}], "total": 1})

    drivers = _run(_store(handler), lambda store: store.fetch_drivers())

    assert attempts == ["GET", "GET", "GET"]
    assert drivers[0].id == "D1"


def test_post_is_not_retried() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.method)
        return httpx.Response(500, json={"error": "Failed to create zones"})

    request = CreateZoneRequest(name="Zone 1", center=CenterModel(lat=1, lng=2), order_ids=["u1"])
    with pytest.raises(TransportError) as excinfo:
        _run(_store(handler), lambda store: store.create_zones([request]))

    assert attempts == ["POST"]
    assert excinfo.value.status_code == 500
    assert "Failed to create zones" in str(excinfo.value)


def test_create_zones_sends_camel_case_order_ids() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content))
        return httpx.Response(201, json={"success": True, "created": 1, "zones": []})

    request = CreateZoneRequest(name="Zone 1", center=CenterModel(lat=1, lng=2), order_ids=["u1", "u2"])
    response = _run(_store(handler), lambda store: store.create_zones([request]))

    assert response.created == 1
    assert seen == {"zones": [{"name": "Zone 1", "center": {"lat": 1.0, "lng": 2.0}, "orderIds": ["u1", "u2"]}]}


def test_assign_driver_client_error_is_not_retried() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.url.path)
        return httpx.Response(404, json={"error": "Zone not found"})

    with pytest.raises(TransportError) as excinfo:
        _run(_store(handler), lambda store: store.assign_driver_to_zone("z-9", "D1"))

    assert attempts == ["/api/zones/z-9/assign-driver"]
    assert excinfo.value.status_code == 404
    assert excinfo.value.endpoint == "/api/zones/z-9/assign-driver"


def test_network_failure_surfaces_as_transport_error() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.method)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        _run(_store(handler, max_retries=1), lambda store: store.assign_driver_to_zone("z-1", "D1"))

    assert attempts == ["PUT", "PUT"]


def test_non_json_body_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(TransportError):
        _run(_store(handler), lambda store: store.fetch_orders())


def test_unexpected_shape_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": "maybe"})

    with pytest.raises(TransportError):
        _run(_store(handler), lambda store: store.assign_driver_to_zone("z-1", "D1"))


def test_client_requires_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    from zonedispatch.persistence import http as http_module

    monkeypatch.setattr(http_module.settings, "backend_base_url", None)
    with pytest.raises(ValueError):
        BackendClient()


def test_route_sequencing_client() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"driverId": "D1", "orderIds": ["u1", "u2"]}
        return httpx.Response(
            200,
            json={
                "success": True,
                "driverId": "D1",
                "totalDistance": 7.5,
                "totalDuration": 21,
                "orders": [
                    {"orderId": "u2", "orderNumber": "ORD-2", "rank": 1, "distanceFromPrev": 0},
                    {"orderId": "u1", "orderNumber": "ORD-1", "rank": 2, "distanceFromPrev": 2.1},
                ],
            },
        )

    async def scenario():
        client = RouteSequencingClient(base_url=BASE_URL, transport=httpx.MockTransport(handler), backoff_seconds=0)
        try:
            return await client.optimize("D1", ["u1", "u2"])
        finally:
            await client.aclose()

    sequence = asyncio.run(scenario())

    assert [stop.order_id for stop in sequence.stops] == ["u2", "u1"]
    assert sequence.total_distance_km == 7.5


def test_route_sequencing_failure_flag() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "driverId": "D1", "orders": []})

    async def scenario():
        client = RouteSequencingClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        try:
            return await client.optimize("D1")
        finally:
            await client.aclose()

    with pytest.raises(TransportError):
        asyncio.run(scenario())


def test_fetch_orders_follows_pages() -> None:
    offsets = []
    rows = [{"id": f"u{i}", "order_number": f"ORD-{i}"} for i in range(5)]

    def handler(request: httpx.Request) -> httpx.Response:
        limit = int(request.url.params["limit"])
        offset = int(request.url.params["offset"])
        offsets.append(offset)
        page = rows[offset : offset + limit]
        return httpx.Response(200, json={"orders": page, "total": len(rows), "limit": limit, "offset": offset})

    client = BackendClient(base_url=BASE_URL, backoff_seconds=0, transport=httpx.MockTransport(handler))
    store = HttpZoneStore(client=client, page_size=2)

    orders = _run(store, lambda store: store.fetch_orders())

    assert [order.order_number for order in orders] == [f"ORD-{i}" for i in range(5)]
    assert offsets == [0, 2, 4]


def test_fetch_orders_stops_at_reported_total() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.params["offset"])
        return httpx.Response(200, json={"orders": [{"id": "u1"}, {"id": "u2"}], "total": 2})

    client = BackendClient(base_url=BASE_URL, backoff_seconds=0, transport=httpx.MockTransport(handler))
    orders = _run(HttpZoneStore(client=client, page_size=2), lambda store: store.fetch_orders())

    assert len(orders) == 2
    assert calls == ["0"]
