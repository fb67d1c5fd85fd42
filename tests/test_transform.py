from zonedispatch.models.domain import Location, Order, Zone
from zonedispatch.schemas.drivers import ApiDriver
from zonedispatch.schemas.orders import ApiOrder
from zonedispatch.schemas.routing import OptimizeRouteResponse
from zonedispatch.schemas.zones import ApiZone, CenterModel
from zonedispatch.services import transform


def _api_order(server_id: str, number: str | None, lat=None, lng=None, driver: str | None = None) -> ApiOrder:
    return ApiOrder(
        id=server_id,
        order_number=number,
        customer_name=f"Customer {server_id}",
        address="1 King Fahd Rd",
        latitude=lat,
        longitude=lng,
        driver_id=driver,
        route_rank=None,
        raw_data={"Order": number},
    )


def test_order_from_api_uses_order_number_as_local_id() -> None:
    order = transform.order_from_api(_api_order("uuid-1", "ORD-1", "24.7", "46.6"))

    assert order.order_id == "ORD-1"
    assert order.server_id == "uuid-1"
    assert (order.latitude, order.longitude) == (24.7, 46.6)
    assert order.raw == {"Order": "ORD-1"}


def test_order_from_api_with_junk_coordinates_is_uncoordinated() -> None:
    order = transform.order_from_api(_api_order("uuid-2", None, "north", 46.6))

    assert order.order_id == "uuid-2"
    assert not order.has_coordinates
    assert order.latitude is None and order.longitude is None


def test_driver_from_api_derives_initials_and_location() -> None:
    driver = transform.driver_from_api(
        ApiDriver(id="D1", name="Dana Lee", location=CenterModel(lat=24.7, lng=46.6))
    )

    assert driver.initials == "DL"
    assert driver.location == Location(24.7, 46.6)


def test_zones_from_api_keeps_empty_zones_and_defaults_driver() -> None:
    rows = [
        ApiZone(
            id="z-1",
            name="Zone 1",
            center=CenterModel(lat=24.7, lng=46.6),
            orders=[_api_order("uuid-1", "ORD-1", 24.7, 46.6)],
        ),
        ApiZone(id="z-2", name="Zone 2", center=CenterModel(lat=21.5, lng=39.2), orders=[]),
    ]
    cached = transform.order_from_api(_api_order("uuid-1", "ORD-1", 24.7, 46.6, driver=None))
    drivers = [transform.driver_from_api(ApiDriver(id="D1", name="Dana", location=CenterModel(lat=24.7, lng=46.6)))]

    zones = transform.zones_from_api(rows, [cached], drivers)

    assert [zone.zone_id for zone in zones] == ["Zone 1", "Zone 2"]
    assert zones[0].server_id == "z-1"
    assert zones[0].orders == (cached,)
    assert zones[1].order_count == 0
    assert zones[0].assigned_driver_id == "D1"
    assert zones[0].driver_is_default
    assert not zones[0].is_assigned


def test_zones_from_api_merges_unzoned_orders_into_persisted_unassigned_zone() -> None:
    rows = [
        ApiZone(
            id="z-1",
            name="Zone 1",
            center=CenterModel(lat=24.7, lng=46.6),
            orders=[_api_order("u1", "O1", 24.7, 46.6)],
        ),
        ApiZone(
            id="z-u",
            name="Unassigned Zone",
            center=CenterModel(lat=0, lng=0),
            orders=[_api_order("u2", "O2")],
        ),
    ]
    orders = [
        transform.order_from_api(_api_order("u1", "O1", 24.7, 46.6)),
        transform.order_from_api(_api_order("u2", "O2")),
        transform.order_from_api(_api_order("u3", "O3")),
    ]

    zones = transform.zones_from_api(rows, orders)

    assert [zone.zone_id for zone in zones] == ["Zone 1", "Unassigned Zone"]
    assert zones[1].server_id == "z-u"
    assert zones[1].order_ids() == ("O2", "O3")


def test_partly_assigned_zone_keeps_its_one_driver() -> None:
    row = ApiZone(
        id="z-1",
        name="Zone 1",
        center=CenterModel(lat=24.7, lng=46.6),
        orders=[_api_order("u1", "O1", 24.7, 46.6, "D1"), _api_order("u2", "O2", 24.7, 46.6)],
    )
    drivers = [
        transform.driver_from_api(ApiDriver(id="D2", name="Near", location=CenterModel(lat=24.7, lng=46.6))),
        transform.driver_from_api(ApiDriver(id="D1", name="Far", location=CenterModel(lat=21.5, lng=39.2))),
    ]

    zones = transform.zones_from_api([row], [], drivers)

    assert zones[0].assigned_driver_id == "D1"
    assert not zones[0].driver_is_default


def test_zone_from_api_reports_shared_driver() -> None:
    row = ApiZone(
        id="z-1",
        name="Zone 1",
        center=CenterModel(lat=24.7, lng=46.6),
        orders=[_api_order("u1", "O1", 24.7, 46.6, "D2"), _api_order("u2", "O2", 24.7, 46.6, "D2")],
    )

    assert transform.zone_from_api(row).assigned_driver_id == "D2"


def test_zone_to_create_request_sends_server_ids_only() -> None:
    zone = Zone(
        zone_id="Zone 3",
        center=Location(24.7, 46.6),
        orders=(
            Order(order_id="ORD-1", customer_name="A", address="x", server_id="uuid-1"),
            Order(order_id="ORD-2", customer_name="B", address="y"),
        ),
        radius_km=1.5,
    )

    request = transform.zone_to_create_request(zone)

    assert request.model_dump(by_alias=True) == {
        "name": "Zone 3",
        "center": {"lat": 24.7, "lng": 46.6},
        "radius": 1.5,
        "orderIds": ["uuid-1"],
    }


def test_route_sequence_is_sorted_by_rank() -> None:
    payload = OptimizeRouteResponse.model_validate(
        {
            "success": True,
            "driverId": "D1",
            "totalDistance": 12.5,
            "totalDuration": 40,
            "orders": [
                {"orderId": "u2", "orderNumber": "O2", "rank": 2, "distanceFromPrev": 3.0},
                {"orderId": "u1", "orderNumber": "O1", "rank": 1, "distanceFromPrev": 0},
            ],
        }
    )

    sequence = transform.route_sequence_from_api(payload)

    assert [stop.order_id for stop in sequence.stops] == ["u1", "u2"]
    assert sequence.ranks() == {"u1": 1, "u2": 2}
    assert sequence.total_distance_km == 12.5
