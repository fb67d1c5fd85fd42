import asyncio
import csv
import io
import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from zonedispatch.errors import TransportError
from zonedispatch.persistence import InMemoryZoneStore, get_store
from zonedispatch.persistence import supabase as supabase_module
from zonedispatch.persistence.filesystem import FileStorage
from zonedispatch.persistence.supabase import SupabaseZoneStore
from zonedispatch.schemas.orders import CreateOrderRequest
from zonedispatch.schemas.zones import BuildZonesRequest, CenterModel, CreateZoneRequest
from zonedispatch.services.zoning import service as zoning_service


def _request(number: str, lat=None, lng=None) -> CreateOrderRequest:
    return CreateOrderRequest(
        order_number=number,
        customer_name=f"Customer {number}",
        address="Olaya St",
        latitude=lat,
        longitude=lng,
    )


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="zones test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path / "outputs"
    assert run_dir.name.startswith("zones_test_")


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory()

    summary_path = run_dir / "summary.json"
    assignments_path = run_dir / "assignments.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(assignments_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert assignments_path.read_text(encoding="utf-8") == "a,b\n1,2\n"


def test_build_request_persists_outputs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(zoning_service, "FileStorage", lambda: FileStorage(root=tmp_path))
    payload = BuildZonesRequest(
        orders=[_request("O1", 24.7136, 46.6753), _request("O2", 24.7140, 46.6760), _request("O3")],
        persist=True,
        run_label="riyadh",
    )

    response = zoning_service.process_build_request(payload)

    assert response.total_orders == 3
    assert response.unassigned_orders == 1
    assert response.density == 10
    run_dir = Path(response.output_dir)
    assert run_dir.parent == tmp_path / "outputs"
    summary = json.loads((run_dir / "summary.json").read_text(encoding="utf-8"))
    assert [zone["zoneId"] for zone in summary["zones"]] == ["Zone 1", "Unassigned Zone"]
    rows = list(csv.DictReader(io.StringIO((run_dir / "assignments.csv").read_text(encoding="utf-8"))))
    assert [(row["zone_id"], row["order_id"]) for row in rows] == [
        ("Zone 1", "O1"),
        ("Zone 1", "O2"),
        ("Unassigned Zone", "O3"),
    ]
    assert rows[0]["distance_from_center"].endswith(" m")
    assert rows[2]["distance_from_center"] == ""


def test_memory_store_skips_duplicate_order_numbers() -> None:
    store = InMemoryZoneStore()

    first = asyncio.run(store.create_orders([_request("O1", 1.0, 1.0), _request("O2")]))
    second = asyncio.run(store.create_orders([_request("O1"), _request("O3")]))

    assert (first.created, first.skipped) == (2, 0)
    assert (second.created, second.skipped) == (1, 1)
    assert len(asyncio.run(store.fetch_orders())) == 3


def test_memory_store_zone_assignment() -> None:
    async def scenario():
        store = InMemoryZoneStore()
        created = await store.create_orders([_request("O1", 1.0, 1.0), _request("O2", 1.0, 1.0)])
        order_ids = [order.id for order in created.orders]
        zones = await store.create_zones(
            [CreateZoneRequest(name="Zone 1", center=CenterModel(lat=1.0, lng=1.0), order_ids=order_ids)]
        )
        zone_id = zones.zones[0].id

        with pytest.raises(TransportError) as excinfo:
            await store.assign_driver_to_zone("missing", "D1")
        assert excinfo.value.status_code == 404

        with pytest.raises(TransportError) as excinfo:
            await store.assign_driver_to_zone(zone_id, "D1")
        assert excinfo.value.status_code == 400
        return store, zone_id, order_ids

    store, zone_id, order_ids = asyncio.run(scenario())
    assert zone_id
    assert [store.orders[oid].zone_id for oid in order_ids] == [zone_id, zone_id]


def test_get_store_selects_backend() -> None:
    assert isinstance(get_store("memory"), InMemoryZoneStore)
    with pytest.raises(ValueError):
        get_store("carrier-pigeon")


class _FakeQuery:
    def __init__(self, rows) -> None:
        self.rows = rows

    def __getattr__(self, name):
        return self

    def __call__(self, *args, **kwargs):
        return self

    def execute(self):
        return SimpleNamespace(data=self.rows)


class _FakeSupabase:
    def __init__(self, tables) -> None:
        self.tables = tables

    def table(self, name):
        return _FakeQuery(self.tables[name])


def test_supabase_store_maps_rows() -> None:
    client = _FakeSupabase(
        {
            "drivers": [
                {"id": "D1", "name": "Dana", "location_lat": "24.7", "location_lng": "46.6", "is_active": True},
                {"id": "D2", "name": "Omar", "location_lat": None, "location_lng": None, "is_active": True},
            ],
            "zones": [{"id": "z-1", "name": "Zone 1", "center_lat": 24.7, "center_lng": 46.6, "radius": 1.2}],
            "orders": [
                {"id": "u1", "order_number": "O1", "latitude": 24.7, "longitude": 46.6, "zone_id": "z-1"},
            ],
        }
    )
    store = SupabaseZoneStore(client=client)

    drivers = asyncio.run(store.fetch_drivers())
    zones = asyncio.run(store.fetch_zones())

    assert drivers[0].location == CenterModel(lat=24.7, lng=46.6)
    assert drivers[1].location is None
    assert zones[0].order_count == 1
    assert zones[0].orders[0].order_number == "O1"


def test_supabase_failures_become_transport_errors() -> None:
    class _Broken:
        def table(self, name):
            raise RuntimeError("network unreachable")

    store = SupabaseZoneStore(client=_Broken())

    with pytest.raises(TransportError):
        asyncio.run(store.fetch_orders())


def test_supabase_store_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(supabase_module, "get_supabase_client", lambda: None)

    with pytest.raises(ValueError):
        SupabaseZoneStore()
