from zonedispatch.models.domain import UNASSIGNED_ZONE_ID, Driver, Location, Zone
from zonedispatch.services.matching import apply_default_drivers, nearest_driver


def _driver(driver_id: str, lat: float | None = None, lng: float | None = None) -> Driver:
    location = Location(lat, lng) if lat is not None and lng is not None else None
    return Driver(driver_id=driver_id, name=f"Driver {driver_id}", location=location)


def test_nearest_driver_picks_minimum_distance() -> None:
    drivers = [_driver("far", 21.5, 39.2), _driver("near", 24.71, 46.67), _driver("nowhere")]

    assert nearest_driver(Location(24.7136, 46.6753), drivers) == "near"


def test_nearest_driver_ties_go_to_first() -> None:
    drivers = [_driver("first", 10.0, 10.0), _driver("second", 10.0, 10.0)]

    assert nearest_driver(Location(11.0, 11.0), drivers) == "first"


def test_nearest_driver_without_locations_returns_first_driver() -> None:
    drivers = [_driver("alpha"), _driver("beta")]

    assert nearest_driver(Location(24.7, 46.6), drivers) == "alpha"


def test_nearest_driver_with_no_drivers() -> None:
    assert nearest_driver(Location(24.7, 46.6), []) == ""


def test_default_drivers_skip_assigned_and_unassigned_zones() -> None:
    drivers = [_driver("riyadh", 24.7, 46.7), _driver("jeddah", 21.5, 39.2)]
    zones = [
        Zone(zone_id="Zone 1", center=Location(21.49, 39.19)),
        Zone(zone_id="Zone 2", center=Location(24.70, 46.70), assigned_driver_id="jeddah"),
        Zone(zone_id=UNASSIGNED_ZONE_ID, center=Location(0.0, 0.0)),
    ]

    result = apply_default_drivers(zones, drivers)

    assert [zone.assigned_driver_id for zone in result] == ["jeddah", "jeddah", None]
    assert apply_default_drivers(zones, []) == zones


def test_default_drivers_are_flagged_as_suggestions() -> None:
    zones = [Zone(zone_id="Zone 1", center=Location(21.49, 39.19))]

    result = apply_default_drivers(zones, [_driver("jeddah", 21.5, 39.2)])

    assert result[0].assigned_driver_id == "jeddah"
    assert result[0].driver_is_default
    assert not result[0].is_assigned
