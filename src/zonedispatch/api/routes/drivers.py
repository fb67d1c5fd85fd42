"""Driver endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import Location
from ...schemas.drivers import DriverModel, NearestDriverRequest, NearestDriverResponse
from ...services.cache import ZoneAssignmentCoordinator
from ...services.geospatial import format_distance, location_distance_km
from ...services.matching import nearest_driver
from ...services.transform import driver_from_model, driver_to_model
from ..dependencies import get_coordinator

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("", response_model=list[DriverModel], status_code=status.HTTP_200_OK)
def list_drivers(coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator)) -> list[DriverModel]:
    return [driver_to_model(driver) for driver in coordinator.cache.drivers or ()]


@router.post("/nearest", response_model=NearestDriverResponse, status_code=status.HTTP_200_OK)
def find_nearest_driver(
    payload: NearestDriverRequest,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> NearestDriverResponse:
    if payload.drivers is not None:
        drivers = [driver_from_model(model) for model in payload.drivers]
    else:
        drivers = list(coordinator.cache.drivers or ())
    center = Location(payload.center.lat, payload.center.lng)
    driver_id = nearest_driver(center, drivers)
    if not driver_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No drivers available")

    chosen = next(driver for driver in drivers if driver.driver_id == driver_id)
    if chosen.location is None:
        return NearestDriverResponse(driver_id=driver_id)
    distance = location_distance_km(center, chosen.location)
    return NearestDriverResponse(
        driver_id=driver_id,
        distance_km=round(distance, 3),
        distance_label=format_distance(distance),
    )
