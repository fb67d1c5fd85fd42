"""API routes for zone building and driver assignment."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import TransportError
from ...schemas.zones import (
    AssignDriverRequest,
    AssignmentResultModel,
    BuildZonesRequest,
    BuildZonesResponse,
    ZonesResponse,
)
from ...services.cache import AssignmentStatus, ZoneAssignmentCoordinator
from ...services.transform import zone_to_model
from ...services.zoning.service import process_build_request
from ..dependencies import get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/zones", tags=["zones"])


@router.post("/build", response_model=BuildZonesResponse, status_code=status.HTTP_200_OK)
def build_zones(payload: BuildZonesRequest) -> BuildZonesResponse:
    """Cluster the posted orders into zones without touching the shared cache."""
    try:
        return process_build_request(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OSError as exc:
        logger.exception(f"Failed to write zoning outputs: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to write zoning outputs: {exc}",
        ) from exc


@router.get("", response_model=ZonesResponse, status_code=status.HTTP_200_OK)
def list_zones(
    include_orders: bool = True,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> ZonesResponse:
    zones = [
        zone_to_model(zone, coordinator.zone_state(zone.zone_id).value, include_orders=include_orders)
        for zone in coordinator.cache.zones
    ]
    return ZonesResponse(zones=zones, version=coordinator.cache.version)


@router.post("/refresh", status_code=status.HTTP_200_OK)
async def refresh_zones(coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator)) -> dict:
    try:
        refreshed = await coordinator.refresh()
    except TransportError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {
        "refreshed": refreshed,
        "zones": len(coordinator.cache.zones),
        "orders": len(coordinator.cache.orders),
    }


@router.post("/persist", status_code=status.HTTP_200_OK)
async def persist_zones(coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator)) -> dict:
    """Store locally built zones that have no server id yet."""
    try:
        response = await coordinator.persist_zones()
    except TransportError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {"created": response.created, "zones": len(coordinator.cache.zones)}


@router.post(
    "/{zone_id}/assign-driver",
    response_model=AssignmentResultModel,
    status_code=status.HTTP_200_OK,
)
async def assign_driver(
    zone_id: str,
    payload: AssignDriverRequest,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> AssignmentResultModel:
    result = await coordinator.assign_driver_to_zone(zone_id, payload.driver_id)
    if result.status is AssignmentStatus.REJECTED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(result.error))
    if result.status is AssignmentStatus.ROLLED_BACK:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Assignment rolled back: {result.error}",
        )
    return AssignmentResultModel(
        status=result.status.value,
        zone_id=result.zone_id,
        driver_id=result.driver_id,
        updated_orders=result.updated_orders,
    )
