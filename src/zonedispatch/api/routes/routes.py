"""Route sequencing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import TransportError
from ...schemas.routing import OptimizedOrderModel, OptimizeRouteRequest, OptimizeRouteResponse
from ...services.cache import ZoneAssignmentCoordinator
from ..dependencies import get_coordinator

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=OptimizeRouteResponse, status_code=status.HTTP_200_OK)
async def optimize(
    payload: OptimizeRouteRequest,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> OptimizeRouteResponse:
    if coordinator.sequencer is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Route sequencing is not configured",
        )
    try:
        sequence = await coordinator.optimize_route(payload.driver_id, payload.order_ids)
    except TransportError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return OptimizeRouteResponse(
        success=True,
        driver_id=sequence.driver_id,
        total_distance=sequence.total_distance_km,
        total_duration=sequence.total_duration_min,
        orders=[
            OptimizedOrderModel(
                order_id=stop.order_id,
                order_number=stop.order_number,
                rank=stop.rank,
                distance_from_prev=stop.distance_from_prev_km,
            )
            for stop in sequence.stops
        ],
    )
