"""Order endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import InputError, TransportError
from ...schemas.orders import ImportOrdersRequest, OrderModel, ReorderRequest
from ...services.cache import ZoneAssignmentCoordinator
from ...services.transform import order_from_request, order_to_model
from ..dependencies import get_coordinator

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", status_code=status.HTTP_200_OK)
def list_orders(
    driver_id: str | None = None,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> dict:
    orders = coordinator.cache.orders
    if driver_id is not None:
        orders = tuple(order for order in orders if order.driver_id == driver_id)
    return {"orders": [order_to_model(order).model_dump(by_alias=True) for order in orders]}


@router.post("/import", status_code=status.HTTP_200_OK)
async def import_orders(
    payload: ImportOrdersRequest,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> dict:
    """Persist new orders, then reload the cache (creating zones if none exist)."""
    try:
        response = await coordinator.import_orders(payload.orders)
    except TransportError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {
        "success": response.success,
        "created": response.created,
        "skipped": response.skipped,
        "failed": response.failed,
        "zones": len(coordinator.cache.zones),
    }


@router.post("/load", status_code=status.HTTP_200_OK)
def load_orders(
    payload: ImportOrdersRequest,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> dict:
    """Replace the cached orders and recluster them locally without persisting."""
    zones = coordinator.load_orders(order_from_request(item) for item in payload.orders)
    return {"orders": len(coordinator.cache.orders), "zones": len(zones)}


@router.post("/reorder", response_model=list[OrderModel], status_code=status.HTTP_200_OK)
def reorder_orders(
    payload: ReorderRequest,
    coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator),
) -> list[OrderModel]:
    try:
        orders = coordinator.reorder_driver_orders(payload.driver_id, payload.order_ids)
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [order_to_model(order) for order in orders]
