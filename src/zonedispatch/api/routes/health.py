"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.cache import ZoneAssignmentCoordinator
from ..dependencies import get_coordinator

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/cache", status_code=status.HTTP_200_OK)
def health_cache(coordinator: ZoneAssignmentCoordinator = Depends(get_coordinator)) -> dict:
    cache = coordinator.cache
    return {
        "store": coordinator.store.name,
        "version": cache.version,
        "zones": len(cache.zones),
        "orders": len(cache.orders),
        "drivers": None if cache.drivers is None else len(cache.drivers),
        "route_sequencing": coordinator.sequencer is not None,
    }
