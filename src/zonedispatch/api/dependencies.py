"""Request-scoped accessors for objects created in the application lifespan."""

from __future__ import annotations

from fastapi import Request

from ..services.cache import ZoneAssignmentCoordinator, ZoneCache


def get_coordinator(request: Request) -> ZoneAssignmentCoordinator:
    return request.app.state.coordinator


def get_cache(request: Request) -> ZoneCache:
    return request.app.state.cache
