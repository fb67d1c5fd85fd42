"""Exception hierarchy shared by the zoning, matching and assignment layers."""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for all dispatch errors."""


class InputError(DispatchError, ValueError):
    """Malformed order data, e.g. a half-present or non-numeric coordinate."""


class DegenerateGeometryError(DispatchError, ValueError):
    """A bounding box could not be computed from the supplied points."""


class NotFoundError(DispatchError, LookupError):
    """A referenced entity does not exist in the cache."""


class ZoneNotFoundError(NotFoundError):
    def __init__(self, zone_id: str, reason: str | None = None) -> None:
        self.zone_id = zone_id
        message = f"Zone '{zone_id}' not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DriverNotFoundError(NotFoundError):
    def __init__(self, driver_id: str) -> None:
        self.driver_id = driver_id
        super().__init__(f"Driver '{driver_id}' not found")


class TransportError(DispatchError, ConnectionError):
    """The persistence collaborator or the route-sequencing service failed or timed out."""

    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
