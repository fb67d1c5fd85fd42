"""Zone cache and optimistic assignment coordinator."""

from .coordinator import AssignmentStatus, MutationResult, ZoneAssignmentCoordinator, ZoneState
from .store import CacheSnapshot, ZoneCache

__all__ = [
    "AssignmentStatus",
    "CacheSnapshot",
    "MutationResult",
    "ZoneAssignmentCoordinator",
    "ZoneCache",
    "ZoneState",
]
