"""Route-sequencing result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class SequencedStop:
    order_id: str
    rank: int
    order_number: Optional[str] = None
    distance_from_prev_km: float = 0.0


@dataclass(frozen=True, slots=True)
class RouteSequence:
    driver_id: str
    stops: tuple[SequencedStop, ...] = field(default_factory=tuple)
    total_distance_km: float = 0.0
    total_duration_min: float = 0.0

    def ranks(self) -> dict[str, int]:
        return {stop.order_id: stop.rank for stop in self.stops}
