"""Client for the external route-sequencing service."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import ValidationError

from ...config import settings
from ...errors import TransportError
from ...persistence.http import BackendClient
from ...schemas.routing import OptimizeRouteRequest, OptimizeRouteResponse
from ..transform import route_sequence_from_api
from .models import RouteSequence

logger = logging.getLogger(__name__)

OPTIMIZE_PATH = "/api/routes/optimize"


class RouteSequencingClient(BackendClient):
    def __init__(self, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(base_url=base_url or settings.route_sequencing_url or settings.backend_base_url, **kwargs)

    async def optimize(self, driver_id: str, order_ids: Sequence[str] | None = None) -> RouteSequence:
        """Ask the service for a stop order. ``order_ids`` are order server ids."""

        body = OptimizeRouteRequest(driver_id=driver_id, order_ids=list(order_ids) if order_ids else None)
        payload = await self.request("POST", OPTIMIZE_PATH, json=body.model_dump(by_alias=True, exclude_none=True))
        try:
            response = OptimizeRouteResponse.model_validate(payload)
        except ValidationError as exc:
            raise TransportError(f"Unexpected response shape from {OPTIMIZE_PATH}: {exc}", endpoint=OPTIMIZE_PATH) from exc
        if not response.success:
            raise TransportError("Route sequencing reported failure", endpoint=OPTIMIZE_PATH)
        sequence = route_sequence_from_api(response)
        logger.info(
            f"Sequenced {len(sequence.stops)} stops for driver {driver_id}: "
            f"{sequence.total_distance_km:.1f} km, {sequence.total_duration_min:.0f} min"
        )
        return sequence
