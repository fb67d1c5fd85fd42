"""Pydantic models for route-sequencing payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OptimizeRouteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(..., alias="driverId", min_length=1)
    order_ids: Optional[list[str]] = Field(default=None, alias="orderIds")


class OptimizedOrderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    order_id: str = Field(alias="orderId")
    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    rank: int = Field(ge=1)
    distance_from_prev: float = Field(default=0.0, alias="distanceFromPrev")


class OptimizeRouteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool = True
    driver_id: str = Field(alias="driverId")
    total_distance: float = Field(default=0.0, alias="totalDistance")
    total_duration: float = Field(default=0.0, alias="totalDuration")
    orders: list[OptimizedOrderModel] = Field(default_factory=list)
