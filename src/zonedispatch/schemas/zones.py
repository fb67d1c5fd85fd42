"""Pydantic request/response models for zone endpoints."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .orders import ApiOrder, CreateOrderRequest, OrderModel


class CenterModel(BaseModel):
    lat: float
    lng: float


class ApiZone(BaseModel):
    """A persisted zone as returned by ``GET /api/zones``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    center: CenterModel
    radius: Optional[float] = None
    orders: list[ApiOrder] = Field(default_factory=list)
    order_count: int = Field(default=0, alias="orderCount")


class GetZonesResponse(BaseModel):
    zones: list[ApiZone] = Field(default_factory=list)


class CreateZoneRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    center: CenterModel
    radius: Optional[float] = None
    order_ids: list[str] = Field(default_factory=list, alias="orderIds")


class CreateZonesResponse(BaseModel):
    success: bool = True
    created: int = 0
    zones: list[ApiZone] = Field(default_factory=list)


class AssignDriverResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool
    zone_id: Optional[str] = Field(default=None, alias="zoneId")
    driver_id: Optional[str] = Field(default=None, alias="driverId")
    updated: int = 0
    order_ids: list[str] = Field(default_factory=list, alias="orderIds")


class ZoneModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zone_id: str = Field(alias="zoneId")
    server_id: Optional[str] = Field(default=None, alias="serverId")
    center: CenterModel
    order_count: int = Field(alias="orderCount")
    radius_km: Optional[float] = Field(default=None, alias="radiusKm")
    assigned_driver_id: Optional[str] = Field(default=None, alias="assignedDriverId")
    default_driver: bool = Field(default=False, alias="defaultDriver")
    state: Literal["unassigned", "pending", "assigned"] = "unassigned"
    orders: list[OrderModel] = Field(default_factory=list)


class BuildZonesRequest(BaseModel):
    orders: list[CreateOrderRequest] = Field(..., min_length=1)
    persist: bool = Field(default=False, description="Whether to export the zoning run to files.")
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")

    @field_validator("run_label")
    @classmethod
    def validate_run_label(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("run_label must not be blank")
        return value


class BuildZonesResponse(BaseModel):
    zones: list[ZoneModel]
    total_orders: int = Field(alias="totalOrders")
    unassigned_orders: int = Field(alias="unassignedOrders")
    density: Optional[int] = None
    output_dir: Optional[str] = Field(default=None, alias="outputDir")

    model_config = ConfigDict(populate_by_name=True)


class ZonesResponse(BaseModel):
    zones: list[ZoneModel]
    version: int


class AssignDriverRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(..., alias="driverId", min_length=1)


class AssignmentResultModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["assigned", "rolled_back", "rejected"]
    zone_id: str = Field(alias="zoneId")
    driver_id: str = Field(alias="driverId")
    updated_orders: int = Field(default=0, alias="updatedOrders")
    error: Optional[str] = None
