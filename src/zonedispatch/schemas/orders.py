"""Pydantic models for order payloads (backend wire rows and service responses)."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["low", "normal", "high", "urgent"]


class ApiOrder(BaseModel):
    """An order row as returned by the dispatch backend."""

    model_config = ConfigDict(extra="ignore")

    id: str
    order_number: Optional[str] = None
    customer_name: str = ""
    address: str = ""
    phone: Optional[str] = None
    notes: Optional[str] = None
    amount: Optional[float] = None
    items: Optional[str] = None
    priority: Priority = "normal"
    # Left untyped: rows may carry strings, NaN or junk that parse to "uncoordinated".
    latitude: Any = None
    longitude: Any = None
    driver_id: Optional[str] = None
    zone_id: Optional[str] = None
    route_rank: Optional[int] = None
    raw_data: Optional[dict[str, Any]] = None


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_number: str
    customer_name: str
    address: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    amount: Optional[float] = None
    items: Optional[str] = None
    priority: Optional[Priority] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    driver_id: Optional[str] = None
    route_rank: Optional[int] = None
    raw_data: Optional[dict[str, Any]] = Field(default=None, alias="rawData")


class CreateOrdersResponse(BaseModel):
    success: bool = True
    created: int = 0
    skipped: int = 0
    failed: int = 0
    orders: list[ApiOrder] = Field(default_factory=list)


class OrderModel(BaseModel):
    """Order as exposed by this service."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId")
    server_id: Optional[str] = Field(default=None, alias="serverId")
    customer_name: str = Field(alias="customerName")
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    driver_id: Optional[str] = Field(default=None, alias="driverId")
    rank: Optional[int] = None
    zone_server_id: Optional[str] = Field(default=None, alias="zoneServerId")
    amount: Optional[float] = None
    items: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    priority: str = "normal"


class ImportOrdersRequest(BaseModel):
    orders: list[CreateOrderRequest] = Field(..., min_length=1)


class ReorderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(..., alias="driverId")
    order_ids: list[str] = Field(..., alias="orderIds", description="Orders in their new stop sequence.")
