"""Pydantic models for driver payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .zones import CenterModel


class ApiDriver(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    phone: Optional[str] = None
    initials: Optional[str] = None
    color: Optional[str] = None
    location: Optional[CenterModel] = None
    is_active: bool = True


class GetDriversResponse(BaseModel):
    drivers: list[ApiDriver] = Field(default_factory=list)
    total: int = 0
    limit: int = 100
    offset: int = 0


class DriverModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(alias="driverId")
    name: str
    initials: str = ""
    phone: Optional[str] = None
    color: Optional[str] = None
    location: Optional[CenterModel] = None


class NearestDriverRequest(BaseModel):
    center: CenterModel
    drivers: Optional[list[DriverModel]] = Field(
        default=None,
        description="Candidate drivers. Defaults to the cached driver list.",
    )


class NearestDriverResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(alias="driverId")
    distance_km: Optional[float] = Field(default=None, alias="distanceKm")
    distance_label: Optional[str] = Field(default=None, alias="distanceLabel")
