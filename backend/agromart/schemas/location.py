"""Location and proximity schemas."""

from typing import Any

from pydantic import BaseModel, Field


class LocationUpdate(BaseModel):
    # Range checks happen in the service so bad coordinates are a 400, not a 422.
    lat: float | str
    lng: float | str
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)


class LocationResponse(BaseModel):
    location: dict[str, Any] | None = None
    geo_cell: str | None = None


class UserLocationResponse(BaseModel):
    id: int
    role: str
    location: dict[str, Any] | None = None


class NearbyUser(BaseModel):
    id: int
    name: str
    username: str | None = None
    location: dict[str, Any]
    distance_km: float = Field(serialization_alias="distanceKm")


class NearbyProduct(BaseModel):
    id: int
    title: str
    price: float
    unit: str
    category: str
    farmer_id: int
    quantity_available: int
    is_organic: bool
    location: dict[str, Any]
    distance_km: float = Field(serialization_alias="distanceKm")
