"""Listing schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from agromart.schemas.location import LocationUpdate


class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str
    price: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=20)
    quantity_available: int = Field(..., gt=0)
    is_organic: bool = False
    location: LocationUpdate


class ListingUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    price: float | None = Field(default=None, gt=0)
    unit: str | None = Field(default=None, min_length=1, max_length=20)
    quantity_available: int | None = Field(default=None, ge=0)
    is_organic: bool | None = None
    status: str | None = None
    location: LocationUpdate | None = None


class ListingResponse(BaseModel):
    id: int
    farmer_id: int
    title: str
    description: str | None
    category: str
    price: float
    unit: str
    quantity_available: int
    is_organic: bool
    status: str
    location: dict[str, Any] | None
    geo_cell: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
