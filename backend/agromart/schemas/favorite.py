"""Favourite schemas."""

from datetime import datetime

from pydantic import BaseModel

from agromart.schemas.listing import ListingResponse


class FavoriteToggleResponse(BaseModel):
    favorited: bool
    id: int | None = None


class FavoriteStatusResponse(BaseModel):
    favorited: bool


class FavoriteResponse(BaseModel):
    id: int
    created_at: datetime
    listing: ListingResponse
    farmer_name: str
