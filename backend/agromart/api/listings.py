"""Listings API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from agromart.core.deps import active_user, require_role
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.listing import ListingCreate, ListingResponse, ListingUpdate
from agromart.services import listing_service
from agromart.services.geo_service import build_location

router = APIRouter(prefix="/listings", tags=["listings"])

farmer_or_admin = require_role("farmer", "admin")


@router.get("", response_model=list[ListingResponse])
def list_listings(
    category: str | None = None,
    farmer_id: int | None = None,
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Active listings, newest first."""
    return listing_service.list_listings(db, category=category, farmer_id=farmer_id, limit=limit)


@router.get("/{listing_id}", response_model=ListingResponse)
def get_listing(listing_id: int, db: Session = Depends(get_db)):
    return listing_service.get_listing(db, listing_id)


@router.post("", response_model=ListingResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_role("farmer"))])
def create_listing(
    data: ListingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    """Create a listing. Verified farmers only."""
    loc = data.location
    location = build_location(loc.lat, loc.lng, address=loc.address, city=loc.city, country=loc.country)
    fields = data.model_dump(exclude={"location"})
    return listing_service.create_listing(db, current_user, fields, location)


@router.patch("/{listing_id}", response_model=ListingResponse, dependencies=[Depends(farmer_or_admin)])
def update_listing(
    listing_id: int,
    data: ListingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    location = None
    if data.location is not None:
        loc = data.location
        location = build_location(loc.lat, loc.lng, address=loc.address, city=loc.city, country=loc.country)
    fields = data.model_dump(exclude={"location"}, exclude_unset=True)
    return listing_service.update_listing(db, current_user, listing_id, fields, location)


@router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(farmer_or_admin)])
def delete_listing(
    listing_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    listing_service.delete_listing(db, current_user, listing_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{listing_id}/restore", response_model=ListingResponse, dependencies=[Depends(farmer_or_admin)])
def restore_listing(
    listing_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    return listing_service.restore_listing(db, current_user, listing_id)
