"""Favourites API."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agromart.core.deps import active_user, get_current_user
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.favorite import FavoriteResponse, FavoriteStatusResponse, FavoriteToggleResponse
from agromart.schemas.listing import ListingResponse
from agromart.services import favorite_service

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("", response_model=list[FavoriteResponse])
def list_favorites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Saved listings, most recently saved first."""
    return [
        FavoriteResponse(
            id=row.favorite.id,
            created_at=row.favorite.created_at,
            listing=ListingResponse.model_validate(row.listing),
            farmer_name=row.farmer_name,
        )
        for row in favorite_service.list_favorites(db, current_user)
    ]


@router.post("/{listing_id}/toggle", response_model=FavoriteToggleResponse)
def toggle(
    listing_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    favorite = favorite_service.toggle_favorite(db, current_user, listing_id)
    if favorite is None:
        return FavoriteToggleResponse(favorited=False)
    return FavoriteToggleResponse(favorited=True, id=favorite.id)


@router.get("/{listing_id}/status", response_model=FavoriteStatusResponse)
def favorite_status(
    listing_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return FavoriteStatusResponse(favorited=favorite_service.is_favorite(db, current_user, listing_id))
