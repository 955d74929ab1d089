"""Buyer and farmer favourites (saved listings)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from agromart.core.exceptions import InvalidInputError
from agromart.models.favorite import Favorite
from agromart.models.listing import Listing
from agromart.models.user import User
from agromart.services.listing_service import get_listing

logger = logging.getLogger(__name__)


@dataclass
class FavoriteRow:
    favorite: Favorite
    listing: Listing
    farmer_name: str


def _find(db: Session, user_id: int, listing_id: int) -> Favorite | None:
    return db.execute(
        select(Favorite).where(Favorite.user_id == user_id, Favorite.listing_id == listing_id)
    ).scalar_one_or_none()


def toggle_favorite(db: Session, user: User, listing_id: int) -> Favorite | None:
    """Add the listing to the user's favourites, or remove it if already there.

    Returns the new favourite, or None when it was removed.
    """
    listing = get_listing(db, listing_id)
    if listing.farmer_id == user.id:
        raise InvalidInputError("You cannot favourite your own listing")
    existing = _find(db, user.id, listing.id)
    if existing:
        db.delete(existing)
        db.commit()
        return None
    favorite = Favorite(user_id=user.id, listing_id=listing.id)
    db.add(favorite)
    db.commit()
    db.refresh(favorite)
    logger.debug("User %s favourited listing %s", user.id, listing.id)
    return favorite


def is_favorite(db: Session, user: User, listing_id: int) -> bool:
    return _find(db, user.id, listing_id) is not None


def list_favorites(db: Session, user: User) -> list[FavoriteRow]:
    rows = db.execute(
        select(Favorite, Listing, User)
        .join(Listing, Listing.id == Favorite.listing_id)
        .join(User, User.id == Listing.farmer_id)
        .where(Favorite.user_id == user.id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
    ).all()
    return [
        FavoriteRow(favorite=favorite, listing=listing, farmer_name=farmer.display_name)
        for favorite, listing, farmer in rows
    ]
