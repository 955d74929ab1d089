"""Location and nearby search API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from agromart.core.deps import active_user, get_current_user
from agromart.core.policies import NEARBY_KINDS
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.location import (
    LocationResponse,
    LocationUpdate,
    NearbyProduct,
    NearbyUser,
    UserLocationResponse,
)
from agromart.services.geo_service import (
    NearbyHit,
    build_location,
    clamp_limit,
    clamp_radius,
    find_nearby,
    resolve_origin,
    update_user_location,
)

router = APIRouter(prefix="/location", tags=["location"])


def _to_nearby(kind: str, hit: NearbyHit) -> NearbyUser | NearbyProduct:
    e = hit.entity
    if kind == "products":
        return NearbyProduct(
            id=e.id,
            title=e.title,
            price=e.price,
            unit=e.unit,
            category=e.category,
            farmer_id=e.farmer_id,
            quantity_available=e.quantity_available,
            is_organic=e.is_organic,
            location=e.location,
            distance_km=hit.distance_km,
        )
    return NearbyUser(
        id=e.id,
        name=e.display_name,
        username=e.username,
        location=e.location,
        distance_km=hit.distance_km,
    )


@router.patch("", response_model=LocationResponse)
def set_location(
    data: LocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    """Store the caller's location; the geo cell is derived on write."""
    location = build_location(data.lat, data.lng, address=data.address, city=data.city, country=data.country)
    user = update_user_location(db, current_user, location)
    return LocationResponse(location=user.location, geo_cell=user.geo_cell)


@router.get("/me", response_model=LocationResponse)
def my_location(current_user: User = Depends(get_current_user)):
    return LocationResponse(location=current_user.location, geo_cell=current_user.geo_cell)


@router.get("/nearby/{kind}", response_model=None)
def nearby(
    kind: str,
    lat: str | None = Query(default=None),
    lng: str | None = Query(default=None),
    radius_km: str | None = Query(default=None, alias="radiusKm"),
    limit: str | None = Query(default=None),
    category: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[dict]:
    """Farmers, buyers or products within a radius, nearest first."""
    allowed_roles = NEARBY_KINDS.get(kind)
    if allowed_roles is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown search kind")
    if current_user.role not in allowed_roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Your role cannot search {kind}")
    origin = resolve_origin(lat, lng, current_user)
    hits = find_nearby(
        db,
        kind,
        origin,
        clamp_radius(radius_km),
        clamp_limit(limit, kind),
        category if kind == "products" else None,
    )
    return [_to_nearby(kind, h).model_dump(by_alias=True) for h in hits]


@router.get("/user/{user_id}", response_model=UserLocationResponse)
def user_location(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserLocationResponse(id=user.id, role=user.role, location=user.location)
