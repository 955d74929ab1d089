"""Location updates and proximity search."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from agromart.core.config import settings
from agromart.core.exceptions import InvalidInputError
from agromart.core.geo import bounding_box, haversine_km, in_bounding_box, neighbor_cells, parse_lat_lng, point_of
from agromart.core.policies import NEARBY_DEFAULT_LIMIT
from agromart.models.listing import Listing
from agromart.models.user import User

logger = logging.getLogger(__name__)

LOCATION_TEXT_FIELDS = ("address", "city", "country")


@dataclass
class NearbyHit:
    """An entity within the search radius."""

    entity: Any  # User | Listing
    lat: float
    lng: float
    distance_km: float


def build_location(raw_lat: Any, raw_lng: Any, **extra: str | None) -> dict[str, Any]:
    """Validated location document ready to assign to a located entity."""
    point = parse_lat_lng(raw_lat, raw_lng)
    if point is None:
        raise InvalidInputError("lat/lng required and must be valid coordinates", code="invalid_coordinates")
    location: dict[str, Any] = {"lat": point[0], "lng": point[1]}
    for field in LOCATION_TEXT_FIELDS:
        if extra.get(field):
            location[field] = extra[field]
    location["updatedAt"] = datetime.now(timezone.utc).isoformat()
    return location


def update_user_location(db: Session, user: User, location: dict[str, Any]) -> User:
    user.location = location
    db.commit()
    db.refresh(user)
    return user


def resolve_origin(raw_lat: Any, raw_lng: Any, requester: User) -> tuple[float, float]:
    """Explicit coordinates win; otherwise the requester's stored location."""
    if raw_lat is not None or raw_lng is not None:
        point = parse_lat_lng(raw_lat, raw_lng)
        if point is None:
            raise InvalidInputError("Invalid lat/lng", code="invalid_coordinates")
        return point
    point = point_of(requester.location)
    if point is None:
        raise InvalidInputError("No origin: pass lat/lng or set your location first", code="origin_required")
    return point


def clamp_radius(raw: Any) -> float:
    try:
        radius = float(raw)
    except (TypeError, ValueError):
        radius = settings.nearby_default_radius_km
    if not math.isfinite(radius) or radius <= 0:
        radius = settings.nearby_default_radius_km
    return min(radius, settings.nearby_max_radius_km)


def clamp_limit(raw: Any, kind: str) -> int:
    default = NEARBY_DEFAULT_LIMIT.get(kind, 20)
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        limit = default
    if limit <= 0:
        limit = default
    return min(limit, settings.nearby_max_limit)


def _candidate_stmt(kind: str, category: str | None):
    if kind == "products":
        stmt = select(Listing).where(Listing.status == "active", Listing.quantity_available > 0)
        if category:
            stmt = stmt.where(Listing.category == category.lower())
        return stmt, Listing
    role = "farmer" if kind == "farmers" else "buyer"
    return select(User).where(User.role == role, User.status == "active"), User


def find_nearby(
    db: Session,
    kind: str,
    origin: tuple[float, float],
    radius_km: float,
    limit: int,
    category: str | None = None,
) -> list[NearbyHit]:
    """Entities of ``kind`` within ``radius_km`` of ``origin``, nearest first.

    Candidates come from the grid cells covering the radius; the bounding box
    and Haversine passes make the result exact.
    """
    lat0, lng0 = origin
    stmt, model = _candidate_stmt(kind, category)
    cells = neighbor_cells(lat0, lng0, radius_km)
    if cells:
        stmt = stmt.where(model.geo_cell.in_(cells))
    candidates = db.execute(stmt).scalars().all()

    box = bounding_box(lat0, lng0, radius_km)
    hits: list[NearbyHit] = []
    for entity in candidates:
        point = point_of(entity.location)
        if point is None:
            continue
        lat, lng = point
        if not in_bounding_box(box, lat, lng):
            continue
        dist = haversine_km(lat0, lng0, lat, lng)
        if dist <= radius_km:
            hits.append(NearbyHit(entity=entity, lat=lat, lng=lng, distance_km=dist))

    hits.sort(key=lambda h: h.distance_km)
    hits = hits[:limit]
    for h in hits:
        h.distance_km = round(h.distance_km, 2)
    logger.debug("nearby %s: %d candidates, %d hits within %.1fkm", kind, len(candidates), len(hits), radius_km)
    return hits


def backfill_geo_cells(db: Session, resolution: int | None = None) -> int:
    """Recompute stored geo cells for all users and listings. Returns rows changed."""
    changed = 0
    for model in (User, Listing):
        for entity in db.execute(select(model)).scalars():
            if entity.refresh_geo_cell(resolution):
                changed += 1
    db.commit()
    logger.info("Geo cell backfill updated %d rows", changed)
    return changed
