"""Product listing service."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from agromart.core.exceptions import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from agromart.core.policies import LISTING_CATEGORIES, LISTING_STATUSES
from agromart.models.favorite import Favorite
from agromart.models.listing import Listing
from agromart.models.order import Order
from agromart.models.user import User
from agromart.services.audit_service import write_audit
from agromart.services.verification_service import get_user_verification_status


def get_listing(db: Session, listing_id: int) -> Listing:
    listing = db.get(Listing, listing_id)
    if not listing:
        raise NotFoundError("Listing not found")
    return listing


def list_listings(
    db: Session,
    category: str | None = None,
    farmer_id: int | None = None,
    status: str | None = "active",
    limit: int = 50,
) -> list[Listing]:
    stmt = select(Listing)
    if status:
        stmt = stmt.where(Listing.status == status)
    if category:
        stmt = stmt.where(Listing.category == category.lower())
    if farmer_id is not None:
        stmt = stmt.where(Listing.farmer_id == farmer_id)
    stmt = stmt.order_by(Listing.created_at.desc(), Listing.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def _check_category(category: str) -> str:
    category = category.lower()
    if category not in LISTING_CATEGORIES:
        raise InvalidInputError("Invalid category", details={"allowed": list(LISTING_CATEGORIES)})
    return category


def create_listing(db: Session, farmer: User, fields: dict[str, Any], location: dict[str, Any]) -> Listing:
    """Create a listing. Only verified farmers may post."""
    status = get_user_verification_status(db, farmer.id)
    if status != "verified":
        raise PermissionDeniedError(
            "Verification required to post listings",
            code="verification_required",
            details={"status": status},
        )
    listing = Listing(
        farmer_id=farmer.id,
        title=fields["title"],
        description=fields.get("description"),
        category=_check_category(fields["category"]),
        price=fields["price"],
        unit=fields["unit"],
        quantity_available=fields["quantity_available"],
        is_organic=fields.get("is_organic", False),
        status="active",
        location=location,
    )
    db.add(listing)
    db.flush()
    write_audit(db, farmer.id, "listing_created", "listing", listing.id)
    db.commit()
    db.refresh(listing)
    return listing


def _get_owned(db: Session, actor: User, listing_id: int) -> Listing:
    listing = get_listing(db, listing_id)
    if listing.farmer_id != actor.id and actor.role != "admin":
        raise PermissionDeniedError("Not your listing")
    return listing


def update_listing(
    db: Session,
    actor: User,
    listing_id: int,
    fields: dict[str, Any],
    location: dict[str, Any] | None = None,
) -> Listing:
    """Apply a partial update. A new location recomputes the geo cell."""
    listing = _get_owned(db, actor, listing_id)
    if "status" in fields and fields["status"] not in LISTING_STATUSES:
        raise InvalidInputError("Invalid listing status")
    if "category" in fields:
        fields["category"] = _check_category(fields["category"])
    for key in ("title", "description", "category", "price", "unit", "quantity_available", "is_organic", "status"):
        if key in fields:
            setattr(listing, key, fields[key])
    if location is not None:
        listing.location = location
    write_audit(db, actor.id, "listing_updated", "listing", listing.id, {"fields": sorted(fields)})
    db.commit()
    db.refresh(listing)
    return listing


def delete_listing(db: Session, actor: User, listing_id: int) -> None:
    """Hard delete. Refused once any order references the listing."""
    listing = _get_owned(db, actor, listing_id)
    order_count = db.execute(select(func.count(Order.id)).where(Order.listing_id == listing.id)).scalar_one()
    if order_count:
        raise ConflictError(
            "Listing has orders; mark it inactive instead",
            code="listing_has_orders",
            details={"orders": order_count},
        )
    write_audit(db, actor.id, "listing_deleted", "listing", listing.id)
    db.execute(delete(Favorite).where(Favorite.listing_id == listing.id))
    db.delete(listing)
    db.commit()


def restore_listing(db: Session, actor: User, listing_id: int) -> Listing:
    listing = _get_owned(db, actor, listing_id)
    if listing.status != "inactive":
        raise ConflictError("Only inactive listings can be restored")
    listing.status = "active"
    write_audit(db, actor.id, "listing_restored", "listing", listing.id)
    db.commit()
    db.refresh(listing)
    return listing
