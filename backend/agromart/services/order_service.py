"""Order placement and status changes."""

from __future__ import annotations

import logging

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from agromart.core.exceptions import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from agromart.core.policies import ORDER_STATUSES
from agromart.models.listing import Listing
from agromart.models.order import Order
from agromart.models.user import User
from agromart.services.history_service import record_order_status

logger = logging.getLogger(__name__)


def place_order(
    db: Session,
    buyer: User,
    listing_id: int,
    quantity: int,
    delivery_address: str | None = None,
    notes: str | None = None,
) -> Order:
    """Place an order and decrement stock.

    The decrement only applies if stock still equals the value read here.
    If another order got there first, raises ConflictError and the caller
    decides whether to retry.
    """
    listing = db.get(Listing, listing_id)
    if not listing or listing.status != "active":
        raise NotFoundError("Listing not available")
    if listing.farmer_id == buyer.id:
        raise InvalidInputError("You cannot order your own listing")
    if quantity <= 0:
        raise InvalidInputError("Quantity must be positive")
    seen_qty = listing.quantity_available
    if quantity > seen_qty:
        raise InvalidInputError("Insufficient quantity available", code="insufficient_quantity")

    remaining = seen_qty - quantity
    values: dict = {"quantity_available": remaining}
    if remaining == 0:
        values["status"] = "sold"
    result = db.execute(
        update(Listing)
        .where(Listing.id == listing.id, Listing.quantity_available == seen_qty)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.info("Stock race lost on listing %s (saw %s)", listing.id, seen_qty)
        raise ConflictError("Stock changed, please retry order", code="stock_changed")

    order = Order(
        listing_id=listing.id,
        buyer_id=buyer.id,
        farmer_id=listing.farmer_id,
        quantity=quantity,
        unit_price=listing.price,
        total_price=round(listing.price * quantity, 2),
        status="pending",
        delivery_address=delivery_address,
        notes=notes,
    )
    db.add(order)
    db.flush()
    record_order_status(db, order.id, None, "pending", buyer.id)
    db.commit()
    db.refresh(order)
    db.refresh(listing)
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_for(db: Session, actor: User, order_id: int) -> Order:
    """Order visible to its buyer, its farmer, or an admin."""
    order = get_order(db, order_id)
    if actor.role != "admin" and actor.id not in (order.buyer_id, order.farmer_id):
        raise PermissionDeniedError("Not your order")
    return order


def list_orders(db: Session, actor: User, status: str | None = None, limit: int = 50) -> list[Order]:
    """Orders where the actor is buyer or farmer; admins see all."""
    stmt = select(Order)
    if actor.role != "admin":
        stmt = stmt.where(or_(Order.buyer_id == actor.id, Order.farmer_id == actor.id))
    if status:
        stmt = stmt.where(Order.status == status)
    stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def _transition(db: Session, order: Order, to_status: str, actor: User, note: str | None = None) -> Order:
    from_status = order.status
    order.status = to_status
    record_order_status(db, order.id, from_status, to_status, actor.id, note)
    db.commit()
    db.refresh(order)
    return order


def update_order_status(db: Session, actor: User, order_id: int, status: str) -> Order:
    """Farmer (or admin) moves an order along. Buyers use deliver/cancel."""
    if status not in ORDER_STATUSES or status == "paused":
        raise InvalidInputError("Invalid status", details={"allowed": [s for s in ORDER_STATUSES if s != "paused"]})
    order = get_order(db, order_id)
    if actor.role != "admin" and actor.id != order.farmer_id:
        raise PermissionDeniedError("Only the farmer can update this order")
    if order.status == "paused":
        raise ConflictError("Order is paused while an account is suspended", code="order_paused")
    if actor.role != "admin" and status == "delivered":
        raise PermissionDeniedError("Delivery is confirmed by the buyer")
    return _transition(db, order, status, actor)


def mark_delivered(db: Session, buyer: User, order_id: int) -> Order:
    order = get_order(db, order_id)
    if order.buyer_id != buyer.id:
        raise PermissionDeniedError("Only the buyer can confirm delivery")
    if order.status != "shipped":
        raise ConflictError("Order must be shipped before it can be marked delivered")
    return _transition(db, order, "delivered", buyer)


def cancel_order(db: Session, buyer: User, order_id: int) -> Order:
    order = get_order(db, order_id)
    if order.buyer_id != buyer.id:
        raise PermissionDeniedError("Only the buyer can cancel")
    if order.status != "pending":
        raise ConflictError("Only pending orders can be cancelled")
    return _transition(db, order, "cancelled", buyer)
