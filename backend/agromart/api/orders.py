"""Orders API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from agromart.core.deps import active_user, get_current_user, require_role
from agromart.db.session import get_db
from agromart.models.order import Order
from agromart.models.user import User
from agromart.schemas.order import OrderCreate, OrderDetail, OrderHistoryEntry, OrderResponse, OrderStatusUpdate
from agromart.services import order_service
from agromart.services.history_service import order_history

router = APIRouter(prefix="/orders", tags=["orders"])


def _detail(order: Order, db: Session) -> OrderDetail:
    detail = OrderDetail.model_validate(order)
    detail.history = [OrderHistoryEntry.model_validate(h) for h in order_history(db, order.id)]
    return detail


@router.get("", response_model=list[OrderResponse])
def list_orders(
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Orders the caller is party to, newest first."""
    return order_service.list_orders(db, current_user, status_filter, limit)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_role("buyer"))])
def place_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    """Place an order. 409 if stock changed while the order was being placed."""
    return order_service.place_order(
        db, current_user, data.listing_id, data.quantity, data.delivery_address, data.notes
    )


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Order with its status history."""
    return _detail(order_service.get_order_for(db, current_user, order_id), db)


@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    return order_service.update_order_status(db, current_user, order_id, data.status)


@router.post("/{order_id}/mark-delivered", response_model=OrderResponse)
def mark_delivered(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    """Buyer confirms a shipped order arrived."""
    return order_service.mark_delivered(db, current_user, order_id)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    return order_service.cancel_order(db, current_user, order_id)
