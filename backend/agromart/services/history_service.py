"""Append-only status history for submissions and orders."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from agromart.core.policies import PAUSED, RESUME_FALLBACK_STATUS
from agromart.models.order import OrderStatusHistory
from agromart.models.verification import VerificationStatusHistory


def record_verification_status(
    db: Session,
    submission_id: int,
    from_status: str | None,
    to_status: str,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> VerificationStatusHistory:
    row = VerificationStatusHistory(
        submission_id=submission_id,
        from_status=from_status,
        to_status=to_status,
        actor_user_id=actor_user_id,
        note=note,
    )
    db.add(row)
    return row


def record_order_status(
    db: Session,
    order_id: int,
    from_status: str | None,
    to_status: str,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> OrderStatusHistory:
    row = OrderStatusHistory(
        order_id=order_id,
        from_status=from_status,
        to_status=to_status,
        actor_user_id=actor_user_id,
        note=note,
    )
    db.add(row)
    return row


def verification_history(db: Session, submission_id: int) -> list[VerificationStatusHistory]:
    """Oldest-first history for a submission."""
    stmt = (
        select(VerificationStatusHistory)
        .where(VerificationStatusHistory.submission_id == submission_id)
        .order_by(VerificationStatusHistory.created_at, VerificationStatusHistory.id)
    )
    return list(db.execute(stmt).scalars().all())


def order_history(db: Session, order_id: int) -> list[OrderStatusHistory]:
    """Oldest-first history for an order."""
    stmt = (
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
    )
    return list(db.execute(stmt).scalars().all())


def status_before_pause(db: Session, order_id: int) -> str:
    """Most recent non-paused status recorded for an order."""
    stmt = (
        select(OrderStatusHistory.to_status)
        .where(
            OrderStatusHistory.order_id == order_id,
            OrderStatusHistory.to_status != PAUSED,
        )
        .order_by(OrderStatusHistory.created_at.desc(), OrderStatusHistory.id.desc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none() or RESUME_FALLBACK_STATUS
