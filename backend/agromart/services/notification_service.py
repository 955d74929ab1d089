"""In-app notifications.

Notifications are sent after the triggering transition has committed. A
failed insert is logged and dropped; it never undoes the transition.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agromart.core.exceptions import NotFoundError
from agromart.models.notification import Notification

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    body: str | None = None,
    data: dict[str, Any] | None = None,
) -> Notification | None:
    """Insert and commit a notification. Returns None if the write failed."""
    notification = Notification(user_id=user_id, type=type, title=title, body=body, data=data or {})
    try:
        db.add(notification)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Dropping %s notification for user %s", type, user_id, exc_info=True)
        return None
    return notification


def list_user_notifications(
    db: Session,
    user_id: int,
    include_read: bool = False,
    limit: int = 50,
) -> list[Notification]:
    """Newest-first notifications for a user."""
    limit = max(1, min(200, limit))
    stmt = select(Notification).where(Notification.user_id == user_id)
    if not include_read:
        stmt = stmt.where(Notification.read_at.is_(None))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def _get_own(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    return notification


def mark_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = _get_own(db, notification_id, user_id)
    if notification.read_at is None:
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


def delete_notification(db: Session, notification_id: int, user_id: int) -> None:
    notification = _get_own(db, notification_id, user_id)
    db.delete(notification)
    db.commit()
