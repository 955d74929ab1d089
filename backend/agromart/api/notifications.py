"""Notifications API."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agromart.core.deps import get_current_user
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.notification import NotificationResponse
from agromart.services.notification_service import delete_notification, list_user_notifications, mark_read

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    include_read: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Unread notifications, newest first."""
    return list_user_notifications(db, current_user.id, include_read, limit)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return mark_read(db, notification_id, current_user.id)


@router.post("/{notification_id}/delete")
def delete(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    delete_notification(db, notification_id, current_user.id)
    return {"ok": True}
