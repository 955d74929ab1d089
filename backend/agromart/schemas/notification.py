"""Notification and audit schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    body: str | None
    data: dict[str, Any] | None
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogResponse(BaseModel):
    id: int
    actor_user_id: int | None
    action: str
    subject_type: str
    subject_id: int | None
    details: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}
