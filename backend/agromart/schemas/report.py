"""Report and moderation schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReportCreate(BaseModel):
    reported_user_id: int | str  # id or username
    reason_code: str = Field(..., min_length=1, max_length=32)
    description: str | None = Field(default=None, max_length=2000)
    evidence_media_links: list[str] = Field(default_factory=list, max_length=10)


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    reported_user_id: int
    reason_code: str
    description: str | None
    evidence_links: list[str]
    status: str
    validated_by: int | None
    validated_at: datetime | None
    resolution_note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AdminReportResponse(ReportResponse):
    reported_user_status: str | None = None
    paused_orders: int = 0


class DecisionRequest(BaseModel):
    note: str | None = Field(default=None, max_length=2000)


class AppealCreate(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class ReportAppealResponse(BaseModel):
    id: int
    report_id: int
    user_id: int
    reason: str | None
    status: str
    resolution_note: str | None
    resolved_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SuspendRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class AdminUserResponse(BaseModel):
    id: int
    email: str
    username: str | None
    role: str
    status: str
    strikes_count: int

    model_config = {"from_attributes": True}
