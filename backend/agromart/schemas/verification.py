"""Verification schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class UploadTokenRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=200)
    content_type: str | None = Field(default=None, max_length=100)


class UploadTokenResponse(BaseModel):
    upload_key: str = Field(serialization_alias="uploadKey")
    expires_at: datetime = Field(serialization_alias="expiresAt")

    model_config = {"from_attributes": True}


class EvidenceImage(BaseModel):
    """An uploaded evidence photo plus whatever capture metadata the client sends."""

    upload_key: str = Field(alias="uploadKey")
    lat: float | None = None
    lng: float | None = None

    model_config = {"extra": "allow", "populate_by_name": True}


class SubmissionCreate(BaseModel):
    images: list[EvidenceImage]
    device_info: dict[str, Any] | None = None


class SubmissionCreated(BaseModel):
    submission_id: int = Field(serialization_alias="submissionId")
    status: str


class RespondMoreRequest(BaseModel):
    images: list[EvidenceImage]
    note: str | None = Field(default=None, max_length=2000)


class RespondMoreResponse(BaseModel):
    ok: bool = True
    submission_id: int = Field(serialization_alias="submissionId")
    status: str


class ReasonRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class CommentRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    visible_to_user: bool = False


class ResolveAppealRequest(BaseModel):
    resolution_note: str | None = Field(default=None, max_length=2000)
    reinstate: bool = False


class StatusHistoryEntry(BaseModel):
    from_status: str | None
    to_status: str
    actor_user_id: int | None
    note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SubmissionResponse(BaseModel):
    id: int
    user_id: int
    images: list[dict[str, Any]]
    device_info: dict[str, Any] | None
    status: str
    reviewer_id: int | None
    review_comment: str | None
    admin_comments: list[dict[str, Any]]
    retention_extended_until: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SubmissionStatus(BaseModel):
    id: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MyStatusResponse(BaseModel):
    status: str  # unverified | pending | verified | rejected
    submission_id: int | None = None
    submission_status: str | None = None


class MyLatestResponse(BaseModel):
    status: str
    submission_id: int | None = None
    submission_status: str | None = None
    comments: list[dict[str, Any]] = []
    reviewer_message: str | None = None
    history: list[StatusHistoryEntry] = []


class AppealResponse(BaseModel):
    id: int
    submission_id: int
    user_id: int
    reason: str | None
    status: str
    priority: int
    resolution_note: str | None
    resolved_by: int | None
    resolved_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
