"""Admin review of verification submissions."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agromart.core.deps import require_admin
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.verification import (
    AppealResponse,
    CommentRequest,
    ReasonRequest,
    ResolveAppealRequest,
    SubmissionResponse,
)
from agromart.services import verification_service

router = APIRouter(prefix="/admin", tags=["admin-verification"])


@router.get("/verifications", response_model=list[SubmissionResponse])
def list_submissions(
    status: str | None = None,
    user_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.list_submissions(db, status, user_id, since, until, limit)


@router.get("/verifications/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.get_submission(db, submission_id)


@router.post("/verifications/{submission_id}/approve", response_model=SubmissionResponse)
def approve(
    submission_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.approve(db, admin, submission_id)


@router.post("/verifications/{submission_id}/reject", response_model=SubmissionResponse)
def reject(
    submission_id: int,
    data: ReasonRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.reject(db, admin, submission_id, data.reason)


@router.post("/verifications/{submission_id}/request-more-info", response_model=SubmissionResponse)
def request_more_info(
    submission_id: int,
    data: ReasonRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.request_more_info(db, admin, submission_id, data.reason or "")


@router.post("/verifications/{submission_id}/comment", response_model=SubmissionResponse)
def comment(
    submission_id: int,
    data: CommentRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.add_comment(db, admin, submission_id, data.text, data.visible_to_user)


@router.get("/verification-appeals", response_model=list[AppealResponse])
def list_appeals(
    status: str | None = "open",
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.list_appeals(db, status)


@router.post("/verification-appeals/{appeal_id}/resolve", response_model=AppealResponse)
def resolve_appeal(
    appeal_id: int,
    data: ResolveAppealRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verification_service.resolve_appeal(db, admin, appeal_id, data.resolution_note, data.reinstate)
