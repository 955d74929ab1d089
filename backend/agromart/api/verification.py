"""Verification API for account owners."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from agromart.core.deps import get_current_user
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.verification import (
    AppealResponse,
    MyLatestResponse,
    MyStatusResponse,
    ReasonRequest,
    RespondMoreRequest,
    RespondMoreResponse,
    StatusHistoryEntry,
    SubmissionCreate,
    SubmissionCreated,
    SubmissionStatus,
    UploadTokenRequest,
    UploadTokenResponse,
)
from agromart.services import verification_service

router = APIRouter(prefix="/verification", tags=["verification"])


def _dump_images(images) -> list[dict]:
    return [img.model_dump(by_alias=True, exclude_none=True) for img in images]


@router.post("/upload-token", response_model=UploadTokenResponse)
def upload_token(
    data: UploadTokenRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Reserve a single-use storage key for an evidence photo."""
    return verification_service.issue_upload_token(db, current_user, data.filename, data.content_type)


@router.post("/submission", response_model=SubmissionCreated, status_code=status.HTTP_201_CREATED)
def submit(
    data: SubmissionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    submission = verification_service.submit(db, current_user, _dump_images(data.images), data.device_info)
    return SubmissionCreated(submission_id=submission.id, status=submission.status)


@router.get("/my-status", response_model=MyStatusResponse)
def my_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """User-facing status derived from the latest submission."""
    latest = verification_service.get_my_latest(db, current_user)
    return MyStatusResponse(
        status=latest.status,
        submission_id=latest.submission.id if latest.submission else None,
        submission_status=latest.submission.status if latest.submission else None,
    )


@router.get("/my-latest", response_model=MyLatestResponse)
def my_latest(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    latest = verification_service.get_my_latest(db, current_user)
    return MyLatestResponse(
        status=latest.status,
        submission_id=latest.submission.id if latest.submission else None,
        submission_status=latest.submission.status if latest.submission else None,
        comments=latest.comments,
        reviewer_message=latest.reviewer_message,
        history=[StatusHistoryEntry.model_validate(h) for h in latest.history],
    )


@router.get("/{submission_id}/status", response_model=SubmissionStatus)
def submission_status(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return verification_service.get_submission_for(db, current_user, submission_id)


@router.post("/{submission_id}/respond-more", response_model=RespondMoreResponse)
def respond_more(
    submission_id: int,
    data: RespondMoreRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Send exactly three more photos, optionally with a note for the reviewer."""
    submission = verification_service.respond_more(
        db, current_user, submission_id, _dump_images(data.images), data.note
    )
    return RespondMoreResponse(submission_id=submission.id, status=submission.status)


@router.post("/{submission_id}/appeal", response_model=AppealResponse)
def appeal(
    submission_id: int,
    data: ReasonRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return verification_service.appeal(db, current_user, submission_id, data.reason)
