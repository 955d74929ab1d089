"""User reports and report appeals."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from agromart.core.deps import get_current_user
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.report import AppealCreate, ReportAppealResponse, ReportCreate, ReportResponse
from agromart.services import moderation_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    data: ReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Report another user by id or username."""
    return moderation_service.create_report(
        db,
        current_user,
        data.reported_user_id,
        data.reason_code,
        data.description,
        data.evidence_media_links,
    )


@router.post("/appeal-latest", response_model=ReportAppealResponse)
def appeal_latest(
    data: AppealCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Appeal the most recent validated report against you."""
    return moderation_service.appeal_latest(db, current_user, data.reason)


@router.get("/my-appeals", response_model=list[ReportAppealResponse])
def my_appeals(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return moderation_service.list_my_appeals(db, current_user, status_filter)


@router.post("/{report_id}/appeal", response_model=ReportAppealResponse)
def appeal_report(
    report_id: int,
    data: AppealCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return moderation_service.appeal_report(db, current_user, report_id, data.reason)
