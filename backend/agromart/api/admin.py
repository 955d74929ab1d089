"""Admin moderation API: reports, account status, audit log, geo maintenance."""

from __future__ import annotations

import csv
import io
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from agromart.core.deps import require_admin
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.notification import AuditLogResponse
from agromart.schemas.report import (
    AdminReportResponse,
    AdminUserResponse,
    DecisionRequest,
    ReportAppealResponse,
    ReportResponse,
    SuspendRequest,
)
from agromart.services import moderation_service
from agromart.services.audit_service import list_audit_logs
from agromart.services.geo_service import backfill_geo_cells

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/reports", response_model=list[AdminReportResponse])
def list_reports(
    status: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    rows = moderation_service.list_reports(db, status, limit)
    return [
        AdminReportResponse.model_validate(row.report).model_copy(
            update={
                "status": row.status,
                "reported_user_status": row.reported_user_status,
                "paused_orders": row.paused_orders,
            }
        )
        for row in rows
    ]


@router.post("/reports/{report_id}/validate", response_model=ReportResponse)
def validate_report(
    report_id: int,
    data: DecisionRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Uphold a report. Applies a strike and may suspend the reported user."""
    return moderation_service.validate_report(db, admin, report_id, data.note)


@router.post("/reports/{report_id}/reject", response_model=ReportResponse)
def reject_report(
    report_id: int,
    data: DecisionRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return moderation_service.reject_report(db, admin, report_id, data.note)


@router.post("/report-appeals/{appeal_id}/resolve", response_model=ReportAppealResponse)
def resolve_report_appeal(
    appeal_id: int,
    data: DecisionRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return moderation_service.resolve_report_appeal(db, admin, appeal_id, data.note)


@router.post("/users/{user_id}/suspend", response_model=AdminUserResponse)
def suspend(
    user_id: int,
    data: SuspendRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Suspend an account and pause its in-flight orders."""
    return moderation_service.suspend_user(db, admin, user_id, data.reason)


@router.post("/users/{user_id}/unsuspend", response_model=AdminUserResponse)
def unsuspend(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Reactivate an account and resume its paused orders."""
    return moderation_service.unsuspend_user(db, admin, user_id)


@router.post("/users/{user_id}/ban", response_model=AdminUserResponse)
def ban(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return moderation_service.ban_user(db, admin, user_id)


@router.get("/audit-logs", response_model=list[AuditLogResponse])
def audit_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    since: datetime | None = None,
    action: str | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return list_audit_logs(db, limit, since, action)


@router.get("/audit-logs.csv")
def audit_logs_csv(
    limit: int = Query(default=1000, ge=1, le=10000),
    since: datetime | None = None,
    action: str | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["id", "created_at", "actor_user_id", "action", "subject_type", "subject_id"])
    for row in list_audit_logs(db, limit, since, action):
        writer.writerow([row.id, row.created_at.isoformat(), row.actor_user_id, row.action, row.subject_type, row.subject_id])
    buf.seek(0)
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=audit-logs.csv"},
    )


@router.post("/geo/backfill")
def geo_backfill(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    """Recompute stored geo cells after a grid resolution change."""
    return {"updated": backfill_geo_cells(db)}
