"""Audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from agromart.models.audit_log import AuditLog


def write_audit(
    db: Session,
    actor_user_id: int | None,
    action: str,
    subject_type: str,
    subject_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction. Caller commits."""
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        subject_type=subject_type,
        subject_id=subject_id,
        details=details or {},
    )
    db.add(entry)
    return entry


def list_audit_logs(
    db: Session,
    limit: int = 100,
    since: datetime | None = None,
    action: str | None = None,
) -> list[AuditLog]:
    """Newest-first audit rows."""
    stmt = select(AuditLog)
    if since is not None:
        stmt = stmt.where(AuditLog.created_at >= since)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())
