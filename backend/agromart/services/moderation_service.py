"""Reports, strikes, suspension and the order pause/resume cascade."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from agromart.core.config import settings
from agromart.core.exceptions import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from agromart.core.policies import ACTIONABLE_REPORT_STATUSES, ACTIVE_ORDER_STATUSES, PAUSED
from agromart.models.order import Order
from agromart.models.report import ReportAppeal, UserReport
from agromart.models.user import User
from agromart.services.audit_service import write_audit
from agromart.services.history_service import record_order_status, status_before_pause
from agromart.services.notification_service import create_notification

logger = logging.getLogger(__name__)


@dataclass
class ReportRow:
    """Report with the reported user's current standing, for the admin queue."""

    report: UserReport
    status: str
    reported_user_status: str | None
    paused_orders: int


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def resolve_user_ref(db: Session, ref: int | str) -> User | None:
    """Find a user by numeric id or username."""
    if isinstance(ref, int) or (isinstance(ref, str) and ref.strip().isdigit()):
        return db.get(User, int(ref))
    return db.execute(select(User).where(User.username == str(ref).strip())).scalar_one_or_none()


# ---- order cascade ----


def pause_orders_for_user(db: Session, user: User, actor_id: int | None = None) -> list[Order]:
    """Pause the user's in-flight orders. Staged only; caller commits."""
    orders = db.execute(
        select(Order).where(
            or_(Order.buyer_id == user.id, Order.farmer_id == user.id),
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
    ).scalars().all()
    for order in orders:
        record_order_status(db, order.id, order.status, PAUSED, actor_id, "account suspended")
        order.status = PAUSED
    if orders:
        logger.info("Paused %d orders for suspended user %s", len(orders), user.id)
    return list(orders)


def resume_orders_for_user(db: Session, user: User, actor_id: int | None = None) -> list[Order]:
    """Restore each paused order to its last status before the pause. Staged only.

    Orders whose other party is still suspended stay paused; they resume when
    that party is reactivated.
    """
    orders = db.execute(
        select(Order).where(
            or_(Order.buyer_id == user.id, Order.farmer_id == user.id),
            Order.status == PAUSED,
        )
    ).scalars().all()
    resumed = []
    for order in orders:
        other_id = order.farmer_id if order.buyer_id == user.id else order.buyer_id
        other = db.get(User, other_id)
        if other is not None and other.status == "suspended":
            continue
        restored = status_before_pause(db, order.id)
        record_order_status(db, order.id, PAUSED, restored, actor_id, "account reactivated")
        order.status = restored
        resumed.append(order)
    if resumed:
        logger.info("Resumed %d of %d paused orders for user %s", len(resumed), len(orders), user.id)
    return resumed


# ---- account status ----


def _suspend(db: Session, user: User, actor_id: int | None) -> int:
    user.status = "suspended"
    return len(pause_orders_for_user(db, user, actor_id))


def suspend_user(db: Session, admin: User, user_id: int, reason: str | None = None) -> User:
    user = _get_user(db, user_id)
    if user.role == "admin":
        raise PermissionDeniedError("Admins cannot be suspended")
    paused = 0
    if user.status != "suspended":
        paused = _suspend(db, user, admin.id)
    write_audit(db, admin.id, "user_suspended", "user", user.id, {"pausedOrders": paused, "reason": reason})
    db.commit()
    db.refresh(user)
    create_notification(
        db,
        user.id,
        "account_suspended",
        "Account suspended",
        reason or "Your account has been suspended. Active orders are paused.",
        {"pausedOrders": paused},
    )
    return user


def unsuspend_user(db: Session, admin: User, user_id: int) -> User:
    """Reactivate a suspended user and resume their paused orders.

    Repeating the call on an already active user changes nothing. Banned
    accounts are not reactivated here.
    """
    user = _get_user(db, user_id)
    if user.status == "active":
        return user
    if user.status != "suspended":
        raise ConflictError(f"User is {user.status}, not suspended", code="not_suspended")
    user.status = "active"
    resumed = resume_orders_for_user(db, user, admin.id)
    write_audit(db, admin.id, "user_unsuspended", "user", user.id, {"resumedOrders": len(resumed)})
    db.commit()
    db.refresh(user)
    create_notification(
        db,
        user.id,
        "account_reactivated",
        "Account reactivated",
        "Your account is active again.",
        {"resumedOrders": len(resumed)},
    )
    return user


def ban_user(db: Session, admin: User, user_id: int) -> User:
    user = _get_user(db, user_id)
    if user.role == "admin":
        raise PermissionDeniedError("Admins cannot be banned")
    user.status = "inactive"
    user.is_active = False
    write_audit(db, admin.id, "user_banned", "user", user.id)
    db.commit()
    db.refresh(user)
    return user


# ---- reports ----


def create_report(
    db: Session,
    reporter: User,
    reported_ref: int | str,
    reason_code: str,
    description: str | None = None,
    evidence_links: list[str] | None = None,
) -> UserReport:
    if not reason_code:
        raise InvalidInputError("reason_code required")
    reported = resolve_user_ref(db, reported_ref)
    if not reported:
        raise NotFoundError("Reported user not found")
    if reported.id == reporter.id:
        raise InvalidInputError("You cannot report yourself")
    report = UserReport(
        reporter_id=reporter.id,
        reported_user_id=reported.id,
        reason_code=reason_code,
        description=description,
        evidence_links=list(evidence_links or []),
        status="pending",
    )
    db.add(report)
    db.flush()
    write_audit(db, reporter.id, "report_created", "report", report.id, {"reportedUserId": reported.id})
    db.commit()
    db.refresh(report)
    create_notification(
        db,
        reported.id,
        "report",
        "You have been reported",
        "A report was filed against your account and will be reviewed by a moderator.",
        {"reportId": report.id},
    )
    return report


def _get_actionable_report(db: Session, report_id: int) -> UserReport:
    report = db.get(UserReport, report_id)
    if not report:
        raise NotFoundError("Report not found")
    if report.status not in ACTIONABLE_REPORT_STATUSES:
        raise ConflictError("Report already processed", code="already_processed")
    return report


def validate_report(db: Session, admin: User, report_id: int, note: str | None = None) -> UserReport:
    """Uphold a report: one strike, and suspension once the threshold is reached."""
    report = _get_actionable_report(db, report_id)
    user = _get_user(db, report.reported_user_id)
    report.status = "validated"
    report.validated_by = admin.id
    report.validated_at = _now()
    report.resolution_note = note

    user.strikes_count = (user.strikes_count or 0) + 1
    threshold = settings.strikes_suspend_threshold
    # admins are never suspended and banned accounts keep their status
    newly_suspended = user.strikes_count >= threshold and user.role != "admin" and user.status == "active"
    paused = _suspend(db, user, admin.id) if newly_suspended else 0
    write_audit(
        db,
        admin.id,
        "report_validated",
        "report",
        report.id,
        {"strikes": user.strikes_count, "suspended": newly_suspended, "pausedOrders": paused},
    )
    db.commit()
    db.refresh(report)
    if newly_suspended:
        logger.info("User %s suspended at %d strikes", user.id, user.strikes_count)

    create_notification(
        db,
        user.id,
        "moderation",
        "Account suspended" if newly_suspended else "Strike applied",
        f"A report against you was upheld. Strikes: {user.strikes_count}/{threshold}.",
        {"reportId": report.id, "strikes": user.strikes_count, "suspended": newly_suspended},
    )
    return report


def reject_report(db: Session, admin: User, report_id: int, note: str | None = None) -> UserReport:
    report = _get_actionable_report(db, report_id)
    report.status = "rejected"
    report.validated_by = admin.id
    report.validated_at = _now()
    report.resolution_note = note
    write_audit(db, admin.id, "report_rejected", "report", report.id)
    db.commit()
    db.refresh(report)
    return report


def list_reports(db: Session, status: str | None = None, limit: int = 100) -> list[ReportRow]:
    """Admin queue. Legacy "open" reports are shown as pending."""
    stmt = select(UserReport)
    if status == "pending":
        stmt = stmt.where(UserReport.status.in_(ACTIONABLE_REPORT_STATUSES))
    elif status:
        stmt = stmt.where(UserReport.status == status)
    stmt = stmt.order_by(UserReport.created_at.desc(), UserReport.id.desc()).limit(limit)
    reports = db.execute(stmt).scalars().all()

    user_ids = {r.reported_user_id for r in reports}
    statuses = dict(db.execute(select(User.id, User.status).where(User.id.in_(user_ids))).all()) if user_ids else {}
    paused: dict[int, int] = {}
    for uid in user_ids:
        paused[uid] = db.execute(
            select(func.count(Order.id)).where(
                or_(Order.buyer_id == uid, Order.farmer_id == uid),
                Order.status == PAUSED,
            )
        ).scalar_one()
    return [
        ReportRow(
            report=r,
            status="pending" if r.status == "open" else r.status,
            reported_user_status=statuses.get(r.reported_user_id),
            paused_orders=paused.get(r.reported_user_id, 0),
        )
        for r in reports
    ]


# ---- appeals ----


def appeal_report(db: Session, user: User, report_id: int, reason: str | None = None) -> ReportAppeal:
    """File an appeal against a report on the user. Idempotent while an appeal is open."""
    report = db.get(UserReport, report_id)
    if not report or report.reported_user_id != user.id:
        raise NotFoundError("Report not found")
    existing = db.execute(
        select(ReportAppeal).where(
            ReportAppeal.report_id == report.id,
            ReportAppeal.user_id == user.id,
            ReportAppeal.status == "open",
        )
    ).scalar_one_or_none()
    if existing:
        return existing
    record = ReportAppeal(report_id=report.id, user_id=user.id, reason=reason, status="open")
    db.add(record)
    db.flush()
    write_audit(db, user.id, "report_appeal_filed", "report", report.id, {"appealId": record.id})
    db.commit()
    db.refresh(record)
    return record


def appeal_latest(db: Session, user: User, reason: str | None = None) -> ReportAppeal:
    """Appeal the most recently validated report against the user."""
    stmt = (
        select(UserReport)
        .where(UserReport.reported_user_id == user.id, UserReport.status == "validated")
        .order_by(
            func.coalesce(UserReport.validated_at, UserReport.created_at).desc(),
            UserReport.id.desc(),
        )
        .limit(1)
    )
    report = db.execute(stmt).scalar_one_or_none()
    if not report:
        raise NotFoundError("No validated report to appeal")
    return appeal_report(db, user, report.id, reason)


def list_my_appeals(db: Session, user: User, status: str | None = None) -> list[ReportAppeal]:
    stmt = select(ReportAppeal).where(ReportAppeal.user_id == user.id)
    if status:
        stmt = stmt.where(ReportAppeal.status == status)
    stmt = stmt.order_by(ReportAppeal.created_at.desc(), ReportAppeal.id.desc())
    return list(db.execute(stmt).scalars().all())


def resolve_report_appeal(db: Session, admin: User, appeal_id: int, note: str | None = None) -> ReportAppeal:
    record = db.get(ReportAppeal, appeal_id)
    if not record:
        raise NotFoundError("Appeal not found")
    if record.status != "open":
        raise ConflictError("Appeal already resolved", code="already_resolved")
    record.status = "resolved"
    record.resolution_note = note
    record.resolved_by = admin.id
    record.resolved_at = _now()
    write_audit(db, admin.id, "report_appeal_resolved", "report_appeal", record.id)
    db.commit()
    db.refresh(record)
    create_notification(
        db,
        record.user_id,
        "moderation",
        "Appeal reviewed",
        note or "Your appeal has been reviewed.",
        {"appealId": record.id},
    )
    return record
