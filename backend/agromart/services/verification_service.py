"""Farm verification workflow.

Every transition stages the submission change, its history row, the audit
row and the per-user verification state, then commits once. Notifications
and emails go out after the commit and may fail without affecting it.

    (none) --submit--> pending
    pending | flagged | appeal | awaiting_second_approval | reinstated --approve--> approved
                                                                    --reject--> rejected
    pending | appeal | awaiting_second_approval | reinstated --request more info--> flagged
    flagged --respond more--> pending
    rejected | flagged --appeal--> appeal
    appeal --resolve(reinstate)--> reinstated
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from agromart.core.config import settings
from agromart.core.exceptions import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from agromart.core.geo import image_spread
from agromart.core.policies import (
    APPEAL_PRIORITY_DEFAULT,
    APPEALABLE_STATUSES,
    MAX_VERIFICATION_IMAGES,
    MORE_INFO_STATUSES,
    RESPOND_MORE_IMAGES,
    RESPOND_MORE_STATUSES,
    REVIEWABLE_STATUSES,
)
from agromart.models.mixins import as_utc
from agromart.models.user import User
from agromart.models.verification import (
    UploadToken,
    UserVerification,
    VerificationAppeal,
    VerificationStatusHistory,
    VerificationSubmission,
)
from agromart.services.audit_service import write_audit
from agromart.services.email_service import send_status_email
from agromart.services.history_service import record_verification_status, verification_history
from agromart.services.notification_service import create_notification
from agromart.services.storage_service import build_upload_key, head_object

logger = logging.getLogger(__name__)

# Submission status -> what the user sees
USER_FACING_STATUS = {"approved": "verified", "rejected": "rejected"}


@dataclass
class LatestVerification:
    """A user's most recent submission with its user-visible comments and history."""

    submission: VerificationSubmission | None
    status: str
    comments: list[dict[str, Any]] = field(default_factory=list)
    history: list[VerificationStatusHistory] = field(default_factory=list)
    reviewer_message: str | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def make_comment(author: str, author_user_id: int | None, text: str, visible_to_user: bool = True) -> dict[str, Any]:
    """Comment entry stored on a submission. ``author`` is "user" or "admin"."""
    return {
        "author": author,
        "authorUserId": author_user_id,
        "text": text,
        "visibleToUser": visible_to_user,
        "createdAt": _now().isoformat(),
    }


# ---- user verification state ----


def get_user_verification_status(db: Session, user_id: int) -> str:
    row = db.execute(select(UserVerification).where(UserVerification.user_id == user_id)).scalar_one_or_none()
    return row.status if row else "unverified"


def _upsert_user_verification(db: Session, user_id: int, status: str) -> None:
    row = db.execute(select(UserVerification).where(UserVerification.user_id == user_id)).scalar_one_or_none()
    if row:
        row.status = status
    else:
        db.add(UserVerification(user_id=user_id, status=status))


def derive_user_status(latest: VerificationSubmission | None) -> str:
    """User-facing status of a user whose most recent submission is ``latest``."""
    if latest is None:
        return "unverified"
    return USER_FACING_STATUS.get(latest.status, "pending")


# ---- lookups ----


def _latest_submission(db: Session, user_id: int) -> VerificationSubmission | None:
    stmt = (
        select(VerificationSubmission)
        .where(VerificationSubmission.user_id == user_id)
        .order_by(VerificationSubmission.created_at.desc(), VerificationSubmission.id.desc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def get_submission(db: Session, submission_id: int) -> VerificationSubmission:
    submission = db.get(VerificationSubmission, submission_id)
    if not submission:
        raise NotFoundError("Submission not found")
    return submission


def get_submission_for(db: Session, user: User, submission_id: int) -> VerificationSubmission:
    submission = get_submission(db, submission_id)
    if submission.user_id != user.id and user.role != "admin":
        raise PermissionDeniedError("Not your submission")
    return submission


def _get_owned(db: Session, user: User, submission_id: int) -> VerificationSubmission:
    submission = get_submission(db, submission_id)
    if submission.user_id != user.id:
        raise PermissionDeniedError("Not your submission")
    return submission


def get_my_latest(db: Session, user: User) -> LatestVerification:
    submission = _latest_submission(db, user.id)
    if submission is None:
        return LatestVerification(submission=None, status=derive_user_status(None))
    comments = [c for c in submission.admin_comments or [] if c.get("visibleToUser")]
    admin_comments = [c for c in comments if c.get("author") == "admin"]
    return LatestVerification(
        submission=submission,
        status=derive_user_status(submission),
        comments=comments,
        history=verification_history(db, submission.id),
        reviewer_message=admin_comments[-1]["text"] if admin_comments else submission.review_comment,
    )


def list_submissions(
    db: Session,
    status: str | None = None,
    user_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 100,
) -> list[VerificationSubmission]:
    stmt = select(VerificationSubmission)
    if status:
        stmt = stmt.where(VerificationSubmission.status == status)
    if user_id is not None:
        stmt = stmt.where(VerificationSubmission.user_id == user_id)
    if since is not None:
        stmt = stmt.where(VerificationSubmission.created_at >= since)
    if until is not None:
        stmt = stmt.where(VerificationSubmission.created_at <= until)
    stmt = stmt.order_by(VerificationSubmission.created_at.desc(), VerificationSubmission.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def list_appeals(db: Session, status: str | None = "open", limit: int = 100) -> list[VerificationAppeal]:
    stmt = select(VerificationAppeal)
    if status:
        stmt = stmt.where(VerificationAppeal.status == status)
    stmt = stmt.order_by(VerificationAppeal.priority, VerificationAppeal.created_at, VerificationAppeal.id).limit(limit)
    return list(db.execute(stmt).scalars().all())


# ---- uploads ----


def issue_upload_token(db: Session, user: User, filename: str, content_type: str | None = None) -> UploadToken:
    """Reserve an upload key for the user. The token is consumed when the image is submitted."""
    key = build_upload_key(user.id, filename, int(time.time() * 1000))
    token = UploadToken(
        user_id=user.id,
        upload_key=key,
        content_type=content_type,
        expires_at=_now() + timedelta(minutes=settings.upload_token_ttl_minutes),
    )
    db.add(token)
    write_audit(db, user.id, "upload_token_issued", "upload", None, {"key": key})
    db.commit()
    db.refresh(token)
    return token


def _check_image(db: Session, user_id: int, image: dict[str, Any]) -> dict[str, Any]:
    """Consume the image's upload token and annotate it with storage metadata.

    Images that fail either check are kept with ``verified: False``.
    """
    key = image.get("uploadKey")
    if not key:
        return {**image, "verified": False, "tokenValid": False}
    token = db.execute(select(UploadToken).where(UploadToken.upload_key == key)).scalar_one_or_none()
    if not token or token.user_id != user_id or as_utc(token.expires_at) <= _now():
        return {**image, "verified": False, "tokenValid": False}
    db.delete(token)

    meta = head_object(key)
    if meta is None:
        return {**image, "verified": False, "tokenValid": True}
    return {
        **image,
        "verified": True,
        "tokenValid": True,
        "etag": meta.etag,
        "size": meta.size,
        "contentType": meta.content_type,
    }


def _check_images(db: Session, user_id: int, images: list[dict[str, Any]]) -> list[dict[str, Any]]:
    checked = [_check_image(db, user_id, img) for img in images]
    db.flush()
    return checked


# ---- user transitions ----


def submit(
    db: Session,
    user: User,
    images: list[dict[str, Any]],
    device_info: dict[str, Any] | None = None,
) -> VerificationSubmission:
    """Open a new pending submission with 1-3 evidence images."""
    if not images or len(images) > MAX_VERIFICATION_IMAGES:
        raise InvalidInputError(
            f"Submit between 1 and {MAX_VERIFICATION_IMAGES} images", code="invalid_image_count"
        )
    checked = _check_images(db, user.id, images)
    submission = VerificationSubmission(
        user_id=user.id,
        images=checked,
        device_info=device_info,
        status="pending",
        admin_comments=[],
    )
    db.add(submission)
    db.flush()
    _upsert_user_verification(db, user.id, "pending")
    record_verification_status(db, submission.id, None, "pending", user.id)
    write_audit(
        db,
        user.id,
        "verification_submitted",
        "verification",
        submission.id,
        {
            "images": len(checked),
            "verified": sum(1 for img in checked if img["verified"]),
            "spread": image_spread(checked),
        },
    )
    db.commit()
    db.refresh(submission)
    logger.info("User %s opened verification submission %s", user.id, submission.id)
    return submission


def respond_more(
    db: Session,
    user: User,
    submission_id: int,
    images: list[dict[str, Any]],
    note: str | None = None,
) -> VerificationSubmission:
    """Add exactly three more images to an open submission."""
    submission = _get_owned(db, user, submission_id)
    if submission.status not in RESPOND_MORE_STATUSES:
        raise ConflictError("Cannot add information in the current status", code="respond_not_allowed_for_status")
    if len(images or []) != RESPOND_MORE_IMAGES:
        raise InvalidInputError(f"Exactly {RESPOND_MORE_IMAGES} images are required", code="need_exactly_3_images")

    checked = _check_images(db, user.id, images)
    from_status = submission.status
    to_status = "pending" if from_status == "flagged" else from_status
    submission.images = [*(submission.images or []), *checked]
    note = (note or "").strip()
    if note:
        submission.admin_comments = [*(submission.admin_comments or []), make_comment("user", user.id, note)]
    submission.status = to_status
    record_verification_status(db, submission.id, from_status, to_status, user.id, "user provided additional info")
    write_audit(
        db,
        user.id,
        "verification_respond_more",
        "verification",
        submission.id,
        {"added": len(checked), "note": bool(note)},
    )
    _upsert_user_verification(db, user.id, "pending")
    db.commit()
    db.refresh(submission)

    create_notification(
        db,
        user.id,
        "verification_status",
        "Additional info submitted",
        "Thanks! We received your additional information. We'll review it shortly.",
        {"submissionId": submission.id, "status": to_status},
    )
    return submission


def appeal(db: Session, user: User, submission_id: int, reason: str | None = None) -> VerificationAppeal:
    """Appeal a submission decision. Returns the existing open appeal if there is one."""
    submission = _get_owned(db, user, submission_id)
    existing = db.execute(
        select(VerificationAppeal).where(
            VerificationAppeal.submission_id == submission.id,
            VerificationAppeal.user_id == user.id,
            VerificationAppeal.status == "open",
        )
    ).scalar_one_or_none()
    if existing:
        return existing
    if submission.status not in APPEALABLE_STATUSES:
        raise ConflictError("Only rejected or flagged submissions can be appealed", code="not_appealable")

    submission.retention_extended_until = _now() + timedelta(days=settings.appeal_retention_days)
    record = VerificationAppeal(
        submission_id=submission.id,
        user_id=user.id,
        reason=reason,
        status="open",
        priority=APPEAL_PRIORITY_DEFAULT,
    )
    db.add(record)
    db.flush()
    record_verification_status(db, submission.id, submission.status, "appeal", user.id, reason)
    submission.status = "appeal"
    write_audit(db, user.id, "verification_appeal_filed", "verification", submission.id, {"appealId": record.id})
    db.commit()
    db.refresh(record)
    return record


# ---- admin transitions ----


def _notify_decision(
    db: Session,
    submission: VerificationSubmission,
    status: str,
    title: str,
    body: str,
    reason: str | None = None,
) -> None:
    create_notification(
        db,
        submission.user_id,
        "verification_status",
        title,
        body,
        {"submissionId": submission.id, "status": status},
    )
    owner = db.get(User, submission.user_id)
    if owner:
        send_status_email(owner.email, status, reason, submission.id)


def _close_open_appeals(db: Session, admin: User, submission_id: int, note: str) -> None:
    open_appeals = db.execute(
        select(VerificationAppeal).where(
            VerificationAppeal.submission_id == submission_id, VerificationAppeal.status == "open"
        )
    ).scalars()
    for record in open_appeals:
        record.status = "resolved"
        record.resolution_note = note
        record.resolved_by = admin.id
        record.resolved_at = _now()


def _review(
    db: Session,
    admin: User,
    submission_id: int,
    allowed: tuple[str, ...],
    to_status: str,
    user_status: str,
    action: str,
    note: str | None = None,
) -> VerificationSubmission:
    submission = get_submission(db, submission_id)
    if submission.status not in allowed:
        raise ConflictError(
            f"Cannot move a {submission.status} submission to {to_status}",
            code="invalid_transition",
        )
    from_status = submission.status
    submission.status = to_status
    submission.reviewer_id = admin.id
    record_verification_status(db, submission.id, from_status, to_status, admin.id, note)
    _upsert_user_verification(db, submission.user_id, user_status)
    _close_open_appeals(db, admin, submission.id, note or f"Submission {to_status}")
    write_audit(db, admin.id, action, "verification", submission.id, {"from": from_status, "note": note})
    return submission


def approve(db: Session, admin: User, submission_id: int) -> VerificationSubmission:
    submission = _review(db, admin, submission_id, REVIEWABLE_STATUSES, "approved", "verified", "verification_approved")
    owner = db.get(User, submission.user_id)
    if owner:
        owner.farm_verified = True
    db.commit()
    db.refresh(submission)
    _notify_decision(
        db,
        submission,
        "approved",
        "Verification approved",
        "Your farm verification was approved. You now have verified status.",
    )
    return submission


def reject(db: Session, admin: User, submission_id: int, reason: str | None = None) -> VerificationSubmission:
    submission = _review(
        db, admin, submission_id, REVIEWABLE_STATUSES, "rejected", "rejected", "verification_rejected", reason
    )
    submission.review_comment = reason
    db.commit()
    db.refresh(submission)
    body = f"Reason: {reason}" if reason else "Your farm verification was rejected."
    _notify_decision(db, submission, "rejected", "Verification rejected", body, reason)
    return submission


def request_more_info(db: Session, admin: User, submission_id: int, reason: str) -> VerificationSubmission:
    """Flag a submission and ask the owner for more evidence."""
    if not reason or not reason.strip():
        raise InvalidInputError("A reason is required", code="reason_required")
    reason = reason.strip()
    submission = _review(
        db, admin, submission_id, MORE_INFO_STATUSES, "flagged", "pending", "verification_more_info", reason
    )
    submission.admin_comments = [*(submission.admin_comments or []), make_comment("admin", admin.id, reason)]
    db.commit()
    db.refresh(submission)
    _notify_decision(db, submission, "flagged", "More info requested", reason, reason)
    return submission


def add_comment(
    db: Session,
    admin: User,
    submission_id: int,
    text: str,
    visible_to_user: bool = False,
) -> VerificationSubmission:
    if not text or not text.strip():
        raise InvalidInputError("Comment text is required")
    submission = get_submission(db, submission_id)
    submission.admin_comments = [
        *(submission.admin_comments or []),
        make_comment("admin", admin.id, text.strip(), visible_to_user),
    ]
    write_audit(db, admin.id, "verification_comment", "verification", submission.id, {"visibleToUser": visible_to_user})
    db.commit()
    db.refresh(submission)
    return submission


def resolve_appeal(
    db: Session,
    admin: User,
    appeal_id: int,
    note: str | None = None,
    reinstate: bool = False,
) -> VerificationAppeal:
    """Close an open appeal, optionally reinstating the submission for re-review."""
    record = db.get(VerificationAppeal, appeal_id)
    if not record:
        raise NotFoundError("Appeal not found")
    if record.status != "open":
        raise ConflictError("Appeal already resolved", code="already_resolved")
    submission = get_submission(db, record.submission_id)
    if reinstate and submission.status != "appeal":
        raise ConflictError(
            f"Cannot reinstate a {submission.status} submission",
            code="invalid_transition",
        )
    record.status = "resolved"
    record.resolution_note = note
    record.resolved_by = admin.id
    record.resolved_at = _now()

    if reinstate:
        record_verification_status(db, submission.id, submission.status, "reinstated", admin.id, note)
        submission.status = "reinstated"
        _upsert_user_verification(db, submission.user_id, "pending")
    write_audit(db, admin.id, "verification_appeal_resolved", "appeal", record.id, {"reinstate": reinstate})
    db.commit()
    db.refresh(record)

    if reinstate:
        create_notification(
            db,
            submission.user_id,
            "verification_status",
            "Appeal granted",
            "Your verification was reinstated and will be reviewed again.",
            {"submissionId": submission.id, "status": "reinstated"},
        )
    return record
