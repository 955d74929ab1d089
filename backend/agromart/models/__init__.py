"""SQLAlchemy models."""

from __future__ import annotations

from agromart.models.audit_log import AuditLog
from agromart.models.favorite import Favorite
from agromart.models.listing import Listing
from agromart.models.notification import Notification
from agromart.models.order import Order, OrderStatusHistory
from agromart.models.report import ReportAppeal, UserReport
from agromart.models.review import Review, ReviewComment
from agromart.models.user import User
from agromart.models.verification import (
    UploadToken,
    UserVerification,
    VerificationAppeal,
    VerificationStatusHistory,
    VerificationSubmission,
)

__all__ = [
    "User",
    "AuditLog",
    "Favorite",
    "Listing",
    "Notification",
    "Order",
    "OrderStatusHistory",
    "ReportAppeal",
    "Review",
    "ReviewComment",
    "UploadToken",
    "UserReport",
    "UserVerification",
    "VerificationAppeal",
    "VerificationStatusHistory",
    "VerificationSubmission",
]
