"""Order reviews and the comment threads under them."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from agromart.core.exceptions import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from agromart.models.order import Order
from agromart.models.review import Review, ReviewComment
from agromart.models.user import User
from agromart.services.audit_service import write_audit
from agromart.services.notification_service import create_notification
from agromart.services.order_service import get_order

logger = logging.getLogger(__name__)


def create_review(db: Session, reviewer: User, order_id: int, rating: int, comment: str | None = None) -> Review:
    """Buyer reviews a delivered order, once."""
    if not 1 <= rating <= 5:
        raise InvalidInputError("Rating must be between 1 and 5")
    order = get_order(db, order_id)
    if order.buyer_id != reviewer.id:
        raise PermissionDeniedError("Only the buyer can review this order")
    if order.status != "delivered":
        raise ConflictError("Only delivered orders can be reviewed")
    if db.execute(select(Review.id).where(Review.order_id == order.id)).first():
        raise ConflictError("Order already reviewed", code="already_reviewed")
    review = Review(order_id=order.id, reviewer_id=reviewer.id, farmer_id=order.farmer_id, rating=rating, comment=comment)
    db.add(review)
    db.commit()
    db.refresh(review)
    create_notification(
        db,
        review.farmer_id,
        "review_created",
        "New review received",
        f"{reviewer.display_name} rated you {rating} star{'' if rating == 1 else 's'}.",
        {"reviewId": review.id, "orderId": order.id, "rating": rating},
    )
    return review


def get_review(db: Session, review_id: int) -> Review:
    review = db.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    return review


def list_reviews_for_farmer(db: Session, farmer_id: int, limit: int = 50) -> list[Review]:
    stmt = (
        select(Review)
        .where(Review.farmer_id == farmer_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def list_reviews_for_listing(db: Session, listing_id: int, limit: int = 50) -> list[Review]:
    stmt = (
        select(Review)
        .join(Order, Order.id == Review.order_id)
        .where(Order.listing_id == listing_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


# ---- comments ----


def add_comment(db: Session, author: User, review_id: int, text: str) -> ReviewComment:
    """Reply under a review; notifies the reviewed farmer and the reviewer."""
    review = get_review(db, review_id)
    text = (text or "").strip()
    if not text:
        raise InvalidInputError("Comment is required")
    comment = ReviewComment(review_id=review.id, author_id=author.id, comment=text)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    data = {"reviewId": review.id, "commentId": comment.id}
    body = f"{author.display_name} commented on a review."
    recipients = (
        (review.farmer_id, "New comment on a review"),
        (review.reviewer_id, "Someone replied to your review"),
    )
    for user_id, title in recipients:
        if user_id != author.id:
            create_notification(db, user_id, "review_commented", title, body, data)
    return comment


def list_comments(db: Session, review_id: int) -> list[ReviewComment]:
    """Oldest-first thread under a review."""
    review = get_review(db, review_id)
    stmt = (
        select(ReviewComment)
        .where(ReviewComment.review_id == review.id)
        .order_by(ReviewComment.created_at, ReviewComment.id)
    )
    return list(db.execute(stmt).scalars().all())


# ---- admin ----


def delete_review(db: Session, admin: User, review_id: int) -> None:
    """Remove a review and its comment thread."""
    review = get_review(db, review_id)
    db.execute(delete(ReviewComment).where(ReviewComment.review_id == review.id))
    write_audit(db, admin.id, "review_deleted", "review", review.id, {"orderId": review.order_id})
    db.delete(review)
    db.commit()
    logger.info("Admin %s deleted review %s", admin.id, review_id)


def delete_comment(db: Session, admin: User, comment_id: int) -> None:
    comment = db.get(ReviewComment, comment_id)
    if not comment:
        raise NotFoundError("Comment not found")
    write_audit(db, admin.id, "review_comment_deleted", "review_comment", comment.id, {"reviewId": comment.review_id})
    db.delete(comment)
    db.commit()
