"""Reviews API: order reviews, comment threads and admin removal."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from agromart.core.deps import active_user, require_admin
from agromart.db.session import get_db
from agromart.models.user import User
from agromart.schemas.review import ReviewCommentCreate, ReviewCommentResponse, ReviewCreate, ReviewResponse
from agromart.services import review_service

router = APIRouter(tags=["reviews"])


@router.post("/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def post_review(
    data: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    return review_service.create_review(db, current_user, data.order_id, data.rating, data.comment)


@router.get("/reviews/{review_id}", response_model=ReviewResponse)
def get_review(review_id: int, db: Session = Depends(get_db)):
    return review_service.get_review(db, review_id)


@router.get("/users/{user_id}/reviews", response_model=list[ReviewResponse])
def farmer_reviews(user_id: int, db: Session = Depends(get_db)):
    return review_service.list_reviews_for_farmer(db, user_id)


@router.get("/listings/{listing_id}/reviews", response_model=list[ReviewResponse])
def listing_reviews(listing_id: int, db: Session = Depends(get_db)):
    return review_service.list_reviews_for_listing(db, listing_id)


@router.get("/reviews/{review_id}/comments", response_model=list[ReviewCommentResponse])
def review_comments(review_id: int, db: Session = Depends(get_db)):
    return review_service.list_comments(db, review_id)


@router.post(
    "/reviews/{review_id}/comments",
    response_model=ReviewCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_comment(
    review_id: int,
    data: ReviewCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(active_user),
):
    return review_service.add_comment(db, current_user, review_id, data.comment)


@router.delete("/admin/reviews/comments/{comment_id}")
def admin_delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    review_service.delete_comment(db, admin, comment_id)
    return {"ok": True}


@router.delete("/admin/reviews/{review_id}")
def admin_delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    review_service.delete_review(db, admin, review_id)
    return {"ok": True}
