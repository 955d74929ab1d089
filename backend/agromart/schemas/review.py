"""Review schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    order_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class ReviewResponse(BaseModel):
    id: int
    order_id: int
    reviewer_id: int
    farmer_id: int
    rating: int
    comment: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReviewCommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class ReviewCommentResponse(BaseModel):
    id: int
    review_id: int
    author_id: int
    comment: str
    created_at: datetime

    model_config = {"from_attributes": True}
