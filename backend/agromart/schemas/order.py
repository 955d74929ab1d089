"""Order schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class OrderCreate(BaseModel):
    listing_id: int
    quantity: int = Field(..., gt=0)
    delivery_address: str | None = None
    notes: str | None = None


class OrderStatusUpdate(BaseModel):
    status: str


class OrderHistoryEntry(BaseModel):
    from_status: str | None
    to_status: str
    actor_user_id: int | None
    note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    listing_id: int
    buyer_id: int
    farmer_id: int
    quantity: int
    unit_price: float
    total_price: float
    status: str
    delivery_address: str | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderDetail(OrderResponse):
    history: list[OrderHistoryEntry] = []
