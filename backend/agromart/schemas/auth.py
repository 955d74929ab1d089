"""Auth schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=4)
    full_name: str
    username: str | None = Field(default=None, pattern=r"^[A-Za-z][A-Za-z0-9_.-]{2,63}$")
    role: str = Field(default="buyer", pattern="^(buyer|farmer)$")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserMe(BaseModel):
    id: int
    email: str
    username: str | None = None
    full_name: str
    role: str
    status: str
    is_active: bool
    farm_verified: bool
    strikes_count: int
    location: dict[str, Any] | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UpdateProfileRequest(BaseModel):
    full_name: str | None = None
    username: str | None = Field(default=None, pattern=r"^[A-Za-z][A-Za-z0-9_.-]{2,63}$")
