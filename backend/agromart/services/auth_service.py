"""Account registration and sign-in for buyers and farmers.

Admins are never created here; they are promoted from an existing account.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from agromart.core.security import hash_password, verify_password
from agromart.models.user import User
from agromart.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def create_user(db: Session, data: RegisterRequest) -> User:
    """New account in good standing: active, no strikes, unverified farm."""
    user = User(
        email=normalize_email(data.email),
        username=data.username,
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        role=data.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered %s account %s", user.role, user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """The account for these credentials, or None.

    Banned accounts cannot sign in. Suspended accounts can, so they keep read
    access and can appeal.
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        logger.info("Sign-in refused for deactivated account %s", user.id)
        return None
    return user
