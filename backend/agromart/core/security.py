"""Credential handling for marketplace accounts.

Passwords are stored as bcrypt hashes. Access tokens are HS256 JWTs whose
``sub`` is the account email; the role is carried as a hint for clients and
is never trusted server side, where the account row is reloaded per request.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from agromart.core.config import settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def create_access_token(email: str, role: str | None = None) -> str:
    """Sign a session token for the account with this email."""
    issued = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": email,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_expire_minutes),
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired token; None for anything else."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
