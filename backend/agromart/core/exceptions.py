"""Service-layer exceptions.

Services raise these; ``agromart.main`` maps them to JSON error responses of
the form ``{"detail": ..., "code": ...}``. They subclass ``ValueError`` so
callers that only care about "bad request" style failures can keep catching
``ValueError``.
"""

from __future__ import annotations

from typing import Any


class ServiceError(ValueError):
    """Base exception for all service errors."""

    status_code = 400
    default_code = "bad_request"

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body.update(self.details)
        return body


class InvalidInputError(ServiceError):
    """Request is well-formed but semantically invalid."""

    status_code = 400
    default_code = "invalid_input"


class PermissionDeniedError(ServiceError):
    status_code = 403
    default_code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    default_code = "not_found"


class ConflictError(ServiceError):
    """State changed underneath the caller, or the record was already processed."""

    status_code = 409
    default_code = "conflict"
