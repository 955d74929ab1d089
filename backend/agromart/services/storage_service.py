"""Object storage helpers for verification uploads."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from agromart.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ObjectMeta:
    """Metadata from a storage HEAD request."""

    etag: str | None
    size: int | None
    content_type: str | None


def build_upload_key(user_id: int, filename: str, ts_ms: int) -> str:
    prefix = settings.storage_verification_prefix.strip("/")
    safe_name = filename.replace("/", "_").replace("\\", "_")
    return f"{prefix}/{user_id}/{ts_ms}_{safe_name}"


def object_url(key: str) -> str:
    return f"{settings.storage_base_url.rstrip('/')}/{key.lstrip('/')}"


def head_object(key: str) -> ObjectMeta | None:
    """HEAD an object. Returns None when storage is unconfigured, unreachable, or the object is missing."""
    if not settings.storage_base_url:
        return None
    try:
        resp = httpx.head(object_url(key), timeout=settings.storage_timeout_seconds)
    except httpx.HTTPError:
        logger.warning("Storage HEAD failed for %s", key, exc_info=True)
        return None
    if resp.status_code != 200:
        logger.info("Storage HEAD %s returned %s", key, resp.status_code)
        return None
    size = resp.headers.get("content-length")
    return ObjectMeta(
        etag=resp.headers.get("etag"),
        size=int(size) if size and size.isdigit() else None,
        content_type=resp.headers.get("content-type"),
    )
