"""Shared model columns."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from agromart.core.geo import cell_of, point_of


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class LocatedMixin:
    """Adds a location document and its derived geo cell.

    ``geo_cell`` is recomputed on every assignment to ``location`` so it can
    never drift from the stored coordinates. Callers must assign a new dict,
    not mutate the existing one in place.
    """

    location: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    geo_cell: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)

    @validates("location")
    def _sync_geo_cell(self, key: str, value: dict[str, Any] | None) -> dict[str, Any] | None:
        point = point_of(value)
        self.geo_cell = cell_of(*point) if point else None
        return value

    def refresh_geo_cell(self, resolution: int | None = None) -> bool:
        """Recompute the cell from the stored location. Returns True if it changed."""
        point = point_of(self.location)
        cell = cell_of(*point, resolution=resolution) if point else None
        if cell == self.geo_cell:
            return False
        self.geo_cell = cell
        return True
