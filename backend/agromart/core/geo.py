"""Geo grid and distance math.

Entities are bucketed into a coarse grid of ``1/R`` degree cells keyed
``"{floor(lat*R)}:{floor(lng*R)}"``. A radius query expands to a block of
cells that always covers the true circle, so callers must refine candidates
with :func:`haversine_km`.
"""

from __future__ import annotations

import math
from typing import Any

from agromart.core.config import settings
from agromart.core.exceptions import InvalidInputError

EARTH_RADIUS_KM = 6371.0
LAT_DEGREE_KM = 110.574
# Degree of longitude at the equator on the Haversine sphere (~111.195 km).
# Box and cell extents must not use a longer degree than the distance metric.
LNG_DEGREE_KM_AT_EQUATOR = 2 * math.pi * EARTH_RADIUS_KM / 360


def _resolution(resolution: int | None) -> int:
    res = settings.geo_cell_res if resolution is None else resolution
    return max(1, min(100, int(res)))


def is_valid_point(lat: float, lng: float) -> bool:
    return (
        math.isfinite(lat)
        and math.isfinite(lng)
        and -90 <= lat <= 90
        and -180 <= lng <= 180
    )


def _wrap_lng_bucket(bucket: int, res: int) -> int:
    # lng=180 shares a bucket with lng=-180
    half = 180 * res
    return (bucket + half) % (2 * half) - half


def cell_of(lat: float, lng: float, resolution: int | None = None) -> str:
    """Grid cell key for a point."""
    if not is_valid_point(lat, lng):
        raise InvalidInputError("Invalid coordinates", code="invalid_coordinates")
    res = _resolution(resolution)
    return f"{math.floor(lat * res)}:{_wrap_lng_bucket(math.floor(lng * res), res)}"


def neighbor_cells(lat: float, lng: float, radius_km: float, resolution: int | None = None) -> set[str]:
    """All cells in the block of cells covering ``radius_km`` around the point.

    Latitude steps are ``ceil(radius / cell_km)``. Longitude steps are never
    fewer, and widen toward the poles where a degree of longitude shrinks.
    Longitude buckets wrap at the antimeridian.
    """
    if not is_valid_point(lat, lng):
        raise InvalidInputError("Invalid coordinates", code="invalid_coordinates")
    res = _resolution(resolution)
    cell_km = LAT_DEGREE_KM / res
    lat_steps = max(0, math.ceil(radius_km / max(cell_km, 1)))
    buckets_around = 360 * res
    far_lat = min(90.0, abs(lat) + radius_km / LAT_DEGREE_KM)
    lng_degree_km = LNG_DEGREE_KM_AT_EQUATOR * math.cos(math.radians(far_lat))
    if lng_degree_km <= 1e-6:
        lng_steps = buckets_around // 2
    else:
        lng_steps = max(lat_steps, math.ceil(radius_km / lng_degree_km * res))
        lng_steps = min(lng_steps, buckets_around // 2)
    lat_bucket = math.floor(lat * res)
    lng_bucket = math.floor(lng * res)
    return {
        f"{lat_bucket + dy}:{_wrap_lng_bucket(lng_bucket + dx, res)}"
        for dy in range(-lat_steps, lat_steps + 1)
        for dx in range(-lng_steps, lng_steps + 1)
    }


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float, float, float]:
    """(min_lat, max_lat, min_lng, max_lng) around a point.

    The longitude span is measured at the box edge nearest the pole, so the
    box never clips a point inside the radius.
    """
    d_lat = radius_km / LAT_DEGREE_KM
    far_lat = min(90.0, abs(lat) + d_lat)
    lng_degree_km = LNG_DEGREE_KM_AT_EQUATOR * math.cos(math.radians(far_lat))
    d_lng = radius_km / max(lng_degree_km, 1e-6)
    return lat - d_lat, lat + d_lat, lng - d_lng, lng + d_lng


def in_bounding_box(box: tuple[float, float, float, float], lat: float, lng: float) -> bool:
    min_lat, max_lat, min_lng, max_lng = box
    if lng < min_lng:
        lng += 360
    elif lng > max_lng:
        lng -= 360
    return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two lat/lng points in kilometers."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _to_float(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            return float(raw)
        except ValueError:
            return None
    return None


def parse_lat_lng(raw_lat: Any, raw_lng: Any) -> tuple[float, float] | None:
    """Coerce numbers or numeric strings into a valid (lat, lng), else None."""
    lat = _to_float(raw_lat)
    lng = _to_float(raw_lng)
    if lat is None or lng is None or not is_valid_point(lat, lng):
        return None
    return lat, lng


def point_of(location: dict | None) -> tuple[float, float] | None:
    """Extract a valid point from a stored location document."""
    if not location:
        return None
    return parse_lat_lng(location.get("lat"), location.get("lng"))


def image_spread(images: list[dict[str, Any]], max_meters: float = 200.0) -> dict[str, Any]:
    """Check that geotagged evidence images were taken close together.

    Images without usable coordinates are ignored; fewer than two located
    images always pass.
    """
    points = [p for p in (parse_lat_lng(i.get("lat"), i.get("lng")) for i in images) if p]
    max_d = 0.0
    for i, a in enumerate(points):
        for b in points[i + 1:]:
            max_d = max(max_d, haversine_km(a[0], a[1], b[0], b[1]) * 1000)
    return {"withinRadius": max_d <= max_meters, "maxDistanceMeters": round(max_d)}
