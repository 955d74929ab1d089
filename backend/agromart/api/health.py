"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from agromart.core.config import settings
from agromart.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)) -> dict:
    """Return API health status, including database reachability and grid resolution."""
    db.execute(text("SELECT 1"))
    return {"status": "ok", "geo_cell_res": settings.geo_cell_res}
