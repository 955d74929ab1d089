"""agromart FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agromart.api import (
    admin,
    admin_verification,
    auth,
    favorites,
    health,
    listings,
    location,
    notifications,
    orders,
    reports,
    reviews,
    verification,
)
from agromart.core.config import settings
from agromart.core.exceptions import ServiceError

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(location.router)
app.include_router(listings.router)
app.include_router(orders.router)
app.include_router(reviews.router)
app.include_router(favorites.router)
app.include_router(verification.router)
app.include_router(admin_verification.router)
app.include_router(reports.router)
app.include_router(admin.router)
app.include_router(notifications.router)
