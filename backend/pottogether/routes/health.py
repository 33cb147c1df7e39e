"""
PotTogether Backend: Health Check Route
========================================

What:  Liveness / readiness probe for Docker and load balancers.
How:   Runs `SELECT 1` on the application's database and checks that the
       storage root is writable.

Status levels:
    healthy:    database reachable and storage writable (HTTP 200)
    unhealthy:  either check failed (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text

from pottogether import __version__
from pottogether.schemas.common import Envelope, HealthResponse
from pottogether.services.object_store import ObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=Envelope[HealthResponse], summary="Service health check")
async def health_check(
    request: Request,
    response: Response,
    store: ObjectStore = Depends(get_object_store),
) -> Envelope[HealthResponse]:
    db_status = "connected"
    storage_status = "writable"

    try:
        async with request.app.state.database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not store.is_writable():
        storage_status = "unavailable"
        logger.warning("Health check: storage root %s not writable", store.storage_root)

    healthy = db_status == "connected" and storage_status == "writable"
    if not healthy:
        response.status_code = 503

    return Envelope[HealthResponse].ok(
        HealthResponse(
            status="healthy" if healthy else "unhealthy",
            version=__version__,
            database=db_status,
            storage=storage_status,
            uptime_seconds=round(time.time() - _start_time, 2),
        )
    )
