"""
Storefront Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer checks.
Why:   Load balancers route away from instances that cannot reach Mongo.
How:   Pings the database and checks the asset host (upload circuit state
       first, then a Cloudinary Admin API ping cached for ASSET_HEALTH_TTL).
Who:   Docker health checks, uptime monitors.

Status levels:
    - healthy:   database and asset host reachable (HTTP 200)
    - degraded:  asset host down or circuit open; reads still work (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from storefront import __version__
from storefront import database
from storefront.schemas.common import ApiResponse, HealthResponse
from storefront.services.asset_service import asset_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=ApiResponse[HealthResponse],
    summary="Service health check",
    description=(
        "Returns the health of the service and its dependencies. "
        "Responds 503 when the database is unreachable."
    ),
)
async def health_check():
    db_status = "connected"
    asset_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    if not await database.ping():
        db_status = "disconnected"
        overall = "unhealthy"

    # ── Check Asset Host ──────────────────────────────────────────────────
    if asset_service.upload_circuit.is_open:
        asset_status = "circuit_open"
    elif not await asset_service.health_check():
        asset_status = "unavailable"
    if asset_status != "available" and overall == "healthy":
        overall = "degraded"

    health = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        asset_host=asset_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    code = 503 if overall == "unhealthy" else 200
    envelope = ApiResponse[HealthResponse](status=code, data=health, message=f"Service {overall}")
    return JSONResponse(status_code=code, content=envelope.model_dump(mode="json"))
