"""
School Registry Backend: Health Check Route
=============================================

What:  GET /health for container and load balancer probes.
How:   Runs SELECT 1 through the Database handle. The service is only
       healthy when the database answers; otherwise HTTP 503.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from school_registry import __version__
from school_registry.database import Database, get_database
from school_registry.schemas.school import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(database: Database = Depends(get_database)):
    db_status = "connected"
    overall = "healthy"

    try:
        await database.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

    if overall != "healthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
