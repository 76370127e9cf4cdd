"""
Sleeping Backend: Health Check Route
=====================================

What:  GET /health for container health checks and load balancer probes.
How:   Runs SELECT 1 through a regular request session and reports the
       configured media backend and open realtime connections.

Status levels:
    healthy:   database reachable (HTTP 200)
    unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping import __version__
from sleeping.config import settings
from sleeping.database import get_db_session
from sleeping.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", e)

    relay = getattr(request.app.state, "chat_relay", None)
    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        media_backend=settings.media_backend,
        realtime_connections=relay.registry.connection_count() if relay else 0,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
