"""Health check endpoints.

Provides liveness and readiness probes.  Readiness verifies that the
record store answers.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual dependency statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.  Does *not* check downstream dependencies.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ORJSONResponse:
    """Readiness probe.  Returns 503 while the record store is unreachable."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        reachable = False
    else:
        try:
            reachable = await store.ping()
        except Exception:
            logger.warning("health.store_ping_failed", exc_info=True)
            reachable = False

    body = ReadinessResponse(
        status="ready" if reachable else "not_ready",
        checks={"store": "ok" if reachable else "unavailable"},
    )
    return ORJSONResponse(content=body.model_dump(), status_code=200 if reachable else 503)
