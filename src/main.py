"""Complaint intake FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, maps
classified intake errors to HTTP responses, and manages the lifecycle of
the record store and the intake services built on it.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router
from src.services.errors import ErrorKind, IntakeError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the intake services.

    On startup:
      1. Build the record store selected by ``store_backend``
      2. Build the identity resolver and audit trail recorder
      3. Build the complaint writer, reader and remover
      4. Build the SMS gateway adapter
      5. Store everything on ``app.state``

    On shutdown:
      - Close the record store.
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env, store_backend=settings.store_backend)

    app.state.start_time = time.time()

    # -- 1. Record store ----------------------------------------------------
    from src.services.store import create_store

    store = create_store(settings)
    app.state.store = store
    logger.info("app.store_initialised", backend=settings.store_backend)

    # -- 2. Identity and audit ----------------------------------------------
    from src.services.audit import AuditTrailRecorder
    from src.services.identity import IdentityResolver

    identity = IdentityResolver(store)
    audit = AuditTrailRecorder(store)

    # -- 3. Complaint engine --------------------------------------------------
    from src.services.complaints import ComplaintReader, ComplaintRemover, ComplaintWriter

    writer = ComplaintWriter(store, identity, audit, media_bucket=settings.default_media_bucket)
    app.state.complaint_writer = writer
    app.state.complaint_reader = ComplaintReader(store, audit)
    app.state.complaint_remover = ComplaintRemover(store)
    logger.info("app.complaint_services_initialised")

    # -- 4. SMS gateway -------------------------------------------------------
    from src.services.sms_gateway import SmsIntakeAdapter

    app.state.sms_intake = SmsIntakeAdapter(writer, ack_template=settings.sms_ack_template)
    logger.info("app.sms_intake_initialised")

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    await store.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Civic Intake API",
    description=(
        "Citizen complaint intake over a structured API and an SMS gateway "
        "webhook, with citizen identity resolution, an append-only audit "
        "trail and media evidence."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:8000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

# -- Prometheus metrics -----------------------------------------------------
try:
    from prometheus_fastapi_instrumentator import Instrumentator

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/api/v1/health"],
    ).instrument(app).expose(
        app,
        endpoint="/metrics",
        include_in_schema=not settings.is_production,
    )
    logger.info("app.prometheus_metrics_enabled")
except ImportError:
    logger.warning("app.prometheus_not_available")


# -- Error mapping ----------------------------------------------------------

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.CLIENT_ERROR: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DEPENDENCY_ERROR: 500,
}


@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError) -> ORJSONResponse:
    """Translate a classified intake error into a JSON error response."""
    status_code = _STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(
            "api.request_failed",
            path=request.url.path,
            kind=exc.kind,
            reason=exc.message,
            exc_info=exc,
        )
        message = "Internal server error"
    else:
        message = exc.message
    return ORJSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    """Report undecodable request bodies in the same envelope as intake errors."""
    errors = exc.errors()
    logger.info("api.request_invalid", path=request.url.path, error_count=len(errors))
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return ORJSONResponse(status_code=400, content={"success": False, "error": message})


# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "Civic Intake API",
        "description": "Citizen complaint intake and lifecycle recording",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "create_complaint": "POST /api/v1/complaints",
            "read_complaint": "GET /api/v1/complaints/{complaint_no}",
            "delete_complaint": "DELETE /api/v1/complaints/{complaint_id}",
            "sms_webhook": "POST /api/v1/twilio/sms",
            "readiness": "/api/v1/health/ready",
        },
        "channels": ["sms", "whatsapp", "voice"],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.main:app", host=settings.api_host, port=settings.api_port)
