"""FastAPI application entry point.

BookRats API - reading group check-ins, streaks and leaderboards.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from bookrats import __version__
from bookrats.api import auth, checkins, groups, invites, users
from bookrats.config import get_settings
from bookrats.logging_config import bind_context, clear_context, configure_logging, get_logger
from bookrats.middleware.prometheus import setup_prometheus
from bookrats.middleware.sentry import init_sentry
from bookrats.services.storage import PhotoStorage
from bookrats.utils.db import Database
from bookrats.utils.errors import BookRatsError, ErrorCode
from bookrats.utils.json_utils import ORJSONResponse

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)

sentry_enabled = init_sentry(
    dsn=settings.sentry_dsn,
    environment=settings.app_env,
    release=settings.app_version,
    traces_sample_rate=settings.sentry_traces_sample_rate
    if settings.app_env == "production"
    else 0.0,
)
if sentry_enabled:
    logger.info("Sentry error tracking initialized")
elif settings.app_env == "production":
    logger.warning("Sentry DSN not configured - error tracking disabled")

# API version prefix
API_V1_PREFIX = "/api/v1"


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting application...")

    db = Database.from_settings(settings)
    try:
        await db.ping()
        logger.info("Database connection established")
        if settings.db_create_all:
            await db.create_all()
            logger.info("Database tables created")
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        await db.dispose()
        raise

    _app.state.db = db
    _app.state.storage = PhotoStorage(settings)
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    await db.dispose()
    logger.info("Database connection closed")


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add X-Request-ID header to all requests and responses."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = datetime.now(timezone.utc)

        clear_context()
        bind_context(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration=round(duration, 3),
        )
        return response


# =============================================================================
# Error Handlers
# =============================================================================


def get_request_id(request: Request) -> str:
    """Get request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "traceId": trace_id,
    }


def status_for_code(code: str) -> int:
    """HTTP status for a service error code."""
    if "NOT_FOUND" in code:
        return status.HTTP_404_NOT_FOUND
    if "NOT_OWNER" in code:
        return status.HTTP_403_FORBIDDEN
    if "ALREADY" in code or "EXISTS" in code:
        return status.HTTP_409_CONFLICT
    if "UPLOAD_FAILED" in code:
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


async def service_error_handler(request: Request, exc: BookRatsError) -> ORJSONResponse:
    """Handle coded service errors."""
    trace_id = get_request_id(request)
    status_code = status_for_code(exc.code)

    logger.warning(
        "service_error",
        error_type=type(exc).__name__,
        code=exc.code,
        message=exc.message,
        trace_id=trace_id,
    )

    return ORJSONResponse(
        status_code=status_code,
        content=create_error_response(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id,
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    """Handle HTTP exceptions."""
    trace_id = get_request_id(request)

    # Check if detail is already formatted
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = {**exc.detail, "traceId": trace_id}
    else:
        content = create_error_response(
            code="HTTP_ERROR",
            message=str(exc.detail),
            trace_id=trace_id,
        )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Handle malformed request parameters."""
    trace_id = get_request_id(request)
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return ORJSONResponse(
        status_code=422,
        content=create_error_response(
            code=ErrorCode.VALIDATION_ERROR.value,
            message="Request validation failed",
            details={"errors": errors},
            trace_id=trace_id,
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handle unexpected exceptions."""
    trace_id = get_request_id(request)

    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        trace_id=trace_id,
        exc_info=True,
    )

    # Don't expose internal error details in production
    message = "Internal server error"
    if get_settings().app_debug:
        message = f"{type(exc).__name__}: {exc}"

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            code=ErrorCode.INTERNAL_ERROR.value,
            message=message,
            trace_id=trace_id,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to an application."""
    app.add_exception_handler(BookRatsError, service_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def register_routers(app: FastAPI) -> None:
    """Mount the versioned API routers."""
    app.include_router(auth.router, prefix=API_V1_PREFIX)
    app.include_router(users.router, prefix=API_V1_PREFIX)
    app.include_router(groups.router, prefix=API_V1_PREFIX)
    app.include_router(checkins.router, prefix=API_V1_PREFIX)
    app.include_router(invites.router, prefix=API_V1_PREFIX)


# =============================================================================
# Health Check
# =============================================================================


async def health_check(request: Request) -> ORJSONResponse:
    """Check application health status.

    Returns:
        Health status including database connectivity; 503 when degraded.
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "services": {"database": "unknown"},
    }

    try:
        await request.app.state.db.ping()
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        health_status["services"]["database"] = f"unhealthy: {e}"
        health_status["status"] = "degraded"
        logger.error("database_health_check_failed", error=str(e))
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=health_status,
        )

    return ORJSONResponse(content=health_status)


def register_health(app: FastAPI) -> None:
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["Health"],
        summary="Health check endpoint",
    )


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="BookRats API",
    version=__version__,
    description="Reading group check-ins, streaks and leaderboards",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

prometheus_instrumentator = setup_prometheus(app, app_version=settings.app_version)

app.add_middleware(RequestIDMiddleware)

cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

register_error_handlers(app)
register_health(app)
register_routers(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookrats.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        log_level=settings.log_level.lower(),
    )
