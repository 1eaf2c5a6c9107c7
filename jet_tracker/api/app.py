"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jet_tracker.api.dependencies import cleanup_dependencies
from jet_tracker.api.middleware.timeout import TimeoutMiddleware
from jet_tracker.api.routes import baselines, collection, health, outlets
from jet_tracker.config.settings import get_settings
from jet_tracker.errors import (
    AuthorizationError,
    ConfigurationError,
    DiscoveryUnavailable,
    JetTrackerError,
    PreconditionError,
)
from jet_tracker.observability.logging import setup_logging

logger = structlog.get_logger(__name__)

# Domain error → HTTP status; checked in order, so subclasses go first
_ERROR_STATUS: tuple[tuple[type[JetTrackerError], int], ...] = (
    (PreconditionError, 400),
    (AuthorizationError, 403),
    (DiscoveryUnavailable, 502),
    (ConfigurationError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Jet tracker API starting up")

    settings = get_settings()
    if settings.tracing_enabled:
        from jet_tracker.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )

    yield

    logger.info("Jet tracker API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    setup_logging()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "collection", "description": "Collection and enrichment triggers"},
        {"name": "outlets", "description": "Outlet discovery"},
        {"name": "baselines", "description": "Tracking windows"},
    ]

    app = FastAPI(
        title="Jet Tracker API",
        description="""
Triggers for the fighter procurement media collection pipeline.

## Authentication

Requires `X-API-KEY` header for all requests except `/health` when API keys
are configured. Triggers also require `X-User-ID`; admin operations check
the caller's role.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # Add CORS middleware (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request timeout middleware (added before logging middleware so the
    # timeout wraps the entire request lifecycle)
    if settings.request_timeout_seconds > 0:
        app.add_middleware(
            TimeoutMiddleware,
            timeout_seconds=settings.request_timeout_seconds,
        )

    # Request logging, correlation ID, and tracing middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        from jet_tracker.observability.tracing import get_tracer, is_tracing_enabled

        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )

        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()

        try:
            if is_tracing_enabled():
                tracer = get_tracer("jet-tracker.api")
                with tracer.start_as_current_span(
                    f"{request.method} {request.url.path}",
                    attributes={
                        "http.method": request.method,
                        "http.url": str(request.url),
                        "http.route": request.url.path,
                        "http.request_id": request_id,
                    },
                ) as span:
                    response = await call_next(request)
                    duration = time.perf_counter() - start_time
                    span.set_attribute("http.status_code", response.status_code)
                    span.set_attribute("http.duration_ms", round(duration * 1000, 2))
            else:
                response = await call_next(request)
                duration = time.perf_counter() - start_time

            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()

    # Rate limiting (opt-in via RATE_LIMIT_ENABLED=true)
    if settings.rate_limit_enabled:
        from slowapi import _rate_limit_exceeded_handler
        from slowapi.errors import RateLimitExceeded

        from jet_tracker.api.rate_limit import limiter

        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(JetTrackerError)
    async def domain_exception_handler(request: Request, exc: JetTrackerError):
        for error_type, status_code in _ERROR_STATUS:
            if isinstance(exc, error_type):
                logger.warning(
                    "Request rejected",
                    path=request.url.path,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                return JSONResponse(status_code=status_code, content={"error": str(exc)})

        logger.error(f"Unhandled pipeline error: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(health.router, tags=["health"])
    app.include_router(collection.router, tags=["collection"])
    app.include_router(outlets.router, tags=["outlets"])
    app.include_router(baselines.router, tags=["baselines"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Jet Tracker API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app
