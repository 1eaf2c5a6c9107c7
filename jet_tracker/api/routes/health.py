"""
Health check endpoint.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from jet_tracker.api.dependencies import get_optional_database
from jet_tracker.api.models import ComponentHealth, HealthResponse
from jet_tracker.config.settings import get_settings
from jet_tracker.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database | None) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    if db is None:
        return ComponentHealth(status="unhealthy", details={"error": "connection failed"})
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy" if healthy else "unhealthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning("Database health check failed", error=str(e))
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the database and report which collaborators are configured.",
)
async def health_check(db: Database | None = Depends(get_optional_database)) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: classifier credentials missing (runs would be rejected)
    - healthy: otherwise
    """
    settings = get_settings()
    db_health = await _check_database(db)

    if db_health.status == "unhealthy":
        status = "unhealthy"
    elif not settings.classifier_configured:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        components={"database": db_health},
        classifier_configured=settings.classifier_configured,
        social_search_configured=settings.social_search_configured,
        version="0.1.0",
    )
