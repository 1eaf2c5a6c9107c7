"""
Dependency injection for FastAPI endpoints.
"""

from typing import AsyncGenerator

import asyncpg
import structlog

from jet_tracker.auth.roles import AccessControl, RolesRepository
from jet_tracker.baselines.manager import BaselineManager
from jet_tracker.baselines.repository import BaselineRepository
from jet_tracker.services.collection_service import CollectionOrchestrator
from jet_tracker.services.factory import open_orchestrator
from jet_tracker.storage.database import Database, close_database
from jet_tracker.storage.database import get_database as _get_shared_database

logger = structlog.get_logger(__name__)


async def get_database() -> Database:
    """Process-wide database pool, connected on first use."""
    return await _get_shared_database()


async def get_optional_database() -> Database | None:
    """Database pool, or None when it cannot be reached (health checks)."""
    try:
        return await get_database()
    except (OSError, asyncpg.PostgresError) as e:
        logger.warning("Database unavailable", error=str(e))
        return None


async def get_orchestrator() -> AsyncGenerator[CollectionOrchestrator, None]:
    """
    Orchestrator scoped to one request.

    HTTP clients are opened per request and closed once the response is
    produced; the database pool is shared.
    """
    db = await get_database()
    async with open_orchestrator(db) as orchestrator:
        yield orchestrator


async def get_baseline_manager() -> BaselineManager:
    db = await get_database()
    return BaselineManager(BaselineRepository(db))


async def get_access_control() -> AccessControl:
    db = await get_database()
    return AccessControl(RolesRepository(db))


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    await close_database()
