"""Shared fixtures for API tests."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from jet_tracker.api.app import create_app
from jet_tracker.api.auth import verify_api_key
from jet_tracker.api.dependencies import (
    get_access_control,
    get_baseline_manager,
    get_optional_database,
    get_orchestrator,
)
from jet_tracker.baselines.schemas import Baseline, BaselineStatus
from jet_tracker.services.schemas import RunSummary, SourceResult


@pytest.fixture
def run_summary() -> RunSummary:
    """A finished run: one healthy source, one failed source."""
    return RunSummary(
        run_id="abc123def456",
        country="PT",
        competitors=["Gripen"],
        start_date=date(2026, 3, 1),
        end_date=date(2026, 3, 15),
        results=[
            SourceResult(
                source="Público",
                source_id=3,
                items_found=6,
                items_stored=4,
                duplicates=2,
                rate_limited=1,
            ),
            SourceResult(source="RTP", source_id=1, success=False, error="HTTP 503"),
        ],
    )


@pytest.fixture
def baseline() -> Baseline:
    return Baseline(
        id=2,
        start_date=date(2026, 3, 1),
        end_date=date(2026, 3, 15),
        status=BaselineStatus.COMPLETED,
        tracking_country="PT",
        created_by="ops-1",
        created_at=datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_orchestrator(run_summary) -> AsyncMock:
    orchestrator = AsyncMock()
    orchestrator.run_collection = AsyncMock(return_value=run_summary)
    orchestrator.scrape_feeds = AsyncMock(return_value=run_summary)
    return orchestrator


@pytest.fixture
def mock_baseline_manager(baseline) -> AsyncMock:
    manager = AsyncMock()
    manager.set_baseline = AsyncMock(return_value=baseline)
    manager.get_current_baseline = AsyncMock(return_value=baseline)
    return manager


@pytest.fixture
def mock_access() -> AsyncMock:
    access = AsyncMock()
    access.require_role = AsyncMock(return_value=None)
    return access


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def app(mock_orchestrator, mock_baseline_manager, mock_access, mock_db):
    """Application with every external collaborator replaced."""
    app = create_app()
    app.dependency_overrides[verify_api_key] = lambda: "test-key"
    app.dependency_overrides[get_orchestrator] = lambda: mock_orchestrator
    app.dependency_overrides[get_baseline_manager] = lambda: mock_baseline_manager
    app.dependency_overrides[get_access_control] = lambda: mock_access
    app.dependency_overrides[get_optional_database] = lambda: mock_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
