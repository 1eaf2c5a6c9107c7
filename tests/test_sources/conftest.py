"""Shared fixtures for sources tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest


@pytest.fixture
def mock_database() -> AsyncMock:
    """Mock Database instance matching the Database API."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="INSERT 0 1")
    return db


@pytest.fixture
def sample_db_row() -> dict:
    """A dict mimicking an asyncpg Record for a source."""
    return {
        "id": 3,
        "name": "Público",
        "url": "https://www.publico.pt",
        "type": "news",
        "country": "PT",
        "credibility_tier": 5,
        "enabled": True,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def settings_row() -> dict:
    """A dict mimicking an asyncpg Record for user_settings."""
    return {
        "user_id": "analyst-1",
        "active_country": "PT",
        "active_competitors": ["Gripen", "F-35"],
        "prioritized_outlets": [{"name": "Operacional", "domain": "operacional.pt"}],
        "updated_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    }
