"""
Per-user tracking preferences and global key/value settings.

``user_settings`` holds a user's active country, tracked competitors and
prioritized outlets. Writers update only the columns they own: discovery
writes ``prioritized_outlets`` and leaves country and competitors alone.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from jet_tracker.config.competitors import RELEVANCE_KEYWORDS
from jet_tracker.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS user_settings (
    id                   BIGSERIAL PRIMARY KEY,
    user_id              TEXT NOT NULL UNIQUE,
    active_country       TEXT NOT NULL DEFAULT 'PT',
    active_competitors   TEXT[] NOT NULL DEFAULT '{}',
    prioritized_outlets  JSONB NOT NULL DEFAULT '[]',
    updated_at           TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS settings (
    id          BIGSERIAL PRIMARY KEY,
    key         TEXT NOT NULL UNIQUE,
    value       JSONB NOT NULL,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

# Merge: a new row is seeded, an existing row only gets its outlets replaced
_MERGE_OUTLETS_SQL = """
INSERT INTO user_settings (user_id, active_country, active_competitors, prioritized_outlets)
VALUES ($1, $2, '{}', $3)
ON CONFLICT (user_id) DO UPDATE SET
    prioritized_outlets = EXCLUDED.prioritized_outlets,
    updated_at = NOW()
RETURNING user_id, active_country, active_competitors, prioritized_outlets, updated_at
"""

_UPSERT_TRACKING_SQL = """
INSERT INTO user_settings (user_id, active_country, active_competitors)
VALUES ($1, $2, $3)
ON CONFLICT (user_id) DO UPDATE SET
    active_country = EXCLUDED.active_country,
    active_competitors = EXCLUDED.active_competitors,
    updated_at = NOW()
RETURNING user_id, active_country, active_competitors, prioritized_outlets, updated_at
"""

KEYWORDS_KEY = "keywords"


@dataclass
class UserSettings:
    """A user's tracking preferences."""

    user_id: str
    active_country: str = "PT"
    active_competitors: list[str] = field(default_factory=list)
    prioritized_outlets: list[dict[str, Any]] = field(default_factory=list)
    updated_at: datetime | None = None


def _record_to_settings(record) -> UserSettings:
    return UserSettings(
        user_id=record["user_id"],
        active_country=record["active_country"],
        active_competitors=list(record["active_competitors"] or []),
        prioritized_outlets=list(record["prioritized_outlets"] or []),
        updated_at=record["updated_at"],
    )


class UserSettingsRepository:
    """Access to ``user_settings`` and the global ``settings`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create user_settings and settings (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Settings tables ensured")

    async def get(self, user_id: str) -> UserSettings | None:
        record = await self._db.fetchrow(
            "SELECT user_id, active_country, active_competitors, prioritized_outlets, "
            "updated_at FROM user_settings WHERE user_id = $1",
            user_id,
        )
        return _record_to_settings(record) if record else None

    async def merge_prioritized_outlets(
        self,
        user_id: str,
        outlets: list[dict[str, Any]],
        country: str,
    ) -> UserSettings:
        """
        Store discovered outlets without touching other preferences.

        ``country`` is only used when the user has no settings row yet.
        """
        record = await self._db.fetchrow(_MERGE_OUTLETS_SQL, user_id, country, outlets)
        return _record_to_settings(record)

    async def set_tracking(
        self, user_id: str, country: str, competitors: list[str]
    ) -> UserSettings:
        """Set active country and competitors, keeping prioritized outlets."""
        record = await self._db.fetchrow(_UPSERT_TRACKING_SQL, user_id, country, competitors)
        return _record_to_settings(record)

    async def get_keywords(self) -> list[str]:
        """Relevance keywords from ``settings``, or the built-in list."""
        value = await self._db.fetchval(
            "SELECT value FROM settings WHERE key = $1", KEYWORDS_KEY
        )
        if isinstance(value, list) and value:
            return [str(k) for k in value if str(k).strip()]
        return list(RELEVANCE_KEYWORDS)

    async def set_keywords(self, keywords: list[str]) -> None:
        await self._db.execute(
            "INSERT INTO settings (key, value) VALUES ($1, $2) "
            "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()",
            KEYWORDS_KEY,
            keywords,
        )
