"""Database repository for the sources table."""

import logging

from jet_tracker.sources.schemas import Source
from jet_tracker.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id                BIGSERIAL PRIMARY KEY,
    name              TEXT NOT NULL,
    url               TEXT NOT NULL UNIQUE,
    type              TEXT NOT NULL DEFAULT 'news'
        CHECK (type IN ('news', 'government', 'defense', 'social', 'comment')),
    country           TEXT NOT NULL,
    credibility_tier  SMALLINT NOT NULL DEFAULT 3
        CHECK (credibility_tier BETWEEN 1 AND 5),
    enabled           BOOLEAN NOT NULL DEFAULT TRUE,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_sources_enabled_rank
    ON sources(credibility_tier DESC, id ASC) WHERE enabled = TRUE;
CREATE INDEX IF NOT EXISTS idx_sources_country ON sources(country);
"""

_COLUMNS = "id, name, url, type, country, credibility_tier, enabled, created_at, updated_at"

# Known URLs are left untouched; operators own enabled, tier and country
_REGISTER_SQL = """
INSERT INTO sources (name, url, type, country, credibility_tier, enabled)
SELECT * FROM unnest($1::text[], $2::text[], $3::text[], $4::text[], $5::smallint[], $6::boolean[])
ON CONFLICT (url) DO NOTHING
"""

_ENABLED_SQL = f"""
SELECT {_COLUMNS} FROM sources
WHERE enabled = TRUE AND ($1::text IS NULL OR country = $1)
ORDER BY credibility_tier DESC, id ASC
"""


def _inserted_count(status: str) -> int:
    """Row count from an ``INSERT 0 n`` status string."""
    try:
        return int(status.split()[-1])
    except (IndexError, ValueError):
        return 0


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        id=record["id"],
        name=record["name"],
        url=record["url"],
        type=record["type"],
        country=record["country"],
        credibility_tier=record["credibility_tier"],
        enabled=record["enabled"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SourcesRepository:
    """CRUD operations for the sources table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def register_new(self, sources: list[Source]) -> int:
        """Insert sources whose URL is not registered yet, in one statement.

        Existing rows are not modified. Returns the number of rows inserted.
        """
        if not sources:
            return 0

        status = await self._db.execute(
            _REGISTER_SQL,
            [s.name for s in sources],
            [s.url for s in sources],
            [s.type for s in sources],
            [s.country for s in sources],
            [s.credibility_tier for s in sources],
            [s.enabled for s in sources],
        )
        inserted = _inserted_count(status)
        logger.info("Registered %d of %d sources", inserted, len(sources))
        return inserted

    async def get_enabled(self, country: str | None = None) -> list[Source]:
        """Enabled sources, highest credibility first, ties broken by id."""
        rows = await self._db.fetch(_ENABLED_SQL, country)
        return [_record_to_source(r) for r in rows]

    async def list_sources(self, country: str | None = None) -> list[Source]:
        """All sources, enabled or not, ordered by id."""
        rows = await self._db.fetch(
            f"SELECT {_COLUMNS} FROM sources "
            "WHERE ($1::text IS NULL OR country = $1) ORDER BY id",
            country,
        )
        return [_record_to_source(r) for r in rows]

    async def set_enabled(self, source_id: int, enabled: bool) -> bool:
        """Enable or disable a source. Returns True if a row was updated."""
        result = await self._db.execute(
            "UPDATE sources SET enabled = $2, updated_at = NOW() WHERE id = $1",
            source_id,
            enabled,
        )
        return result.endswith("1")

    async def set_credibility(self, source_id: int, tier: int) -> bool:
        """Change a source's credibility tier (1-5). Returns True if updated."""
        if not 1 <= tier <= 5:
            raise ValueError(f"credibility tier must be 1-5, got {tier}")
        result = await self._db.execute(
            "UPDATE sources SET credibility_tier = $2, updated_at = NOW() WHERE id = $1",
            source_id,
            tier,
        )
        return result.endswith("1")

    async def count(self) -> int:
        return await self._db.fetchval("SELECT COUNT(*) FROM sources")
