"""
Item and social post repositories.

Natural keys are enforced by the schema, not by callers: ``items.url`` is
unique and ``social_media_posts`` is unique on ``(platform, post_id)``.
Inserts use ``ON CONFLICT DO NOTHING RETURNING id`` so a concurrent run that
wins the race turns the loser's insert into ``None`` instead of an error.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from jet_tracker.ingestion.schemas import RawCandidate
from jet_tracker.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_ITEMS_SQL = """
CREATE TABLE IF NOT EXISTS items (
    id                      BIGSERIAL PRIMARY KEY,
    source_id               BIGINT REFERENCES sources(id) ON DELETE RESTRICT,
    url                     TEXT NOT NULL UNIQUE,
    title_original          TEXT NOT NULL,
    body_original           TEXT NOT NULL DEFAULT '',
    title_en                TEXT,
    published_at            TIMESTAMPTZ NOT NULL,
    published_at_estimated  BOOLEAN NOT NULL DEFAULT FALSE,
    fetched_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    fighter_tags            TEXT[] NOT NULL DEFAULT '{}',
    sentiment               DOUBLE PRECISION CHECK (sentiment BETWEEN -1 AND 1),
    classification_status   TEXT NOT NULL DEFAULT 'pending',
    classified_at           TIMESTAMPTZ,
    tracking_country        TEXT,
    source_country          TEXT
);

CREATE INDEX IF NOT EXISTS idx_items_published_at ON items(published_at DESC);
CREATE INDEX IF NOT EXISTS idx_items_unclassified
    ON items(published_at DESC) WHERE classified_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_items_tracking_country ON items(tracking_country);
"""

_CREATE_SOCIAL_SQL = """
CREATE TABLE IF NOT EXISTS social_media_posts (
    id                      BIGSERIAL PRIMARY KEY,
    user_id                 TEXT,
    tracking_country        TEXT NOT NULL,
    platform                TEXT NOT NULL,
    post_id                 TEXT NOT NULL,
    post_url                TEXT NOT NULL,
    author_name             TEXT,
    author_username         TEXT,
    content                 TEXT NOT NULL,
    published_at            TIMESTAMPTZ NOT NULL,
    published_at_estimated  BOOLEAN NOT NULL DEFAULT FALSE,
    fetched_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    fighter_tags            TEXT[] NOT NULL DEFAULT '{}',
    sentiment               DOUBLE PRECISION CHECK (sentiment BETWEEN -1 AND 1),
    classification_status   TEXT NOT NULL DEFAULT 'pending',
    UNIQUE (platform, post_id)
);

CREATE INDEX IF NOT EXISTS idx_social_country_fetched
    ON social_media_posts(tracking_country, fetched_at DESC);
"""

_INSERT_ITEM_SQL = """
INSERT INTO items (
    source_id, url, title_original, body_original,
    published_at, published_at_estimated, tracking_country, source_country
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
ON CONFLICT (url) DO NOTHING
RETURNING id
"""

# Throttled outcomes leave classified_at NULL so the item stays pending
_UPDATE_ITEM_CLASSIFICATION_SQL = """
UPDATE items SET
    sentiment = $2,
    fighter_tags = $3,
    title_en = COALESCE($4, title_en),
    classification_status = $5,
    classified_at = CASE
        WHEN $5::text IN ('rate_limited', 'quota_exceeded') THEN NULL
        ELSE NOW()
    END
WHERE id = $1
"""

_LIST_PENDING_SQL = """
SELECT i.id, i.url, i.title_original, i.body_original, i.title_en, i.tracking_country
FROM items i
LEFT JOIN sources s ON s.id = i.source_id
WHERE i.classified_at IS NULL
  AND (
      s.type = 'defense'
      OR i.title_original ILIKE ANY($1::text[])
      OR i.body_original ILIKE ANY($1::text[])
  )
ORDER BY i.published_at DESC, i.id DESC
LIMIT $2
"""

_LIST_UNTRANSLATED_SQL = """
SELECT id, url, title_original, body_original, title_en, tracking_country
FROM items
WHERE title_en IS NULL
ORDER BY published_at DESC, id DESC
LIMIT $1
"""

_INSERT_POST_SQL = """
INSERT INTO social_media_posts (
    user_id, tracking_country, platform, post_id, post_url,
    author_name, author_username, content, published_at, published_at_estimated
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
ON CONFLICT (platform, post_id) DO NOTHING
RETURNING id
"""


def _deleted_count(status: str) -> int:
    """Row count from a ``DELETE n`` status string."""
    try:
        return int(status.split()[-1])
    except (IndexError, ValueError):
        return 0


@dataclass
class StoredItem:
    """The subset of an item row the enrichment passes need."""

    id: int
    url: str
    title_original: str
    body_original: str = ""
    title_en: str | None = None
    tracking_country: str | None = None
    fighter_tags: list[str] = field(default_factory=list)


def _record_to_item(record) -> StoredItem:
    return StoredItem(
        id=record["id"],
        url=record["url"],
        title_original=record["title_original"],
        body_original=record["body_original"] or "",
        title_en=record["title_en"],
        tracking_country=record["tracking_country"],
    )


class ItemRepository:
    """Storage for feed-derived items, keyed by canonical URL."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the items table and indexes (idempotent)."""
        await self._db.execute(_CREATE_ITEMS_SQL)
        logger.info("Items table ensured")

    async def exists_by_url(self, url: str) -> bool:
        """Point lookup on the unique URL index."""
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS(SELECT 1 FROM items WHERE url = $1)", url
            )
        )

    async def insert(
        self,
        candidate: RawCandidate,
        url: str,
        tracking_country: str | None,
        source_country: str | None = None,
    ) -> int | None:
        """
        Insert a new item.

        Args:
            candidate: Parsed feed entry
            url: Canonical URL (the natural key)
            tracking_country: Country whose campaign collected the item
            source_country: Country of the outlet, if known

        Returns:
            New item id, or None if the URL already exists
        """
        return await self._db.fetchval(
            _INSERT_ITEM_SQL,
            candidate.source_id,
            url,
            candidate.title,
            candidate.body,
            candidate.published_at,
            candidate.published_at_estimated,
            tracking_country,
            source_country,
        )

    async def update_classification(
        self,
        item_id: int,
        sentiment: float,
        tags: list[str],
        title_en: str | None,
        status: str,
    ) -> None:
        """Record the classifier outcome on an item."""
        await self._db.execute(
            _UPDATE_ITEM_CLASSIFICATION_SQL, item_id, sentiment, tags, title_en, status
        )

    async def list_pending(self, keywords: list[str], limit: int) -> list[StoredItem]:
        """
        Unclassified items that look relevant, newest first.

        An item qualifies when its source is a defense outlet or its title
        or body mentions one of ``keywords`` (case-insensitive).
        """
        patterns = [f"%{k}%" for k in keywords]
        rows = await self._db.fetch(_LIST_PENDING_SQL, patterns, limit)
        return [_record_to_item(r) for r in rows]

    async def list_untranslated(self, limit: int) -> list[StoredItem]:
        """Items without an English title, newest first."""
        rows = await self._db.fetch(_LIST_UNTRANSLATED_SQL, limit)
        return [_record_to_item(r) for r in rows]

    async def set_title_en(self, item_id: int, title_en: str) -> None:
        await self._db.execute(
            "UPDATE items SET title_en = $2 WHERE id = $1", item_id, title_en
        )

    async def delete_all(self) -> int:
        """Delete every item. Returns the number of rows removed."""
        status = await self._db.execute("DELETE FROM items")
        deleted = _deleted_count(status)
        logger.warning("Deleted %d items", deleted)
        return deleted


class SocialPostRepository:
    """Storage for social posts, keyed by (platform, post_id)."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the social_media_posts table (idempotent)."""
        await self._db.execute(_CREATE_SOCIAL_SQL)
        logger.info("Social posts table ensured")

    async def exists(self, platform: str, post_id: str) -> bool:
        """Point lookup on the unique (platform, post_id) index."""
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS(SELECT 1 FROM social_media_posts "
                "WHERE platform = $1 AND post_id = $2)",
                platform,
                post_id,
            )
        )

    async def insert(
        self,
        candidate: RawCandidate,
        tracking_country: str,
        user_id: str | None = None,
    ) -> int | None:
        """Insert a post. Returns the new id, or None if it already exists."""
        return await self._db.fetchval(
            _INSERT_POST_SQL,
            user_id,
            tracking_country,
            candidate.platform.value if candidate.platform else "other",
            candidate.post_id,
            candidate.url,
            candidate.author_name,
            candidate.author_username,
            candidate.body or candidate.title,
            candidate.published_at,
            candidate.published_at_estimated,
        )

    async def update_classification(
        self, post_id: int, sentiment: float, tags: list[str], status: str
    ) -> None:
        await self._db.execute(
            "UPDATE social_media_posts SET sentiment = $2, fighter_tags = $3, "
            "classification_status = $4 WHERE id = $1",
            post_id,
            sentiment,
            tags,
            status,
        )

    async def last_fetched_at(self, tracking_country: str) -> datetime | None:
        """Most recent fetch time for a country, used for incremental windows."""
        return await self._db.fetchval(
            "SELECT MAX(fetched_at) FROM social_media_posts WHERE tracking_country = $1",
            tracking_country,
        )
