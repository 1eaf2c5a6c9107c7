"""Database repository for the baselines table."""

import logging
from datetime import date

from jet_tracker.baselines.schemas import Baseline, BaselineStatus
from jet_tracker.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS baselines (
    id                BIGSERIAL PRIMARY KEY,
    start_date        DATE NOT NULL,
    end_date          DATE NOT NULL,
    status            TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'completed')),
    tracking_country  TEXT,
    created_by        TEXT,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CHECK (end_date >= start_date)
);

CREATE INDEX IF NOT EXISTS idx_baselines_completed
    ON baselines(created_at DESC) WHERE status = 'completed';
"""

_COLUMNS = "id, start_date, end_date, status, tracking_country, created_by, created_at"

_CURRENT_SQL = f"""
SELECT {_COLUMNS} FROM baselines
WHERE status = 'completed'
  AND ($1::text IS NULL OR tracking_country = $1 OR tracking_country IS NULL)
ORDER BY created_at DESC, id DESC
LIMIT 1
"""


def _record_to_baseline(record) -> Baseline:
    return Baseline(
        id=record["id"],
        start_date=record["start_date"],
        end_date=record["end_date"],
        status=BaselineStatus(record["status"]),
        tracking_country=record["tracking_country"],
        created_by=record["created_by"],
        created_at=record["created_at"],
    )


class BaselineRepository:
    """Insert-mostly access to baselines."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the baselines table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Baselines table ensured")

    async def insert_pending(
        self,
        start_date: date,
        end_date: date,
        tracking_country: str | None,
        created_by: str | None,
    ) -> Baseline:
        record = await self._db.fetchrow(
            f"INSERT INTO baselines (start_date, end_date, status, tracking_country, created_by) "
            f"VALUES ($1, $2, 'pending', $3, $4) RETURNING {_COLUMNS}",
            start_date,
            end_date,
            tracking_country,
            created_by,
        )
        return _record_to_baseline(record)

    async def mark_completed(self, baseline_id: int) -> Baseline:
        """Advance a pending baseline. Completed rows are left as they are."""
        record = await self._db.fetchrow(
            f"UPDATE baselines SET status = 'completed' "
            f"WHERE id = $1 AND status = 'pending' RETURNING {_COLUMNS}",
            baseline_id,
        )
        if record is None:
            raise LookupError(f"No pending baseline with id {baseline_id}")
        return _record_to_baseline(record)

    async def get_current(self, tracking_country: str | None = None) -> Baseline | None:
        """Most recently created completed baseline, or None."""
        record = await self._db.fetchrow(_CURRENT_SQL, tracking_country)
        return _record_to_baseline(record) if record else None
