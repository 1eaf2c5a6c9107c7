"""
Baseline manager: owns the tracking window.

A new tracking-date selection always creates a new row (pending, then
completed); rows are never moved backwards. The current baseline is a
query, not a stored pointer, so concurrent selections resolve to the last
one created.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone

from jet_tracker.baselines.repository import BaselineRepository
from jet_tracker.baselines.schemas import Baseline

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class BaselineManager:
    """
    Creates and resolves tracking windows.

    Args:
        repository: Baselines repository
        today: Clock used for the default end date (injectable for tests)
    """

    def __init__(
        self,
        repository: BaselineRepository,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self._repo = repository
        self._today = today

    async def set_baseline(
        self,
        start_date: date,
        tracking_country: str | None = None,
        created_by: str | None = None,
    ) -> Baseline:
        """
        Create a new completed baseline from ``start_date`` to today.

        Raises:
            ValueError: If ``start_date`` is in the future.
        """
        today = self._today()
        if start_date > today:
            raise ValueError(f"start_date {start_date} is in the future")

        pending = await self._repo.insert_pending(start_date, today, tracking_country, created_by)
        baseline = await self._repo.mark_completed(pending.id)
        logger.info(
            "Baseline %s set: %s..%s (%s)",
            baseline.id, baseline.start_date, baseline.end_date, tracking_country or "all",
        )
        return baseline

    async def get_current_baseline(self, tracking_country: str | None = None) -> Baseline | None:
        """The most recently created completed baseline, or None."""
        return await self._repo.get_current(tracking_country)
