"""Baseline (tracking window) model."""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum


class BaselineStatus(str, Enum):
    """Baselines move pending → completed and never back."""

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class Baseline:
    """A tracking window. The current one is the latest completed row."""

    start_date: date
    end_date: date
    status: BaselineStatus = BaselineStatus.PENDING
    tracking_country: str | None = None
    created_by: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    @property
    def window_start(self) -> datetime:
        """Inclusive UTC start of the window."""
        return datetime.combine(self.start_date, time.min, tzinfo=timezone.utc)

    @property
    def window_end(self) -> datetime:
        """Inclusive UTC end of the window (end of the last day)."""
        return datetime.combine(self.end_date, time.max, tzinfo=timezone.utc)
