"""Run summaries returned by the collection orchestrator."""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from jet_tracker.classification.schemas import ClassificationOutcome


class SourceResult(BaseModel):
    """
    What one unit of work (a feed source or a competitor's social search)
    contributed to a run.

    Degraded classifications are counted among ``items_stored``; only a
    failure of the unit itself sets ``success=False``.
    """

    source: str
    source_id: int | None = None
    kind: Literal["feed", "social"] = "feed"
    items_found: int = 0
    items_stored: int = 0
    duplicates: int = 0
    out_of_window: int = 0
    classification_failures: int = 0
    rate_limited: int = 0
    quota_exceeded: int = 0
    success: bool = True
    error: str | None = None

    def record_outcome(self, outcome: ClassificationOutcome) -> None:
        if outcome == ClassificationOutcome.FAILED:
            self.classification_failures += 1
        elif outcome == ClassificationOutcome.RATE_LIMITED:
            self.rate_limited += 1
        elif outcome == ClassificationOutcome.QUOTA_EXCEEDED:
            self.quota_exceeded += 1


class RunSummary(BaseModel):
    """Aggregate of one collection invocation."""

    run_id: str
    country: str | None = None
    competitors: list[str] = Field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    results: list[SourceResult] = Field(default_factory=list)

    def _sum(self, kind: str, attr: str) -> int:
        return sum(getattr(r, attr) for r in self.results if r.kind == kind)

    @property
    def sources_processed(self) -> int:
        return sum(1 for r in self.results if r.kind == "feed")

    @property
    def articles_found(self) -> int:
        return self._sum("feed", "items_found")

    @property
    def articles_stored(self) -> int:
        return self._sum("feed", "items_stored")

    @property
    def posts_found(self) -> int:
        return self._sum("social", "items_found")

    @property
    def posts_stored(self) -> int:
        return self._sum("social", "items_stored")

    @property
    def classification_failures(self) -> int:
        return sum(r.classification_failures for r in self.results)

    @property
    def rate_limited(self) -> int:
        return sum(r.rate_limited for r in self.results)

    @property
    def quota_exceeded(self) -> int:
        return sum(r.quota_exceeded for r in self.results)

    @property
    def errors(self) -> list[SourceResult]:
        return [r for r in self.results if not r.success]


class ProcessSummary(BaseModel):
    """Result of classifying pending items."""

    processed_count: int = 0
    total_items: int = 0
    classification_failures: int = 0
    rate_limited: int = 0
    quota_exceeded: int = 0

    def record_outcome(self, outcome: ClassificationOutcome) -> None:
        if outcome == ClassificationOutcome.FAILED:
            self.classification_failures += 1
        elif outcome == ClassificationOutcome.RATE_LIMITED:
            self.rate_limited += 1
        elif outcome == ClassificationOutcome.QUOTA_EXCEEDED:
            self.quota_exceeded += 1


class BackfillSummary(BaseModel):
    """Result of the English-title backfill pass."""

    articles_found: int = 0
    translated: int = 0


class CleanSummary(BaseModel):
    """Result of a destructive clean-and-recollect."""

    message: str
    items_deleted: int
    collection: RunSummary
