"""
Pydantic request/response models for the trigger API.

Payloads use camelCase keys on the wire; snake_case names are accepted on
input as well.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from jet_tracker.baselines.schemas import Baseline
from jet_tracker.services.schemas import RunSummary, SourceResult
from jet_tracker.sources.schemas import OutletCandidate


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(CamelModel):
    """Error body returned for domain failures."""

    error: str = Field(..., description="Human-readable error message")


# ── Collection ──────────────────────────────────────────────────


class CollectRequest(CamelModel):
    """Request body for a collection run."""

    country: str = Field(default="PT", min_length=2, max_length=2, description="ISO country code")
    competitors: list[str] = Field(
        default_factory=lambda: ["F-35"],
        min_length=1,
        description="Fighter programs to tag",
    )
    start_date: date | None = Field(default=None, description="Window start (defaults to baseline)")
    end_date: date | None = Field(default=None, description="Window end (defaults to baseline)")
    include_social: bool = Field(default=False, description="Also collect social posts")

    @model_validator(mode="after")
    def check_window(self) -> "CollectRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class SourceResultItem(CamelModel):
    """Per-source outcome of a run."""

    source: str
    kind: str
    items_found: int
    items_stored: int
    duplicates: int
    out_of_window: int
    classification_failures: int
    rate_limited: int
    quota_exceeded: int
    success: bool
    error: str | None = None

    @classmethod
    def from_result(cls, result: SourceResult) -> "SourceResultItem":
        return cls(
            source=result.source,
            kind=result.kind,
            items_found=result.items_found,
            items_stored=result.items_stored,
            duplicates=result.duplicates,
            out_of_window=result.out_of_window,
            classification_failures=result.classification_failures,
            rate_limited=result.rate_limited,
            quota_exceeded=result.quota_exceeded,
            success=result.success,
            error=result.error,
        )


class CollectResponse(CamelModel):
    """Run summary of a collection."""

    success: bool = True
    run_id: str
    start_date: date | None = None
    end_date: date | None = None
    sources_processed: int
    articles_found: int
    articles_stored: int
    posts_found: int = 0
    posts_stored: int = 0
    classification_failures: int = 0
    rate_limited: int = 0
    quota_exceeded: int = 0
    results: list[SourceResultItem] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list, description="One '<source>: <error>' entry per failed source")

    @classmethod
    def from_summary(cls, summary: RunSummary) -> "CollectResponse":
        return cls(
            run_id=summary.run_id,
            start_date=summary.start_date,
            end_date=summary.end_date,
            sources_processed=summary.sources_processed,
            articles_found=summary.articles_found,
            articles_stored=summary.articles_stored,
            posts_found=summary.posts_found,
            posts_stored=summary.posts_stored,
            classification_failures=summary.classification_failures,
            rate_limited=summary.rate_limited,
            quota_exceeded=summary.quota_exceeded,
            results=[SourceResultItem.from_result(r) for r in summary.results],
            errors=[f"{r.source}: {r.error}" for r in summary.errors],
        )


class ScrapeResponse(CamelModel):
    success: bool = True
    total_items_scraped: int
    sources_processed: int
    results: list[SourceResultItem] = Field(default_factory=list)


class CollectSocialRequest(CamelModel):
    country: str = Field(default="PT", min_length=2, max_length=2)
    competitors: list[str] = Field(default_factory=lambda: ["F-35"], min_length=1)


class CollectSocialResponse(CamelModel):
    success: bool = True
    posts_found: int
    posts_stored: int
    results: list[SourceResultItem] = Field(default_factory=list)


class ProcessPendingRequest(CamelModel):
    limit: int = Field(default=10, ge=1, le=100)


class ProcessPendingResponse(CamelModel):
    success: bool = True
    processed_count: int
    total_items: int
    classification_failures: int = 0
    rate_limited: int = 0
    quota_exceeded: int = 0


class BackfillRequest(CamelModel):
    limit: int = Field(default=20, ge=1, le=200)


class BackfillResponse(CamelModel):
    success: bool = True
    articles_found: int
    translated: int


class CleanResponse(CamelModel):
    success: bool = True
    message: str
    items_deleted: int
    collection_result: CollectResponse


# ── Outlets ─────────────────────────────────────────────────────


class DiscoverOutletsRequest(CamelModel):
    country: str = Field(default="PT", min_length=2, max_length=2)
    country_name: str = Field(default="Portugal", min_length=1)
    register_sources: bool = Field(default=False, description="Also add outlets to the source registry")


class OutletItem(CamelModel):
    name: str
    domain: str
    type: str
    language: str
    credibility: int


class DiscoverOutletsResponse(CamelModel):
    success: bool = True
    count: int
    outlets: list[OutletItem]

    @classmethod
    def from_outlets(cls, outlets: list[OutletCandidate]) -> "DiscoverOutletsResponse":
        return cls(
            count=len(outlets),
            outlets=[
                OutletItem(
                    name=o.name,
                    domain=o.domain,
                    type=o.type,
                    language=o.language,
                    credibility=o.credibility,
                )
                for o in outlets
            ],
        )


# ── Baselines ───────────────────────────────────────────────────


class SetBaselineRequest(CamelModel):
    start_date: date
    tracking_country: str | None = Field(default=None, min_length=2, max_length=2)


class BaselineResponse(CamelModel):
    id: int | None
    start_date: date
    end_date: date
    status: str
    tracking_country: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_baseline(cls, baseline: Baseline) -> "BaselineResponse":
        return cls(
            id=baseline.id,
            start_date=baseline.start_date,
            end_date=baseline.end_date,
            status=baseline.status.value,
            tracking_country=baseline.tracking_country,
            created_by=baseline.created_by,
            created_at=baseline.created_at,
        )


# ── Health ──────────────────────────────────────────────────────


class ComponentHealth(CamelModel):
    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = None
    details: dict | None = None


class HealthResponse(CamelModel):
    status: str = Field(..., description="healthy, degraded or unhealthy")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    classifier_configured: bool
    social_search_configured: bool
    version: str
