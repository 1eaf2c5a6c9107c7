"""
Collection orchestrator - drives fetch → dedup → store → classify runs.

Sources are independent units of work processed concurrently behind a
semaphore; candidates within a source are handled sequentially in feed
order. A failing source is recorded in the run summary and never aborts the
run. Configuration, precondition and authorization failures are raised
before anything is written.

Features:
- Bounded source concurrency and a per-source timeout
- Two-phase dedup (point lookup, then constraint-enforced insert)
- Neutral fallback classification that never blocks storage
- One store-change notification per source that wrote rows
- Per-run structlog context, Prometheus metrics and OTel spans
"""

import asyncio
import math
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import structlog

from jet_tracker.auth.roles import ADMIN, AccessControl
from jet_tracker.baselines.manager import BaselineManager
from jet_tracker.classification.client import ClassifierClient
from jet_tracker.config.competitors import FIGHTER_ALIASES, country_name_for
from jet_tracker.errors import ConfigurationError, PreconditionError, SourceFetchError
from jet_tracker.ingestion.deduplication import Deduplicator, canonical_url
from jet_tracker.ingestion.feed_fetcher import FeedFetcher
from jet_tracker.ingestion.schemas import RawCandidate
from jet_tracker.ingestion.social_fetcher import SocialSearchFetcher
from jet_tracker.observability.metrics import get_metrics
from jet_tracker.observability.tracing import get_tracer, traced
from jet_tracker.sources.preferences import UserSettingsRepository
from jet_tracker.sources.registry import OutletRegistry
from jet_tracker.sources.schemas import OutletCandidate, Source
from jet_tracker.storage.notifications import StoreChangeNotifier
from jet_tracker.storage.repository import ItemRepository, SocialPostRepository
from jet_tracker.services.schemas import (
    BackfillSummary,
    CleanSummary,
    ProcessSummary,
    RunSummary,
    SourceResult,
)

logger = structlog.get_logger(__name__)

NO_BASELINE_MESSAGE = "No baseline found. Please set a tracking period first."
MAX_SOCIAL_WINDOW_DAYS = 30


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _RunContext:
    """Per-run parameters shared by every source task."""

    country: str | None
    competitors: list[str]
    window_start: datetime | None = None
    window_end: datetime | None = None
    classify: bool = True
    user_id: str | None = None

    def in_window(self, candidate: RawCandidate) -> bool:
        """Estimated dates are always kept; parsed dates must fall in the window."""
        if candidate.published_at_estimated or self.window_start is None:
            return True
        return self.window_start <= candidate.published_at <= self.window_end


class CollectionOrchestrator:
    """
    Runs collection and enrichment passes.

    Usage:
        async with open_orchestrator(db) as orchestrator:
            summary = await orchestrator.run_collection("PT", ["Gripen", "F-35"])
    """

    def __init__(
        self,
        *,
        registry: OutletRegistry,
        baselines: BaselineManager,
        items: ItemRepository,
        social_posts: SocialPostRepository,
        preferences: UserSettingsRepository,
        access: AccessControl,
        feed_fetcher: FeedFetcher,
        classifier: ClassifierClient | None = None,
        social_fetcher: SocialSearchFetcher | None = None,
        notifier: StoreChangeNotifier | None = None,
        source_concurrency: int = 4,
        source_timeout: float = 300.0,
        incremental_window_hours: int = 72,
        default_country: str = "PT",
        default_competitors: list[str] | None = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._registry = registry
        self._baselines = baselines
        self._items = items
        self._social = social_posts
        self._preferences = preferences
        self._access = access
        self._feed_fetcher = feed_fetcher
        self._classifier = classifier
        self._social_fetcher = social_fetcher
        self._notifier = notifier or StoreChangeNotifier(None)
        self._dedup = Deduplicator(items, social_posts)
        self._concurrency = source_concurrency
        self._source_timeout = source_timeout
        self._incremental_hours = incremental_window_hours
        self._default_country = default_country
        self._default_competitors = default_competitors or ["F-35"]
        self._now = now
        self._metrics = get_metrics()
        self._tracer = get_tracer("jet-tracker.collection")

    # ── Preconditions ───────────────────────────────────────────

    def _require_classifier(self) -> ClassifierClient:
        if self._classifier is None:
            raise ConfigurationError("CLASSIFIER_API_KEY is not configured")
        return self._classifier

    def _require_social_fetcher(self) -> SocialSearchFetcher:
        if self._social_fetcher is None:
            raise ConfigurationError(
                "GOOGLE_SEARCH_API_KEY and GOOGLE_SEARCH_ENGINE_ID are not configured"
            )
        return self._social_fetcher

    # ── Collection ──────────────────────────────────────────────

    async def run_collection(
        self,
        country: str,
        competitors: list[str],
        start_date: date | None = None,
        end_date: date | None = None,
        include_social: bool = False,
        user_id: str | None = None,
    ) -> RunSummary:
        """
        Collect and classify content for one country and competitor set.

        The window defaults to the current baseline's dates; explicit dates
        narrow it and are clamped to the baseline. Re-running with the same inputs stores nothing new unless
        upstream content changed.

        Raises:
            ConfigurationError: Classifier (or, with include_social, search)
                credentials missing.
            PreconditionError: No completed baseline exists, or the
                requested window is inverted or outside the baseline.
        """
        self._require_classifier()
        if include_social:
            self._require_social_fetcher()

        baseline = await self._baselines.get_current_baseline(country)
        if baseline is None:
            raise PreconditionError(NO_BASELINE_MESSAGE)

        if start_date and end_date and end_date < start_date:
            raise PreconditionError(f"end_date {end_date} is before start_date {start_date}")

        # Explicit dates can only narrow the baseline window
        start = max(start_date, baseline.start_date) if start_date else baseline.start_date
        end = min(end_date, baseline.end_date) if end_date else baseline.end_date
        if end < start:
            raise PreconditionError(
                f"Requested window does not overlap the baseline "
                f"{baseline.start_date}..{baseline.end_date}"
            )

        ctx = _RunContext(
            country=country,
            competitors=list(competitors),
            window_start=datetime.combine(start, datetime.min.time(), tzinfo=timezone.utc),
            window_end=datetime.combine(end, datetime.max.time(), tzinfo=timezone.utc),
            user_id=user_id,
        )
        summary = RunSummary(
            run_id=uuid.uuid4().hex[:12],
            country=country,
            competitors=ctx.competitors,
            start_date=start,
            end_date=end,
        )

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(run_id=summary.run_id):
            with traced(self._tracer, "collection.run", {"country": country}):
                sources = await self._registry.resolve_enabled_sources(country)
                logger.info(
                    "Collection run started",
                    sources=len(sources),
                    competitors=ctx.competitors,
                    window=f"{start}..{end}",
                )
                summary.results.extend(await self._run_feed_sources(sources, ctx))

                if include_social:
                    summary.results.extend(await self._run_social(ctx, since=start))

        self._metrics.record_run("collect", time.perf_counter() - started)
        self._log_summary("Collection run finished", summary)
        return summary

    async def scrape_feeds(self) -> RunSummary:
        """
        Fetch every enabled source and store new items unclassified.

        No window and no classification; ``process_pending`` enriches later.
        """
        ctx = _RunContext(country=None, competitors=[], classify=False)
        summary = RunSummary(run_id=uuid.uuid4().hex[:12])

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(run_id=summary.run_id):
            with traced(self._tracer, "collection.scrape"):
                sources = await self._registry.resolve_enabled_sources()
                summary.results.extend(await self._run_feed_sources(sources, ctx))

        self._metrics.record_run("scrape", time.perf_counter() - started)
        self._log_summary("Feed scrape finished", summary)
        return summary

    async def collect_social(
        self,
        country: str,
        competitors: list[str],
        user_id: str | None = None,
    ) -> RunSummary:
        """
        Collect social posts for each competitor.

        Uses an incremental search window when the country was collected
        recently, otherwise the widest supported window.

        Raises:
            ConfigurationError: Classifier or search credentials missing.
        """
        self._require_classifier()
        self._require_social_fetcher()

        ctx = _RunContext(country=country, competitors=list(competitors), user_id=user_id)
        summary = RunSummary(run_id=uuid.uuid4().hex[:12], country=country, competitors=ctx.competitors)

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(run_id=summary.run_id):
            with traced(self._tracer, "collection.social", {"country": country}):
                summary.results.extend(await self._run_social(ctx, since=None))

        self._metrics.record_run("social", time.perf_counter() - started)
        self._log_summary("Social collection finished", summary)
        return summary

    async def _run_feed_sources(self, sources: list[Source], ctx: _RunContext) -> list[SourceResult]:
        semaphore = asyncio.Semaphore(self._concurrency)

        async def guarded(source: Source) -> SourceResult:
            async with semaphore:
                return await self._collect_feed_source(source, ctx)

        return list(await asyncio.gather(*(guarded(s) for s in sources)))

    async def _collect_feed_source(self, source: Source, ctx: _RunContext) -> SourceResult:
        result = SourceResult(source=source.name, source_id=source.id, kind="feed")

        with traced(
            self._tracer,
            "collection.source",
            {"source.name": source.name, "source.type": source.type},
        ) as span:
            started = time.perf_counter()
            try:
                async with asyncio.timeout(self._source_timeout):
                    candidates = await self._feed_fetcher.fetch_feed(source)
                    in_window = [c for c in candidates if ctx.in_window(c)]
                    result.out_of_window = len(candidates) - len(in_window)
                    result.items_found = len(in_window)
                    self._metrics.record_source_fetched(
                        source.type, len(in_window), time.perf_counter() - started
                    )

                    for candidate in in_window:
                        await self._store_feed_candidate(candidate, source, ctx, result)
            except SourceFetchError as e:
                self._fail(result, source.type, "fetch", e.reason)
            except TimeoutError:
                self._fail(result, source.type, "timeout", f"timed out after {self._source_timeout:.0f}s")
            except Exception as e:
                logger.error("Source processing failed", source=source.name, error=str(e), exc_info=True)
                self._fail(result, source.type, type(e).__name__, f"internal error: {type(e).__name__}")

            span.set_attribute("items.found", result.items_found)
            span.set_attribute("items.stored", result.items_stored)

        await self._notifier.notify("items", result.items_stored, source.name)
        return result

    async def _store_feed_candidate(
        self,
        candidate: RawCandidate,
        source: Source,
        ctx: _RunContext,
        result: SourceResult,
    ) -> None:
        if await self._dedup.is_duplicate(candidate):
            result.duplicates += 1
            self._metrics.record_duplicate(source.type, "precheck")
            return

        item_id = await self._items.insert(
            candidate,
            canonical_url(candidate.url),
            tracking_country=ctx.country,
            source_country=source.country,
        )
        if item_id is None:
            result.duplicates += 1
            self._metrics.record_duplicate(source.type, "insert_conflict")
            return

        result.items_stored += 1
        self._metrics.record_stored(source.type)

        if not ctx.classify:
            return

        classification = await self._require_classifier().classify(candidate.text, ctx.competitors)
        result.record_outcome(classification.outcome)
        self._metrics.record_classification(classification.outcome.value)
        await self._items.update_classification(
            item_id,
            classification.sentiment,
            classification.tags,
            classification.title_en,
            classification.outcome.value,
        )

    # ── Social ──────────────────────────────────────────────────

    async def _social_window_days(self, country: str, since: date | None) -> int:
        now = self._now()
        last = await self._social.last_fetched_at(country)
        if last is not None and now - last < timedelta(hours=self._incremental_hours):
            hours = max((now - last).total_seconds() / 3600, 1.0)
            return max(1, math.ceil(hours / 24))
        if since is not None:
            return max(1, min(MAX_SOCIAL_WINDOW_DAYS, (now.date() - since).days + 1))
        return MAX_SOCIAL_WINDOW_DAYS

    async def _run_social(self, ctx: _RunContext, since: date | None) -> list[SourceResult]:
        fetcher = self._require_social_fetcher()
        country = ctx.country or self._default_country
        days = await self._social_window_days(country, since)
        country_name = country_name_for(country)
        semaphore = asyncio.Semaphore(self._concurrency)

        async def guarded(fighter: str) -> SourceResult:
            async with semaphore:
                return await self._collect_social_competitor(
                    fetcher, fighter, country, country_name, days, ctx
                )

        return list(await asyncio.gather(*(guarded(f) for f in ctx.competitors)))

    async def _collect_social_competitor(
        self,
        fetcher: SocialSearchFetcher,
        fighter: str,
        country: str,
        country_name: str,
        days: int,
        ctx: _RunContext,
    ) -> SourceResult:
        result = SourceResult(source=f"social:{fighter}", kind="social")

        with traced(self._tracer, "collection.social_competitor", {"fighter": fighter}):
            started = time.perf_counter()
            try:
                async with asyncio.timeout(self._source_timeout):
                    candidates = await fetcher.fetch_social([f"{fighter} {country_name}"], days)
                    in_window = [c for c in candidates if ctx.in_window(c)]
                    result.out_of_window = len(candidates) - len(in_window)
                    result.items_found = len(in_window)
                    self._metrics.record_source_fetched(
                        "social", len(in_window), time.perf_counter() - started
                    )
                    for candidate in in_window:
                        await self._store_social_candidate(candidate, country, ctx, result)
            except SourceFetchError as e:
                self._fail(result, "social", "fetch", e.reason)
            except TimeoutError:
                self._fail(result, "social", "timeout", f"timed out after {self._source_timeout:.0f}s")
            except Exception as e:
                logger.error("Social collection failed", fighter=fighter, error=str(e), exc_info=True)
                self._fail(result, "social", type(e).__name__, f"internal error: {type(e).__name__}")

        await self._notifier.notify("social_media_posts", result.items_stored, result.source)
        return result

    async def _store_social_candidate(
        self,
        candidate: RawCandidate,
        country: str,
        ctx: _RunContext,
        result: SourceResult,
    ) -> None:
        if await self._dedup.is_duplicate(candidate):
            result.duplicates += 1
            self._metrics.record_duplicate("social", "precheck")
            return

        post_id = await self._social.insert(candidate, country, ctx.user_id)
        if post_id is None:
            result.duplicates += 1
            self._metrics.record_duplicate("social", "insert_conflict")
            return

        result.items_stored += 1
        self._metrics.record_stored("social")

        classification = await self._require_classifier().classify(candidate.text, ctx.competitors)
        result.record_outcome(classification.outcome)
        self._metrics.record_classification(classification.outcome.value)
        await self._social.update_classification(
            post_id, classification.sentiment, classification.tags, classification.outcome.value
        )

    # ── Enrichment passes ───────────────────────────────────────

    async def process_pending(
        self,
        limit: int = 10,
        competitors: list[str] | None = None,
    ) -> ProcessSummary:
        """
        Classify stored items that have not been classified yet.

        Only keyword-relevant items (or items from defense sources) are
        picked, newest first.

        Raises:
            ConfigurationError: Classifier credentials missing.
        """
        classifier = self._require_classifier()
        tracked = competitors or list(FIGHTER_ALIASES)

        keywords = await self._preferences.get_keywords()
        pending = await self._items.list_pending(keywords, limit)
        summary = ProcessSummary(total_items=len(pending))

        for item in pending:
            text = f"{item.title_original}\n\n{item.body_original}".strip()
            classification = await classifier.classify(text, tracked)
            self._metrics.record_classification(classification.outcome.value)
            await self._items.update_classification(
                item.id,
                classification.sentiment,
                classification.tags,
                classification.title_en,
                classification.outcome.value,
            )
            summary.processed_count += 1
            summary.record_outcome(classification.outcome)

        await self._notifier.notify("items", summary.processed_count, "process_pending")
        logger.info("Pending items processed", **summary.model_dump())
        return summary

    async def backfill_translations(self, limit: int = 20) -> BackfillSummary:
        """
        One-time pass setting English titles on items that lack one.

        Raises:
            ConfigurationError: Classifier credentials missing.
        """
        classifier = self._require_classifier()
        items = await self._items.list_untranslated(limit)
        summary = BackfillSummary(articles_found=len(items))

        for item in items:
            title_en = await classifier.translate_title(item.title_original)
            if title_en:
                await self._items.set_title_en(item.id, title_en)
                summary.translated += 1

        await self._notifier.notify("items", summary.translated, "backfill_translations")
        logger.info("Translation backfill finished", **summary.model_dump())
        return summary

    # ── Privileged operations ───────────────────────────────────

    async def clean_and_recollect(self, user_id: str | None) -> CleanSummary:
        """
        Delete every item, then collect again for the caller's settings.

        Raises:
            AuthorizationError: Caller is not an admin.
            PreconditionError: No completed baseline exists.
            ConfigurationError: Classifier credentials missing.
        """
        await self._access.require_role(user_id, ADMIN)

        settings = await self._preferences.get(user_id) if user_id else None
        country = (settings.active_country if settings else None) or self._default_country
        competitors = (
            settings.active_competitors if settings and settings.active_competitors
            else list(self._default_competitors)
        )

        self._require_classifier()
        baseline = await self._baselines.get_current_baseline(country)
        if baseline is None:
            raise PreconditionError(NO_BASELINE_MESSAGE)

        deleted = await self._items.delete_all()
        logger.warning("Items wiped before recollection", deleted=deleted, user_id=user_id)

        collection = await self.run_collection(
            country,
            competitors,
            baseline.start_date,
            baseline.end_date,
            user_id=user_id,
        )
        return CleanSummary(
            message="Data cleaned and recollection started",
            items_deleted=deleted,
            collection=collection,
        )

    async def discover_outlets(
        self,
        user_id: str | None,
        country: str,
        country_name: str,
        register_sources: bool = False,
    ) -> list[OutletCandidate]:
        """
        Discover outlets and merge them into the caller's settings.

        Raises:
            AuthorizationError: Caller is not an admin.
            ConfigurationError: Gateway credentials missing.
            DiscoveryUnavailable: Gateway failure or malformed response.
        """
        await self._access.require_role(user_id, ADMIN)

        outlets = await self._registry.discover_outlets(country, country_name)
        await self._registry.save_discovered_outlets(user_id, outlets, country)
        if register_sources:
            await self._registry.import_outlets(outlets, country)
        return outlets

    # ── Helpers ─────────────────────────────────────────────────

    def _fail(self, result: SourceResult, source_type: str, error_type: str, message: str) -> None:
        result.success = False
        result.error = message
        self._metrics.record_source_error(source_type, error_type)
        logger.warning("Source failed", source=result.source, error=message)

    def _log_summary(self, event: str, summary: RunSummary) -> None:
        logger.info(
            event,
            run_id=summary.run_id,
            sources_processed=summary.sources_processed,
            articles_found=summary.articles_found,
            articles_stored=summary.articles_stored,
            posts_stored=summary.posts_stored,
            classification_failures=summary.classification_failures,
            rate_limited=summary.rate_limited,
            quota_exceeded=summary.quota_exceeded,
            errors=len(summary.errors),
        )
