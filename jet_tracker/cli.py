"""
Command-line interface for jet-tracker.

Provides commands to initialize the database, trigger collection runs and
enrichment passes, manage the tracking window, and run the API server.

Usage:
    jet-tracker init-db                      # Create tables, seed sources
    jet-tracker set-baseline 2026-01-01      # Start a tracking window
    jet-tracker collect -c PT -f Gripen -f F-35
    jet-tracker scrape-feeds                 # Store new items unclassified
    jet-tracker process-pending              # Classify stored items
    jet-tracker serve                        # Run the API server
    jet-tracker sources disable 12           # Stop collecting from a source
    jet-tracker grant-role alice             # Allow admin operations
    jet-tracker health                       # Check service health
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import click

from jet_tracker.config.settings import get_settings
from jet_tracker.errors import JetTrackerError
from jet_tracker.observability.logging import setup_logging
from jet_tracker.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Jet Tracker - fighter procurement media collection."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()

    settings = get_settings()
    if settings.tracing_enabled:
        from jet_tracker.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )


def _run_with_orchestrator(operation: Callable[[Any], Awaitable[Any]]) -> Any:
    """Open a database and orchestrator, run ``operation``, and exit 1 on domain errors."""
    from jet_tracker.services.factory import open_orchestrator
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            async with open_orchestrator(db) as orchestrator:
                return await operation(orchestrator)

    try:
        return asyncio.run(run())
    except JetTrackerError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


def _echo_run(summary) -> None:
    click.echo(f"\nRun {summary.run_id}:")
    for result in summary.results:
        if result.success:
            click.echo(
                f"  {result.source}: found={result.items_found} "
                f"stored={result.items_stored} duplicates={result.duplicates}"
            )
        else:
            click.echo(click.style(f"  {result.source}: {result.error}", fg="red"))

    click.echo("-" * 40)
    click.echo(f"  sources processed: {summary.sources_processed}")
    click.echo(f"  articles stored:   {summary.articles_stored}/{summary.articles_found}")
    if summary.posts_found:
        click.echo(f"  posts stored:      {summary.posts_stored}/{summary.posts_found}")
    if summary.classification_failures or summary.rate_limited or summary.quota_exceeded:
        click.echo(
            click.style(
                f"  degraded classifications: failed={summary.classification_failures} "
                f"rate_limited={summary.rate_limited} quota={summary.quota_exceeded}",
                fg="yellow",
            )
        )


@main.command("init-db")
@click.option("--seed/--no-seed", default=True, help="Seed default sources into an empty registry")
def init_db(seed: bool) -> None:
    """Initialize the database schema."""
    from jet_tracker.services.factory import create_schema
    from jet_tracker.sources.preferences import UserSettingsRepository
    from jet_tracker.sources.registry import OutletRegistry
    from jet_tracker.sources.repository import SourcesRepository
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            await create_schema(db)
            click.echo("Database initialized successfully")

            if seed:
                registry = OutletRegistry(SourcesRepository(db), UserSettingsRepository(db))
                seeded = await registry.seed_defaults()
                click.echo(f"Seeded {seeded} sources")

    asyncio.run(run())


@main.command()
@click.option("-c", "--country", default=None, help="Tracking country code")
@click.option("-f", "--fighter", "fighters", multiple=True, help="Competitor to tag (repeatable)")
@click.option("--start", "start_date", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Window start")
@click.option("--end", "end_date", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Window end")
@click.option("--social", is_flag=True, help="Also collect social posts")
@click.option("--metrics/--no-metrics", default=False, help="Enable metrics server")
def collect(
    country: str | None,
    fighters: tuple[str, ...],
    start_date: datetime | None,
    end_date: datetime | None,
    social: bool,
    metrics: bool,
) -> None:
    """Collect and classify articles within the current baseline."""
    settings = get_settings()
    country = (country or settings.default_country).upper()
    competitors = list(fighters) or settings.default_competitor_list
    start = start_date.date() if start_date else None
    end = end_date.date() if end_date else None
    if start and end and end < start:
        raise click.BadParameter("must not be before --start", param_hint="--end")

    if metrics:
        get_metrics().start_server()

    summary = _run_with_orchestrator(
        lambda o: o.run_collection(country, competitors, start, end, include_social=social)
    )
    _echo_run(summary)


@main.command("scrape-feeds")
def scrape_feeds() -> None:
    """Fetch every enabled source and store new items unclassified."""
    summary = _run_with_orchestrator(lambda o: o.scrape_feeds())
    _echo_run(summary)


@main.command("process-pending")
@click.option("--limit", default=None, type=int, help="Maximum items to classify")
def process_pending(limit: int | None) -> None:
    """Classify stored items that have no sentiment yet."""
    limit = limit or get_settings().process_pending_limit
    summary = _run_with_orchestrator(lambda o: o.process_pending(limit))
    click.echo(f"Processed {summary.processed_count}/{summary.total_items} items")
    if summary.classification_failures or summary.rate_limited or summary.quota_exceeded:
        click.echo(
            click.style(
                f"  degraded: failed={summary.classification_failures} "
                f"rate_limited={summary.rate_limited} quota={summary.quota_exceeded}",
                fg="yellow",
            )
        )


@main.command("backfill-translations")
@click.option("--limit", default=20, help="Maximum items to translate")
def backfill_translations(limit: int) -> None:
    """Set English titles on items that lack one."""
    summary = _run_with_orchestrator(lambda o: o.backfill_translations(limit))
    click.echo(f"Translated {summary.translated}/{summary.articles_found} titles")


@main.command("set-baseline")
@click.argument("start_date")
@click.option("-c", "--country", default=None, help="Tracking country code")
@click.option("--created-by", default="cli", help="Recorded author of the baseline")
def set_baseline(start_date: str, country: str | None, created_by: str) -> None:
    """Start a new tracking window at START_DATE (YYYY-MM-DD), ending today."""
    from jet_tracker.baselines.manager import BaselineManager
    from jet_tracker.baselines.repository import BaselineRepository
    from jet_tracker.storage.database import Database

    try:
        start = datetime.strptime(start_date, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="START_DATE")

    async def run():
        async with Database() as db:
            manager = BaselineManager(BaselineRepository(db))
            return await manager.set_baseline(
                start, tracking_country=country.upper() if country else None, created_by=created_by
            )

    try:
        baseline = asyncio.run(run())
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Baseline {baseline.id}: {baseline.start_date} → {baseline.end_date} ({baseline.status.value})")


@main.command("discover-outlets")
@click.option("-c", "--country", default="PT", help="Country code")
@click.option("--country-name", default="Portugal", help="Country name used in the prompt")
@click.option("--user", "user_id", required=True, help="Admin user the outlets are saved for")
@click.option("--register", is_flag=True, help="Also add the outlets to the source registry")
def discover_outlets(country: str, country_name: str, user_id: str, register: bool) -> None:
    """Discover media outlets for a country and save them to a user's settings."""
    outlets = _run_with_orchestrator(
        lambda o: o.discover_outlets(user_id, country.upper(), country_name, register_sources=register)
    )
    click.echo(f"\nDiscovered {len(outlets)} outlets:")
    for outlet in outlets:
        click.echo(f"  [{outlet.credibility:>2}] {outlet.name} ({outlet.domain}, {outlet.type})")


@main.command("clean-and-recollect")
@click.option("--user", "user_id", required=True, help="Admin user whose settings drive the run")
@click.confirmation_option(prompt="This deletes every collected item. Continue?")
def clean_and_recollect(user_id: str) -> None:
    """Delete all items and collect again for the current baseline."""
    result = _run_with_orchestrator(lambda o: o.clean_and_recollect(user_id))
    click.echo(f"{result.message} ({result.items_deleted} items deleted)")
    _echo_run(result.collection)


@main.group()
def sources() -> None:
    """Source registry commands."""


@sources.command("list")
@click.option("-c", "--country", default=None, help="Only sources for this country")
def sources_list(country: str | None) -> None:
    """List registered sources, enabled or not."""
    from jet_tracker.sources.repository import SourcesRepository
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            return await SourcesRepository(db).list_sources(country.upper() if country else None)

    rows = asyncio.run(run())
    for source in rows:
        flag = " " if source.enabled else "x"
        click.echo(f"  [{flag}] {source.id:>4} tier={source.credibility_tier} {source.name} ({source.url})")
    click.echo(f"{len(rows)} sources")


def _update_source(operation: Callable[[Any], Awaitable[bool]], source_id: int) -> None:
    from jet_tracker.sources.repository import SourcesRepository
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            return await operation(SourcesRepository(db))

    if not asyncio.run(run()):
        click.echo(click.style(f"Error: no source with id {source_id}", fg="red"), err=True)
        sys.exit(1)
    click.echo(f"Source {source_id} updated")


@sources.command("enable")
@click.argument("source_id", type=int)
def sources_enable(source_id: int) -> None:
    """Include a source in collection runs again."""
    _update_source(lambda repo: repo.set_enabled(source_id, True), source_id)


@sources.command("disable")
@click.argument("source_id", type=int)
def sources_disable(source_id: int) -> None:
    """Exclude a source from collection runs. Its items are kept."""
    _update_source(lambda repo: repo.set_enabled(source_id, False), source_id)


@sources.command("set-tier")
@click.argument("source_id", type=int)
@click.argument("tier", type=click.IntRange(1, 5))
def sources_set_tier(source_id: int, tier: int) -> None:
    """Change a source's credibility tier (1-5)."""
    _update_source(lambda repo: repo.set_credibility(source_id, tier), source_id)


@main.command("grant-role")
@click.argument("user_id")
@click.option("--role", default="admin", type=click.Choice(["admin", "user"]), help="Role to grant")
def grant_role(user_id: str, role: str) -> None:
    """Grant USER_ID a role."""
    from jet_tracker.auth.roles import RolesRepository
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            await RolesRepository(db).grant(user_id, role)

    asyncio.run(run())
    click.echo(f"Granted {role} to {user_id}")


@main.command("set-tracking")
@click.option("--user", "user_id", required=True, help="User whose preferences change")
@click.option("-c", "--country", required=True, help="Active tracking country")
@click.option("-f", "--fighter", "fighters", multiple=True, required=True, help="Competitor (repeatable)")
def set_tracking(user_id: str, country: str, fighters: tuple[str, ...]) -> None:
    """Set a user's active country and competitors."""
    from jet_tracker.sources.preferences import UserSettingsRepository
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            return await UserSettingsRepository(db).set_tracking(user_id, country.upper(), list(fighters))

    settings = asyncio.run(run())
    click.echo(
        f"{settings.user_id}: {settings.active_country} "
        f"[{', '.join(settings.active_competitors)}]"
    )


@main.command("set-keywords")
@click.argument("keywords", nargs=-1, required=True)
def set_keywords(keywords: tuple[str, ...]) -> None:
    """Replace the relevance keywords used by process-pending."""
    from jet_tracker.sources.preferences import UserSettingsRepository
    from jet_tracker.storage.database import Database

    async def run():
        async with Database() as db:
            await UserSettingsRepository(db).set_keywords(list(keywords))

    asyncio.run(run())
    click.echo(f"Stored {len(keywords)} keywords")


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        try:
            from jet_tracker.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        settings = get_settings()
        results["classifier_configured"] = settings.classifier_configured
        results["social_search_configured"] = settings.social_search_configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if name == "postgres" and not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=8000, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int) -> None:
    """Start the trigger API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "jet_tracker.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
