"""
Wiring for the collection orchestrator.

Opens the HTTP client and, when credentials are configured, the classifier
gateway and social search fetcher for the lifetime of one context. Missing
credentials leave the corresponding collaborator unset so the orchestrator
can fail with a ConfigurationError on the operations that need it.
"""

from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

import structlog

from jet_tracker.auth.roles import AccessControl, RolesRepository
from jet_tracker.baselines.manager import BaselineManager
from jet_tracker.baselines.repository import BaselineRepository
from jet_tracker.classification.client import ClassifierClient
from jet_tracker.classification.gateway import ChatGateway
from jet_tracker.config.settings import Settings, get_settings
from jet_tracker.ingestion.feed_fetcher import FeedFetcher
from jet_tracker.ingestion.http_client import HTTPClient, RetryConfig
from jet_tracker.ingestion.social_fetcher import SocialSearchFetcher
from jet_tracker.services.collection_service import CollectionOrchestrator
from jet_tracker.sources.preferences import UserSettingsRepository
from jet_tracker.sources.registry import OutletRegistry
from jet_tracker.sources.repository import SourcesRepository
from jet_tracker.storage.database import Database
from jet_tracker.storage.notifications import StoreChangeNotifier
from jet_tracker.storage.repository import ItemRepository, SocialPostRepository

logger = structlog.get_logger(__name__)


async def create_schema(database: Database) -> None:
    """Create every table, parents before children."""
    await SourcesRepository(database).create_table()
    await ItemRepository(database).create_tables()
    await SocialPostRepository(database).create_tables()
    await BaselineRepository(database).create_table()
    await UserSettingsRepository(database).create_tables()
    await RolesRepository(database).create_table()
    logger.info("Database schema ready")


@asynccontextmanager
async def open_orchestrator(
    database: Database,
    settings: Settings | None = None,
) -> AsyncIterator[CollectionOrchestrator]:
    """
    Build a CollectionOrchestrator with its network clients opened.

    Usage:
        async with open_orchestrator(db) as orchestrator:
            await orchestrator.scrape_feeds()
    """
    settings = settings or get_settings()

    async with AsyncExitStack() as stack:
        http = await stack.enter_async_context(
            HTTPClient(RetryConfig.from_settings(settings), timeout=settings.fetch_timeout_seconds)
        )

        gateway: ChatGateway | None = None
        classifier: ClassifierClient | None = None
        if settings.classifier_configured:
            gateway = await stack.enter_async_context(ChatGateway.from_settings(settings))
            classifier = ClassifierClient(
                gateway,
                failure_threshold=settings.classifier_failure_threshold,
                recovery_timeout=settings.classifier_recovery_seconds,
            )

        social_fetcher: SocialSearchFetcher | None = None
        if settings.social_search_configured:
            social_fetcher = SocialSearchFetcher(
                http,
                api_key=settings.google_search_api_key.get_secret_value(),
                engine_id=settings.google_search_engine_id,
                search_url=settings.google_search_url,
            )

        preferences = UserSettingsRepository(database)
        items = ItemRepository(database)
        social_posts = SocialPostRepository(database)

        yield CollectionOrchestrator(
            registry=OutletRegistry(SourcesRepository(database), preferences, gateway),
            baselines=BaselineManager(BaselineRepository(database)),
            items=items,
            social_posts=social_posts,
            preferences=preferences,
            access=AccessControl(RolesRepository(database)),
            feed_fetcher=FeedFetcher(http, settings.user_agent),
            classifier=classifier,
            social_fetcher=social_fetcher,
            notifier=StoreChangeNotifier(database, settings.notify_channel),
            source_concurrency=settings.source_concurrency,
            source_timeout=settings.source_timeout_seconds,
            incremental_window_hours=settings.incremental_window_hours,
            default_country=settings.default_country,
            default_competitors=settings.default_competitor_list,
        )
