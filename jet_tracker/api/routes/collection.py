"""Collection and enrichment triggers."""

from fastapi import APIRouter, Depends
from starlette.requests import Request
import structlog

from jet_tracker.api.auth import require_caller, verify_api_key
from jet_tracker.api.dependencies import get_orchestrator
from jet_tracker.api.models import (
    BackfillRequest,
    BackfillResponse,
    CleanResponse,
    CollectRequest,
    CollectResponse,
    CollectSocialRequest,
    CollectSocialResponse,
    ErrorResponse,
    ProcessPendingRequest,
    ProcessPendingResponse,
    ScrapeResponse,
    SourceResultItem,
)
from jet_tracker.api.rate_limit import limiter
from jet_tracker.config.settings import get_settings as _get_settings
from jet_tracker.services.collection_service import CollectionOrchestrator

logger = structlog.get_logger(__name__)
router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "/collect",
    response_model=CollectResponse,
    responses=_ERRORS,
    summary="Collect and classify articles for the tracking window",
)
@limiter.limit(lambda: _get_settings().rate_limit_collect)
async def collect(
    request: Request,
    body: CollectRequest,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> CollectResponse:
    summary = await orchestrator.run_collection(
        country=body.country.upper(),
        competitors=body.competitors,
        start_date=body.start_date,
        end_date=body.end_date,
        include_social=body.include_social,
        user_id=user_id,
    )
    return CollectResponse.from_summary(summary)


@router.post(
    "/collect-social",
    response_model=CollectSocialResponse,
    responses=_ERRORS,
    summary="Collect and classify social posts",
)
@limiter.limit(lambda: _get_settings().rate_limit_collect)
async def collect_social(
    request: Request,
    body: CollectSocialRequest,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> CollectSocialResponse:
    summary = await orchestrator.collect_social(body.country.upper(), body.competitors, user_id)
    return CollectSocialResponse(
        posts_found=summary.posts_found,
        posts_stored=summary.posts_stored,
        results=[SourceResultItem.from_result(r) for r in summary.results],
    )


@router.post(
    "/scrape-feeds",
    response_model=ScrapeResponse,
    responses=_ERRORS,
    summary="Store new feed items without classification",
)
@limiter.limit(lambda: _get_settings().rate_limit_collect)
async def scrape_feeds(
    request: Request,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> ScrapeResponse:
    summary = await orchestrator.scrape_feeds()
    return ScrapeResponse(
        total_items_scraped=summary.articles_stored,
        sources_processed=summary.sources_processed,
        results=[SourceResultItem.from_result(r) for r in summary.results],
    )


@router.post(
    "/process-pending",
    response_model=ProcessPendingResponse,
    responses=_ERRORS,
    summary="Classify stored items that have no sentiment yet",
)
@limiter.limit(lambda: _get_settings().rate_limit_default)
async def process_pending(
    request: Request,
    body: ProcessPendingRequest | None = None,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> ProcessPendingResponse:
    limit = body.limit if body else _get_settings().process_pending_limit
    summary = await orchestrator.process_pending(limit)
    return ProcessPendingResponse(**summary.model_dump())


@router.post(
    "/backfill-translations",
    response_model=BackfillResponse,
    responses=_ERRORS,
    summary="Set English titles on items that lack one",
)
@limiter.limit(lambda: _get_settings().rate_limit_default)
async def backfill_translations(
    request: Request,
    body: BackfillRequest | None = None,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> BackfillResponse:
    summary = await orchestrator.backfill_translations(body.limit if body else 20)
    return BackfillResponse(**summary.model_dump())


@router.post(
    "/clean-and-recollect",
    response_model=CleanResponse,
    responses={**_ERRORS, 403: {"model": ErrorResponse}},
    summary="Delete all items and collect again (admin)",
)
@limiter.limit(lambda: _get_settings().rate_limit_collect)
async def clean_and_recollect(
    request: Request,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> CleanResponse:
    result = await orchestrator.clean_and_recollect(user_id)
    return CleanResponse(
        message=result.message,
        items_deleted=result.items_deleted,
        collection_result=CollectResponse.from_summary(result.collection),
    )
