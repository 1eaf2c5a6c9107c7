"""Outlet discovery endpoint."""

from fastapi import APIRouter, Depends
from starlette.requests import Request

from jet_tracker.api.auth import require_caller, verify_api_key
from jet_tracker.api.dependencies import get_orchestrator
from jet_tracker.api.models import DiscoverOutletsRequest, DiscoverOutletsResponse, ErrorResponse
from jet_tracker.api.rate_limit import limiter
from jet_tracker.config.settings import get_settings as _get_settings
from jet_tracker.services.collection_service import CollectionOrchestrator

router = APIRouter()


@router.post(
    "/discover-outlets",
    response_model=DiscoverOutletsResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Discover media outlets for a country (admin)",
)
@limiter.limit(lambda: _get_settings().rate_limit_collect)
async def discover_outlets(
    request: Request,
    body: DiscoverOutletsRequest,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> DiscoverOutletsResponse:
    outlets = await orchestrator.discover_outlets(
        user_id,
        body.country.upper(),
        body.country_name,
        register_sources=body.register_sources,
    )
    return DiscoverOutletsResponse.from_outlets(outlets)
