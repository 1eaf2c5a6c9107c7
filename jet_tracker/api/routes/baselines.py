"""Tracking window endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.requests import Request

from jet_tracker.api.auth import require_caller, verify_api_key
from jet_tracker.api.dependencies import get_access_control, get_baseline_manager
from jet_tracker.api.models import BaselineResponse, ErrorResponse, SetBaselineRequest
from jet_tracker.api.rate_limit import limiter
from jet_tracker.auth.roles import ADMIN, AccessControl
from jet_tracker.baselines.manager import BaselineManager
from jet_tracker.config.settings import get_settings as _get_settings

router = APIRouter()


@router.post(
    "/baselines",
    response_model=BaselineResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Set a new tracking window starting at startDate (admin)",
)
@limiter.limit(lambda: _get_settings().rate_limit_default)
async def set_baseline(
    request: Request,
    body: SetBaselineRequest,
    api_key: str = Depends(verify_api_key),
    user_id: str = Depends(require_caller),
    access: AccessControl = Depends(get_access_control),
    manager: BaselineManager = Depends(get_baseline_manager),
) -> BaselineResponse:
    await access.require_role(user_id, ADMIN)
    try:
        baseline = await manager.set_baseline(
            body.start_date,
            tracking_country=body.tracking_country.upper() if body.tracking_country else None,
            created_by=user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return BaselineResponse.from_baseline(baseline)


@router.get(
    "/baselines/current",
    response_model=BaselineResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Current tracking window",
)
@limiter.limit(lambda: _get_settings().rate_limit_default)
async def get_current_baseline(
    request: Request,
    country: str | None = Query(default=None, min_length=2, max_length=2),
    api_key: str = Depends(verify_api_key),
    manager: BaselineManager = Depends(get_baseline_manager),
) -> BaselineResponse:
    baseline = await manager.get_current_baseline(country.upper() if country else None)
    if baseline is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No baseline set")
    return BaselineResponse.from_baseline(baseline)
