"""
API authentication.

Two headers are involved: ``X-API-KEY`` gates the whole API when keys are
configured, and ``X-User-ID`` identifies the caller whose roles and
settings a run uses.
"""

from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from jet_tracker.config.settings import get_settings

api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Verify API key from X-API-KEY header.

    Returns:
        The validated API key

    Raises:
        HTTPException: If API key is missing or invalid
    """
    settings = get_settings()

    # If no API keys configured, allow all requests (dev mode)
    if not settings.api_keys:
        return "dev-mode"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    valid_keys = [k.strip() for k in settings.api_keys.split(",") if k.strip()]
    if not valid_keys or api_key not in valid_keys:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key


async def require_caller(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> str:
    """
    Caller identity from the X-User-ID header.

    Raises:
        HTTPException: 401 when the header is missing or blank
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity. Provide X-User-ID header.",
        )
    return x_user_id.strip()
