"""
HTTP infrastructure layer with retry logic.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async HTTP client with automatic retry on transient failures
- HTTPClientError / RateLimitError / QuotaExceededError: typed failures so
  callers can tell throttling and exhausted credits apart from other errors

Feed fetching, social search and the classifier all share this client so
every outbound request carries a bounded timeout and the same backoff policy.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

from jet_tracker.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 2
    max_backoff_seconds: float = 30.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryConfig":
        """Build a retry policy from application settings."""
        return cls(
            max_retries=settings.max_http_retries,
            max_backoff_seconds=settings.max_backoff_seconds,
        )

    def calculate_backoff(self, attempt: int) -> float:
        """
        Calculate backoff duration for a given retry attempt.

        Args:
            attempt: The retry attempt number (0-indexed)

        Returns:
            Backoff duration in seconds with jitter applied
        """
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        """Whether a status code is transient (429 and 5xx gateway errors)."""
        return status_code in {429, 500, 502, 503, 504}

    def is_retryable_exception(self, exc: Exception) -> bool:
        """Whether an exception is a transient transport failure."""
        return isinstance(
            exc,
            (
                httpx.TimeoutException,
                httpx.ConnectError,
                httpx.ReadError,
            ),
        )


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Raised when rate limit is hit and all retries exhausted."""


class QuotaExceededError(HTTPClientError):
    """Raised on HTTP 402: the upstream account has no credits left."""


class HTTPClient:
    """
    Async HTTP client with retry logic.

    Features:
    - Exponential backoff with jitter on retryable errors
    - Automatic retry on 429, 5xx status codes, honouring numeric Retry-After
    - Automatic retry on timeout/connection errors
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(RetryConfig(max_retries=2), timeout=15.0) as client:
            response = await client.get("https://example.com/feed")
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Request timeout in seconds.
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform GET request with retry logic.

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
            QuotaExceededError: On HTTP 402
        """
        return await self._request_with_retry("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Perform POST request with retry logic.

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
            QuotaExceededError: On HTTP 402
        """
        return await self._request_with_retry(
            "POST", url, params=params, headers=headers, json_body=json_body
        )

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        last_status_code: int | None = None
        last_response_body: str | None = None
        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method,
                    url,
                    params=params or None,
                    headers=headers or None,
                    json=json_body,
                )

                if self.retry_config.is_retryable_status(response.status_code):
                    last_status_code = response.status_code
                    last_response_body = response.text

                    if attempt < self.retry_config.max_retries:
                        backoff = self._retry_after(response)
                        if backoff is None:
                            backoff = self.retry_config.calculate_backoff(attempt)
                        logger.warning(
                            "Retryable status %d from %s, attempt %d/%d, backing off %.2fs",
                            response.status_code, url, attempt + 1, attempts, backoff,
                        )
                        await asyncio.sleep(backoff)
                        continue

                    if response.status_code == 429:
                        raise RateLimitError(
                            f"Rate limit exceeded for {url} after {attempt + 1} attempts",
                            status_code=response.status_code,
                            response_body=last_response_body,
                        )
                    raise HTTPClientError(
                        f"Request failed with status {response.status_code} after {attempt + 1} attempts",
                        status_code=response.status_code,
                        response_body=last_response_body,
                    )

                if response.status_code == 402:
                    raise QuotaExceededError(
                        f"Quota exhausted for {url}",
                        status_code=402,
                        response_body=response.text,
                    )

                if response.status_code >= 400:
                    raise HTTPClientError(
                        f"Request failed with status {response.status_code}",
                        status_code=response.status_code,
                        response_body=response.text,
                    )

                return response

            except httpx.TransportError as e:
                if (
                    self.retry_config.is_retryable_exception(e)
                    and attempt < self.retry_config.max_retries
                ):
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        "Retryable error %s for %s, attempt %d/%d, backing off %.2fs",
                        type(e).__name__, url, attempt + 1, attempts, backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue

                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {e}",
                    status_code=last_status_code,
                ) from e

        raise HTTPClientError(
            f"Request failed after {attempts} attempts",
            status_code=last_status_code,
            response_body=last_response_body,
        )

    def _retry_after(self, response: httpx.Response) -> float | None:
        """Seconds from a numeric ``Retry-After`` header, capped at the max backoff."""
        value = response.headers.get("Retry-After", "").strip()
        if not value.isdigit():
            return None
        return min(float(value), self.retry_config.max_backoff_seconds)
