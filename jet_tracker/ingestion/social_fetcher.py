"""
Social post discovery through Google Custom Search.

Social platforms are not read directly; instead site-scoped search queries
(``<fighter> <country> site:reddit.com``) are issued against the Custom
Search JSON API with a ``dateRestrict`` window, and each result is mapped
to a RawCandidate whose platform is inferred from the result's domain.

The search API rarely exposes exact post times. When the page metadata
carries ``article:published_time`` it is used; otherwise the fetch time is
stamped and ``published_at_estimated`` is set so time series can exclude
or down-weight those posts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import httpx

from jet_tracker.errors import SourceFetchError
from jet_tracker.ingestion.http_client import HTTPClient, HTTPClientError
from jet_tracker.ingestion.schemas import RawCandidate, SocialPlatform
from jet_tracker.ingestion.text import clean_text, stable_hash

logger = logging.getLogger(__name__)

PLATFORM_SCOPES: dict[SocialPlatform, str] = {
    SocialPlatform.REDDIT: "site:reddit.com",
    SocialPlatform.X: "(site:x.com OR site:twitter.com)",
    SocialPlatform.FACEBOOK: "site:facebook.com",
    SocialPlatform.LINKEDIN: "site:linkedin.com",
}

_PLATFORM_DOMAINS: dict[str, SocialPlatform] = {
    "reddit.com": SocialPlatform.REDDIT,
    "redd.it": SocialPlatform.REDDIT,
    "x.com": SocialPlatform.X,
    "twitter.com": SocialPlatform.X,
    "facebook.com": SocialPlatform.FACEBOOK,
    "fb.com": SocialPlatform.FACEBOOK,
    "linkedin.com": SocialPlatform.LINKEDIN,
}

RESULTS_PER_QUERY = 10


@dataclass(frozen=True)
class SocialQuery:
    """One site-scoped search request."""

    platform: SocialPlatform
    query: str
    date_restrict: str


def infer_platform(url: str) -> SocialPlatform:
    """Best-guess platform from a result URL's host."""
    host = (urlsplit(url).hostname or "").lower()
    for domain, platform in _PLATFORM_DOMAINS.items():
        if host == domain or host.endswith("." + domain):
            return platform
    return SocialPlatform.OTHER


def extract_post_id(url: str) -> str:
    """Last non-empty path segment of the URL, or a hash of the URL."""
    segments = [s for s in urlsplit(url).path.split("/") if s]
    return segments[-1] if segments else stable_hash(url)


def extract_username(url: str, platform: SocialPlatform) -> str | None:
    """Author handle from x.com status URLs or reddit user URLs."""
    segments = [s for s in urlsplit(url).path.split("/") if s]
    if platform == SocialPlatform.X and len(segments) >= 3 and segments[1] == "status":
        return segments[0]
    if platform == SocialPlatform.REDDIT:
        for marker in ("u", "user"):
            if marker in segments:
                idx = segments.index(marker)
                if idx + 1 < len(segments):
                    return segments[idx + 1]
    return None


def _metatag_published(item: dict[str, Any]) -> datetime | None:
    metatags = (item.get("pagemap") or {}).get("metatags") or []
    if not metatags:
        return None
    raw = metatags[0].get("article:published_time")
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def build_queries(
    query_terms: list[str],
    date_window_days: int,
    platforms: list[SocialPlatform] | None = None,
) -> list[SocialQuery]:
    """Cross every query term with every platform scope."""
    days = max(1, date_window_days)
    selected = platforms or list(PLATFORM_SCOPES)
    return [
        SocialQuery(
            platform=platform,
            query=f"{term} {PLATFORM_SCOPES[platform]}",
            date_restrict=f"d{days}",
        )
        for term in query_terms
        for platform in selected
    ]


class SocialSearchFetcher:
    """
    Maps site-scoped Custom Search results to social RawCandidates.

    Args:
        client: Open HTTPClient (the caller owns its lifecycle)
        api_key: Custom Search API key
        engine_id: Programmable Search Engine id (``cx``)
        search_url: Custom Search endpoint
    """

    def __init__(
        self,
        client: HTTPClient,
        api_key: str,
        engine_id: str,
        search_url: str = "https://www.googleapis.com/customsearch/v1",
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._engine_id = engine_id
        self._search_url = search_url

    async def fetch_social(
        self,
        query_terms: list[str],
        date_window_days: int,
        platforms: list[SocialPlatform] | None = None,
    ) -> list[RawCandidate]:
        """
        Run every query and return unique candidates in result order.

        A failing query is logged and skipped; if every query fails the
        whole unit fails.

        Raises:
            SourceFetchError: When no query succeeded.
        """
        queries = build_queries(query_terms, date_window_days, platforms)
        label = ", ".join(query_terms)

        candidates: list[RawCandidate] = []
        seen: set[tuple[str, str]] = set()
        failures: list[str] = []

        for query in queries:
            try:
                items = await self._search(query)
            except (HTTPClientError, httpx.HTTPError, ValueError) as e:
                logger.warning("Social search failed for %r: %s", query.query, e)
                failures.append(str(e))
                continue

            for item in items:
                candidate = self._to_candidate(item)
                if candidate is None:
                    continue
                key = (candidate.platform.value, candidate.post_id)
                if key in seen:
                    continue
                seen.add(key)
                candidates.append(candidate)

        if queries and len(failures) == len(queries):
            raise SourceFetchError(f"social:{label}", failures[-1])

        logger.debug("Social search for %s returned %d posts", label, len(candidates))
        return candidates

    async def _search(self, query: SocialQuery) -> list[dict[str, Any]]:
        response = await self._client.get(
            self._search_url,
            params={
                "key": self._api_key,
                "cx": self._engine_id,
                "q": query.query,
                "num": RESULTS_PER_QUERY,
                "dateRestrict": query.date_restrict,
                "sort": "date",
            },
        )
        data = response.json()
        return data.get("items") or []

    def _to_candidate(self, item: dict[str, Any]) -> RawCandidate | None:
        link = (item.get("link") or "").strip()
        title = clean_text(item.get("title") or "")
        if not link or not title:
            return None

        platform = infer_platform(link)
        published = _metatag_published(item)
        snippet = clean_text(item.get("snippet") or "")

        return RawCandidate(
            kind="social",
            title=title,
            url=link,
            body=snippet or title,
            published_at=published or datetime.now(timezone.utc),
            published_at_estimated=published is None,
            platform=platform,
            post_id=extract_post_id(link),
            author_username=extract_username(link, platform),
        )
