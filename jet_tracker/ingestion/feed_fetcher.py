"""
RSS/Atom feed fetcher for registered outlets.

Resolves a feed URL from a source's base URL, downloads it through the
shared HTTPClient and parses it with feedparser into RawCandidate records.
Content is kept as published (markup included); entries without a title or
a link are skipped individually while the rest of the feed is still used.
"""

import calendar
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urlsplit

import feedparser
import httpx

from jet_tracker.config.competitors import KNOWN_DOMAIN_FEEDS, KNOWN_FEEDS
from jet_tracker.errors import SourceFetchError
from jet_tracker.ingestion.http_client import HTTPClient, HTTPClientError
from jet_tracker.ingestion.schemas import RawCandidate
from jet_tracker.sources.schemas import Source

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"

_FEED_MARKERS = ("rss", "feed", "atom")


def looks_like_feed(url: str) -> bool:
    """Whether a URL already points at a feed rather than a site root."""
    path = urlsplit(url).path.lower()
    return path.endswith(".xml") or any(marker in path for marker in _FEED_MARKERS)


def build_feed_url(source: Source) -> str:
    """
    Resolve the feed URL for a source.

    Known outlets map to their published feed; known vendor domains map to
    their newsroom feed; anything that does not already look like a feed
    gets ``/feed`` appended.
    """
    if source.name in KNOWN_FEEDS:
        return KNOWN_FEEDS[source.name]

    host = (urlsplit(source.url).hostname or "").lower()
    for domain, feed_url in KNOWN_DOMAIN_FEEDS.items():
        if host == domain or host.endswith("." + domain):
            return feed_url

    if looks_like_feed(source.url):
        return source.url
    return source.url.rstrip("/") + "/feed"


def parse_entry_date(entry: dict[str, Any]) -> datetime | None:
    """Best-effort publish date of a feed entry, or None if nothing parses."""
    for field in ("published", "updated", "created"):
        parsed = entry.get(f"{field}_parsed")
        if parsed:
            try:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
            except (OverflowError, ValueError, TypeError):
                pass

        raw = entry.get(field)
        if raw:
            try:
                value = parsedate_to_datetime(raw)
            except (TypeError, ValueError):
                continue
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value

    return None


def entry_body(entry: dict[str, Any]) -> str:
    """Rich content first, then description, then the title."""
    content = entry.get("content")
    if content:
        value = content[0].get("value", "")
        if value and value.strip():
            return value
    summary = entry.get("summary") or entry.get("description")
    if summary and summary.strip():
        return summary
    return entry.get("title", "")


class FeedFetcher:
    """
    Fetches and parses a source's RSS/Atom feed.

    Args:
        client: Open HTTPClient (the caller owns its lifecycle)
        user_agent: Identifying User-Agent header value
    """

    def __init__(self, client: HTTPClient, user_agent: str) -> None:
        self._client = client
        self._headers = {"User-Agent": user_agent, "Accept": FEED_ACCEPT}

    async def fetch_feed(self, source: Source) -> list[RawCandidate]:
        """
        Fetch one source and return its entries in feed order.

        Raises:
            SourceFetchError: On network failure, non-2xx status, or a
                document that does not parse as a feed.
        """
        feed_url = build_feed_url(source)

        try:
            response = await self._client.get(feed_url, headers=self._headers)
        except HTTPClientError as e:
            raise SourceFetchError(source.name, str(e)) from e
        except httpx.HTTPError as e:
            raise SourceFetchError(source.name, f"{type(e).__name__}: {e}") from e

        feed = feedparser.parse(response.content)
        entries = feed.get("entries", [])
        if feed.get("bozo") and not entries:
            reason = feed.get("bozo_exception") or "unparsable feed document"
            raise SourceFetchError(source.name, f"Could not parse {feed_url}: {reason}")

        candidates: list[RawCandidate] = []
        skipped = 0
        for entry in entries:
            title = (entry.get("title") or "").strip()
            link = (entry.get("link") or "").strip()
            if not title or not link:
                skipped += 1
                continue

            published = parse_entry_date(entry)
            candidates.append(
                RawCandidate(
                    kind="feed",
                    title=title,
                    url=link,
                    body=entry_body(entry),
                    published_at=published or datetime.now(timezone.utc),
                    published_at_estimated=published is None,
                    source_id=source.id,
                )
            )

        logger.debug(
            "Parsed %d entries from %s (%d skipped)", len(candidates), feed_url, skipped
        )
        return candidates
