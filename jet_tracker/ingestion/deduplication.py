"""
Natural-key deduplication for collected content.

Dedup is two-phase. ``is_duplicate`` is a cheap point lookup that avoids
classifier calls for content already stored; the unique constraints on
``items.url`` and ``social_media_posts(platform, post_id)`` are the final
authority, and an insert that loses a race (``RETURNING id`` yields None)
is counted as a duplicate rather than an error.
"""

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from jet_tracker.ingestion.schemas import RawCandidate
from jet_tracker.storage.repository import ItemRepository, SocialPostRepository

logger = logging.getLogger(__name__)

TRACKING_PARAMS = frozenset({"fbclid", "gclid"})
TRACKING_PREFIXES = ("utm_",)


def _is_tracking_param(name: str) -> bool:
    lowered = name.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PREFIXES)


def canonical_url(url: str) -> str:
    """
    Normalize a URL into the natural key for feed items.

    Lower-cases scheme and host, drops the fragment and tracking query
    parameters, and removes a trailing slash from non-root paths.

    Example:
        canonical_url("HTTPS://News.PT/a/?utm_source=x&id=3#top")
        # -> "https://news.pt/a?id=3"
    """
    parts = urlsplit(url.strip())
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
             if not _is_tracking_param(k)]

    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"

    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc.lower(),
            path,
            urlencode(query, doseq=True),
            "",
        )
    )


def natural_key(candidate: RawCandidate) -> str:
    """Human-readable natural key, used in logs and in-run bookkeeping."""
    if candidate.kind == "social":
        platform = candidate.platform.value if candidate.platform else "other"
        return f"{platform}:{candidate.post_id}"
    return canonical_url(candidate.url)


class Deduplicator:
    """
    Decides whether a candidate is already stored.

    Args:
        items: Repository for feed items
        social_posts: Repository for social posts
    """

    def __init__(self, items: ItemRepository, social_posts: SocialPostRepository) -> None:
        self._items = items
        self._social = social_posts

    async def is_duplicate(self, candidate: RawCandidate) -> bool:
        """Point lookup by canonical URL (feed) or (platform, post_id) (social)."""
        if candidate.kind == "social":
            platform = candidate.platform.value if candidate.platform else "other"
            return await self._social.exists(platform, candidate.post_id or "")
        return await self._items.exists_by_url(canonical_url(candidate.url))
