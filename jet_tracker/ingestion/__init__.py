"""Ingestion: HTTP client, feed and social fetchers, deduplication."""

from jet_tracker.ingestion.schemas import (
    RawCandidate,
    SocialPlatform,
)

__all__ = [
    "RawCandidate",
    "SocialPlatform",
]
