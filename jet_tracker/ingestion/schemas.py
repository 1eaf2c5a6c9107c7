"""
Candidate record schema shared by the feed and social fetchers.

Every fetcher emits RawCandidate instances; the deduplicator and the
orchestrator depend on these field names to choose the natural key
(canonical URL for feed items, platform + post_id for social posts).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class SocialPlatform(str, Enum):
    """Social platforms reachable through site-scoped search."""

    REDDIT = "reddit"
    X = "x"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    OTHER = "other"


class RawCandidate(BaseModel):
    """
    One parsed entry from a feed or a search result, before storage.

    ``published_at_estimated`` is True when the upstream gave no usable date
    and ``published_at`` was stamped with the fetch time instead.
    """

    kind: Literal["feed", "social"] = Field(..., description="Which natural key applies")
    title: str = Field(..., min_length=1, description="Entry title or post headline")
    url: str = Field(..., min_length=1, description="Link as returned upstream")
    body: str = Field(default="", description="Rich content, description, or title")
    published_at: datetime = Field(default_factory=_utc_now)
    published_at_estimated: bool = False
    source_id: int | None = Field(default=None, description="Registry source, if any")

    # Social-only fields
    platform: SocialPlatform | None = None
    post_id: str | None = None
    author_name: str | None = None
    author_username: str | None = None

    @field_validator("title", "url")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("published_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive datetimes as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def text(self) -> str:
        """Text sent to the classifier: title plus body when they differ."""
        if self.body and self.body != self.title:
            return f"{self.title}\n\n{self.body}"
        return self.title
