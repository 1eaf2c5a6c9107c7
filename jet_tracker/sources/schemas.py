"""Data models for the outlet registry."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


@dataclass
class Source:
    """A registered outlet the pipeline can fetch from.

    ``credibility_tier`` runs from 1 (lowest) to 5 (highest); higher tiers are
    processed first. Sources are never deleted while items reference them,
    only disabled.
    """

    name: str
    url: str
    type: str = "news"
    country: str = "PT"
    credibility_tier: int = 3
    enabled: bool = True
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OutletCandidate(BaseModel):
    """An outlet suggested by discovery, not yet a registered source."""

    name: str = Field(..., min_length=1, max_length=200)
    domain: str = Field(..., min_length=3, max_length=255)
    type: Literal["mainstream", "defense", "government", "international"]
    language: str = Field(..., min_length=2, max_length=50)
    credibility: int = Field(..., ge=1, le=10)

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        """Strip scheme, path and a leading www. from the suggested domain."""
        v = v.strip().lower()
        for prefix in ("https://", "http://"):
            if v.startswith(prefix):
                v = v[len(prefix):]
        v = v.split("/", 1)[0]
        if v.startswith("www."):
            v = v[4:]
        if "." not in v:
            raise ValueError("domain must contain a dot")
        return v

    @property
    def credibility_tier(self) -> int:
        """Map the 1-10 discovery credibility to the registry's 1-5 tier."""
        return max(1, min(5, (self.credibility + 1) // 2))

    @property
    def source_type(self) -> str:
        """Registry source type for this outlet."""
        if self.type in ("defense", "government"):
            return self.type
        return "news"
