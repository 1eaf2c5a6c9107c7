"""
Outlet registry: registered sources plus AI-assisted outlet discovery.

Discovery fails closed. If the gateway is unreachable, throttled, or
returns anything other than a non-empty JSON array, DiscoveryUnavailable is
raised and nothing is persisted. Individual malformed entries inside a
valid array are dropped.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError

from jet_tracker.classification.gateway import ChatGateway
from jet_tracker.config.competitors import language_for_country
from jet_tracker.errors import ClassificationError, ConfigurationError, DiscoveryUnavailable
from jet_tracker.ingestion.http_client import HTTPClientError, QuotaExceededError, RateLimitError
from jet_tracker.sources.preferences import UserSettings, UserSettingsRepository
from jet_tracker.sources.repository import SourcesRepository
from jet_tracker.sources.schemas import OutletCandidate, Source

logger = logging.getLogger(__name__)

MAX_OUTLETS = 25

_SEED_FILE = Path(__file__).parent / "data" / "seed_sources.json"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

DISCOVERY_PROMPT = """List the 15-25 most relevant media outlets in {country_name} ({country}) \
that cover military aviation, defense procurement and fighter jet acquisitions.

Include mainstream national news, defense-specialized publications, government/official \
sources and international outlets with regular {country_name} coverage. Prefer outlets \
publishing in {language}.

Respond with ONLY a JSON array, no commentary. Each element must be an object:
{{"name": "...", "domain": "example.com", "type": "mainstream|defense|government|international", \
"language": "...", "credibility": 1-10}}"""


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json fence, if present."""
    return _FENCE_RE.sub("", content.strip()).strip()


def parse_outlets(content: str) -> list[OutletCandidate]:
    """
    Parse and validate a discovery response.

    Raises:
        DiscoveryUnavailable: Not JSON, not an array, or no valid entries.
    """
    try:
        data = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise DiscoveryUnavailable(f"Discovery response is not JSON: {e}") from e

    if not isinstance(data, list) or not data:
        raise DiscoveryUnavailable("Discovery response is not a non-empty array")

    outlets: list[OutletCandidate] = []
    seen: set[str] = set()
    for entry in data:
        try:
            outlet = OutletCandidate.model_validate(entry)
        except ValidationError:
            logger.debug("Dropping invalid outlet entry: %r", entry)
            continue
        if outlet.domain in seen:
            continue
        seen.add(outlet.domain)
        outlets.append(outlet)

    if not outlets:
        raise DiscoveryUnavailable("Discovery response contained no valid outlets")
    return outlets[:MAX_OUTLETS]


def outlet_to_source(outlet: OutletCandidate, country: str) -> Source:
    """Registry source for a discovered outlet."""
    return Source(
        name=outlet.name,
        url=f"https://{outlet.domain}",
        type=outlet.source_type,
        country=country,
        credibility_tier=outlet.credibility_tier,
    )


class OutletRegistry:
    """
    Registered sources, discovery and per-user outlet preferences.

    Args:
        sources: Sources repository
        preferences: User settings repository
        gateway: Open ChatGateway, required only for discovery
    """

    def __init__(
        self,
        sources: SourcesRepository,
        preferences: UserSettingsRepository,
        gateway: ChatGateway | None = None,
    ) -> None:
        self._sources = sources
        self._preferences = preferences
        self._gateway = gateway

    @property
    def repository(self) -> SourcesRepository:
        return self._sources

    async def resolve_enabled_sources(self, country: str | None = None) -> list[Source]:
        """Enabled sources by descending credibility tier, then id."""
        return await self._sources.get_enabled(country)

    async def discover_outlets(self, country: str, country_name: str) -> list[OutletCandidate]:
        """
        Ask the discovery collaborator for candidate outlets.

        Raises:
            ConfigurationError: No gateway configured.
            DiscoveryUnavailable: Gateway failure or malformed response.
        """
        if self._gateway is None:
            raise ConfigurationError("Outlet discovery requires CLASSIFIER_API_KEY")

        prompt = DISCOVERY_PROMPT.format(
            country=country,
            country_name=country_name,
            language=language_for_country(country),
        )
        messages = [
            {"role": "system", "content": "You are a media research assistant. Reply with JSON only."},
            {"role": "user", "content": prompt},
        ]

        try:
            message = await self._gateway.chat(messages)
        except RateLimitError as e:
            raise DiscoveryUnavailable("Rate limit exceeded") from e
        except QuotaExceededError as e:
            raise DiscoveryUnavailable("AI credits depleted") from e
        except (HTTPClientError, httpx.HTTPError, ClassificationError) as e:
            raise DiscoveryUnavailable(f"Discovery gateway failed: {e}") from e

        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise DiscoveryUnavailable("Discovery response had no content")

        outlets = parse_outlets(content)
        logger.info("Discovered %d outlets for %s", len(outlets), country)
        return outlets

    async def save_discovered_outlets(
        self,
        user_id: str,
        outlets: list[OutletCandidate],
        country: str,
    ) -> UserSettings:
        """Merge discovered outlets into the user's settings."""
        payload: list[dict[str, Any]] = [o.model_dump() for o in outlets]
        return await self._preferences.merge_prioritized_outlets(user_id, payload, country)

    async def import_outlets(self, outlets: list[OutletCandidate], country: str) -> int:
        """Register discovered outlets as sources. Already registered URLs are not modified."""
        return await self._sources.register_new([outlet_to_source(o, country) for o in outlets])

    async def seed_defaults(self) -> int:
        """Register the bundled outlet list if the table is empty."""
        if await self._sources.count() > 0:
            return 0

        entries = json.loads(_SEED_FILE.read_text(encoding="utf-8"))
        sources = [Source(**entry) for entry in entries]
        count = await self._sources.register_new(sources)
        logger.info("Seeded %d sources from %s", count, _SEED_FILE.name)
        return count
