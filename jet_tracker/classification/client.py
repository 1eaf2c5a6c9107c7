"""
Sentiment and competitor-tag classification via the text-analysis gateway.

``classify`` never raises for upstream problems. Transport errors, non-2xx
responses, missing tool calls and schema violations all resolve to the
neutral result (sentiment 0, no tags); HTTP 429 and 402 are reported as
distinct outcomes so runs can surface throttling and exhausted credits.
"""

import copy
import logging

import httpx
from pydantic import ValidationError

from jet_tracker.classification.circuit_breaker import CircuitOpenError, GenericCircuitBreaker
from jet_tracker.classification.gateway import ChatGateway
from jet_tracker.classification.schemas import (
    ANALYZE_TEXT_TOOL,
    TRANSLATE_TITLE_TOOL,
    AnalyzeTextArguments,
    ClassificationOutcome,
    ClassificationResult,
    TranslateTitleArguments,
)
from jet_tracker.config.competitors import aliases_for
from jet_tracker.errors import ClassificationError
from jet_tracker.ingestion.http_client import HTTPClientError, QuotaExceededError, RateLimitError
from jet_tracker.ingestion.text import html_to_text

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 6000

SYSTEM_PROMPT = (
    "You analyze news and social media about military fighter aircraft procurement. "
    "Rate the sentiment of the text toward the fighter programs it discusses from -1 "
    "(very negative) to 1 (very positive), list which of the tracked fighter programs "
    "it discusses, and translate the title to English."
)


def filter_tags(returned: list[str], tracked_tags: list[str]) -> list[str]:
    """
    Keep only tracked tags, in the caller's spelling and order.

    A returned tag matches a tracked tag when it equals the tracked name or
    one of its known aliases, case-insensitively.
    """
    wanted = {t.strip().lower() for t in returned if isinstance(t, str)}
    return [
        tracked
        for tracked in tracked_tags
        if wanted & {tracked.lower(), *aliases_for(tracked)}
    ]


def prepare_text(text: str) -> str:
    """Strip markup and cap the length of classifier input."""
    return html_to_text(text)[:MAX_INPUT_CHARS]


class ClassifierClient:
    """
    Classifies item text against a fixed tool-call schema.

    Args:
        gateway: Open ChatGateway
        failure_threshold: Consecutive failures before the breaker opens
        recovery_timeout: Seconds before the breaker lets a probe through
    """

    def __init__(
        self,
        gateway: ChatGateway,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
    ) -> None:
        self._gateway = gateway
        self._breaker = GenericCircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            name="classifier",
        )

    async def classify(self, text: str, tracked_tags: list[str]) -> ClassificationResult:
        """
        Classify one text.

        Args:
            text: Title and body (markup allowed)
            tracked_tags: Competitor names of the current run

        Returns:
            ClassificationResult whose tags are a subset of ``tracked_tags``
        """
        tool = copy.deepcopy(ANALYZE_TEXT_TOOL)
        if tracked_tags:
            props = tool["function"]["parameters"]["properties"]
            props["fighter_tags"]["items"]["enum"] = list(tracked_tags)

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    f"Tracked fighter programs: {', '.join(tracked_tags) or 'none'}\n\n"
                    f"{prepare_text(text)}"
                ),
            },
        ]

        try:
            arguments = await self._breaker.call(self._gateway.call_tool, messages, tool)
            parsed = AnalyzeTextArguments.model_validate(arguments)
        except RateLimitError as e:
            logger.warning("Classifier rate limited: %s", e)
            return ClassificationResult.neutral(ClassificationOutcome.RATE_LIMITED)
        except QuotaExceededError as e:
            logger.warning("Classifier quota exhausted: %s", e)
            return ClassificationResult.neutral(ClassificationOutcome.QUOTA_EXCEEDED)
        except CircuitOpenError as e:
            logger.debug("Classifier skipped: %s", e)
            return ClassificationResult.neutral(ClassificationOutcome.FAILED)
        except ValidationError as e:
            logger.warning("Classifier payload rejected: %s", e.errors()[:3])
            return ClassificationResult.neutral(ClassificationOutcome.FAILED)
        except (ClassificationError, HTTPClientError, httpx.HTTPError) as e:
            logger.warning("Classifier call failed: %s", e)
            return ClassificationResult.neutral(ClassificationOutcome.FAILED)

        return ClassificationResult(
            sentiment=parsed.sentiment,
            tags=filter_tags(parsed.fighter_tags, tracked_tags),
            title_en=parsed.title_en.strip() if parsed.title_en else None,
            outcome=ClassificationOutcome.OK,
        )

    async def translate_title(self, title: str) -> str | None:
        """English translation of a headline, or None if the call fails."""
        messages = [
            {"role": "system", "content": "Translate news headlines to English."},
            {"role": "user", "content": html_to_text(title)},
        ]
        try:
            arguments = await self._breaker.call(
                self._gateway.call_tool, messages, TRANSLATE_TITLE_TOOL
            )
            return TranslateTitleArguments.model_validate(arguments).title_en.strip()
        except (
            CircuitOpenError,
            ValidationError,
            ClassificationError,
            HTTPClientError,
            httpx.HTTPError,
        ) as e:
            logger.warning("Title translation failed: %s", e)
            return None
