"""Schemas for classifier payloads and results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ClassificationOutcome(str, Enum):
    """How a classification attempt ended."""

    OK = "ok"
    FAILED = "failed"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"


class AnalyzeTextArguments(BaseModel):
    """
    Arguments of the ``analyze_text`` tool call, validated as untrusted input.

    A non-numeric sentiment (booleans and numeric strings included), one
    outside [-1, 1], NaN/inf, or a non-list tag field rejects the whole
    payload.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    sentiment: float = Field(..., ge=-1.0, le=1.0, strict=True)
    fighter_tags: list[str] = Field(default_factory=list)
    title_en: str | None = Field(default=None, max_length=500)


class TranslateTitleArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title_en: str = Field(..., min_length=1, max_length=500)


class ClassificationResult(BaseModel):
    """Normalized classifier output. Defaults are the safe neutral result."""

    sentiment: float = Field(default=0.0, ge=-1.0, le=1.0)
    tags: list[str] = Field(default_factory=list)
    title_en: str | None = None
    outcome: ClassificationOutcome = ClassificationOutcome.OK

    @classmethod
    def neutral(cls, outcome: ClassificationOutcome) -> "ClassificationResult":
        """The fallback result for a failed attempt."""
        return cls(sentiment=0.0, tags=[], title_en=None, outcome=outcome)


ANALYZE_TEXT_TOOL = {
    "type": "function",
    "function": {
        "name": "analyze_text",
        "description": "Return sentiment and the fighter programs discussed in the text.",
        "parameters": {
            "type": "object",
            "properties": {
                "sentiment": {
                    "type": "number",
                    "description": "Overall sentiment from -1 (very negative) to 1 (very positive)",
                },
                "fighter_tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Fighter programs from the tracked list that the text discusses",
                },
                "title_en": {
                    "type": "string",
                    "description": "English translation of the title",
                },
            },
            "required": ["sentiment", "fighter_tags"],
        },
    },
}

TRANSLATE_TITLE_TOOL = {
    "type": "function",
    "function": {
        "name": "translate_title",
        "description": "Translate a news headline to English.",
        "parameters": {
            "type": "object",
            "properties": {"title_en": {"type": "string"}},
            "required": ["title_en"],
        },
    },
}
