"""Text helpers shared by the fetchers and the classifier client."""

import hashlib
import html
import re

from bs4 import BeautifulSoup


def clean_text(text: str) -> str:
    """
    Collapse whitespace and drop control characters.

    Args:
        text: Raw text content

    Returns:
        Cleaned text
    """
    text = " ".join(text.split())
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    return text.strip()


def html_to_text(html_content: str) -> str:
    """
    Extract readable text from an HTML fragment.

    Stored bodies keep their markup; this is only applied to text that is
    sent to the classifier.
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, "html.parser")
    for element in soup(["script", "style", "nav", "footer", "header"]):
        element.decompose()

    text = html.unescape(soup.get_text(separator=" "))
    return clean_text(text)


def stable_hash(value: str) -> str:
    """
    Deterministic 16-hex-character SHA256 prefix of a string.

    Used as a fallback post id when a result URL has no usable path segment.
    """
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]
