"""Text helpers for Hacker News comment bodies."""

import re

TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")

TRUNCATION_MARKER = "..."


def clean_and_limit_text(html: str | None, max_chars: int = 500) -> str:
    """Strip markup from HN text and bound its length.

    Tags are replaced by a space so that ``<p>`` separated paragraphs do not
    run together, whitespace runs collapse to a single space, and the result is
    trimmed.

    Args:
        html: Raw HTML text as returned by the HN API
        max_chars: Maximum characters to keep before the truncation marker

    Returns:
        Plain text, at most ``max_chars`` long plus the truncation marker
    """
    if not html:
        return ""

    text = TAG_PATTERN.sub(" ", html)
    text = WHITESPACE_PATTERN.sub(" ", text).strip()

    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER
