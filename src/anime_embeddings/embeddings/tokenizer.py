"""
Text Normalization

Turns raw catalog or query text into the token sequence used for term
frequency counting. Never raises: malformed or hostile input yields a
(possibly empty) list.
"""

from __future__ import annotations

import re
from typing import List, Optional

from ..config import settings


STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "is", "was", "are", "been", "be", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might",
    "must", "can", "this", "that", "these", "those", "i", "you", "he", "she",
    "it", "we", "they", "what", "which", "who", "when", "where", "why", "how",
})

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_IFRAME_BLOCK = re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=\"[^\"]*\"", re.IGNORECASE)
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]*>")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def sanitize_html(text: str) -> str:
    """Remove script/iframe blocks, inline handlers and any remaining tags."""
    text = _SCRIPT_BLOCK.sub("", text)
    text = _IFRAME_BLOCK.sub("", text)
    text = _EVENT_HANDLER.sub("", text)
    text = _JS_SCHEME.sub("", text)
    return _ANY_TAG.sub(" ", text)


def tokenize(
    text: Optional[str],
    max_length: Optional[int] = None,
    min_token_length: Optional[int] = None,
    max_token_length: Optional[int] = None,
) -> List[str]:
    """
    Normalize ``text`` into an ordered list of tokens.

    Duplicates are kept so callers can count term frequencies.
    """
    if not text:
        return []

    max_length = max_length if max_length is not None else settings.max_text_length
    min_len = min_token_length if min_token_length is not None else settings.min_token_length
    max_len = max_token_length if max_token_length is not None else settings.max_token_length

    limited = sanitize_html(text)[:max_length]
    normalized = _NON_ALNUM.sub(" ", limited.lower())

    return [
        token
        for token in normalized.split()
        if min_len <= len(token) <= max_len and token not in STOP_WORDS
    ]
