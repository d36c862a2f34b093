"""Text similarity helpers for duplicate detection.

All functions are pure and work on plain strings and sets.
"""

from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Lowercase, replace everything outside [a-z0-9 whitespace] with a space, collapse."""
    if not text:
        return ""
    lowered = _NON_ALNUM_RE.sub(" ", text.lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def token_set(text: str | None) -> set[str]:
    """Set of non-empty whitespace tokens of the normalized text."""
    return {token for token in normalize_text(text).split(" ") if token}


def jaccard(a: set[str], b: set[str]) -> float:
    """Jaccard similarity |a ∩ b| / |a ∪ b|; two empty sets are identical (1.0)."""
    if not a and not b:
        return 1.0
    union = len(a | b)
    if not union:
        return 0.0
    return len(a & b) / union


def is_substring_match(a: str | None, b: str | None) -> bool:
    """True if either normalized text contains the other."""
    left = normalize_text(a)
    right = normalize_text(b)
    return left in right or right in left
