"""Ledger account suggestion for candidate transactions."""

from ledger_import.suggestion.rules import (
    DOCUMENT_FALLBACKS,
    DOCUMENT_RULES,
    TEXT_FALLBACKS,
    TEXT_PINNED_RULES,
    FallbackKind,
    FallbackStep,
    KeywordRule,
)
from ledger_import.suggestion.suggester import (
    BaseSuggester,
    DocumentSuggester,
    Provenance,
    Suggestion,
    TextSuggester,
    get_suggester,
)

__all__ = [
    "BaseSuggester",
    "DocumentSuggester",
    "TextSuggester",
    "Provenance",
    "Suggestion",
    "get_suggester",
    "KeywordRule",
    "FallbackStep",
    "FallbackKind",
    "DOCUMENT_RULES",
    "DOCUMENT_FALLBACKS",
    "TEXT_PINNED_RULES",
    "TEXT_FALLBACKS",
]
