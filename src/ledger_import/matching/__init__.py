"""Duplicate detection of candidate transactions against ledger history."""

from ledger_import.matching.duplicates import DuplicateCheck, DuplicateDetector
from ledger_import.matching.similarity import (
    is_substring_match,
    jaccard,
    normalize_text,
    token_set,
)

__all__ = [
    "DuplicateDetector",
    "DuplicateCheck",
    "normalize_text",
    "token_set",
    "jaccard",
    "is_substring_match",
]
