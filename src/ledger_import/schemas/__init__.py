"""
SSOT (Single Source of Truth) schemas for the pipeline.

These canonical schemas are the ONLY models used across all modules.
"""

from .batch import CommitResult, ImportBatch, StagedRow, StageResult
from .dedupe import (
    HASH_LENGTH,
    SOURCE_UID_SEPARATOR,
    format_amount,
    hash8,
    is_source_uid,
    normalize_description_for_key,
    source_uid,
    source_uid_of,
)
from .transactions import (
    LEDGER_TYPE_FOR_TRANSACTION,
    Account,
    AccountType,
    CandidateTransaction,
    DuplicateMatch,
    ExistingTransaction,
    TransactionType,
    parse_amount,
    parse_date,
    parse_flag,
)

__all__ = [
    # Transactions (canonical input schema)
    "CandidateTransaction",
    "ExistingTransaction",
    "DuplicateMatch",
    "Account",
    "AccountType",
    "TransactionType",
    "LEDGER_TYPE_FOR_TRANSACTION",
    "parse_amount",
    "parse_date",
    "parse_flag",
    # Batches (ledger import API)
    "ImportBatch",
    "StagedRow",
    "StageResult",
    "CommitResult",
    # Idempotency keys
    "source_uid",
    "source_uid_of",
    "hash8",
    "format_amount",
    "normalize_description_for_key",
    "is_source_uid",
    "HASH_LENGTH",
    "SOURCE_UID_SEPARATOR",
]
