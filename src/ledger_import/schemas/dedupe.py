"""
Idempotency key generation (CRITICAL).

This module defines THE deterministic source_uid function used to stage rows.
The ledger rejects a staged row whose source_uid already exists in an open or
committed batch, so this is the ONLY way to generate row keys in the system.

Format: {YYYY-MM-DD}|{amount, 2 decimals}|{hash8(description)}

The key must be:
- Stable: same (date, amount, description) always yields the same key
- Compatible: keys produced by other ledger clients use the same djb2/base-36
  digest, so repeated imports from any client collide as intended
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .transactions import parse_amount, parse_date

if TYPE_CHECKING:
    from .transactions import CandidateTransaction

SOURCE_UID_SEPARATOR = "|"

# Maximum length of the description digest
HASH_LENGTH = 8

DJB2_SEED = 5381

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_WHITESPACE_RE = re.compile(r"\s+")
_UID_RE = re.compile(r"^\d{4}-\d{2}-\d{2}\|-?\d+\.\d{2}\|[0-9a-z]{1,8}$")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def normalize_description_for_key(description: str | None) -> str:
    """Trim, lowercase and collapse whitespace runs to single spaces."""
    if not description:
        return ""
    return _WHITESPACE_RE.sub(" ", description.strip().lower())


def hash8(text: str) -> str:
    """
    32-bit djb2-xor digest of ``text`` rendered in base 36, at most 8 chars.

    Iterates UTF-16 code units so non-BMP characters hash the same way
    JavaScript clients hash them.
    """
    h = DJB2_SEED
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = (((h << 5) + h) ^ unit) & 0xFFFFFFFF
    return _to_base36(h)[:HASH_LENGTH]


def format_amount(amount: Decimal | str | float) -> str:
    """Amount as fixed 2-decimal string, rounding half up."""
    value = parse_amount(amount)
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def source_uid(
    tx_date: date | datetime | str,
    amount: Decimal | str | float,
    description: str | None,
) -> str:
    """
    Generate the idempotency key for one logical transaction.

    Examples:
        >>> source_uid("2025-07-05", "100", "Till slip  groceries")
        '2025-07-05|100.00|...'  # deterministic digest
    """
    day = parse_date(tx_date).isoformat()
    digest = hash8(normalize_description_for_key(description))
    return SOURCE_UID_SEPARATOR.join((day, format_amount(amount), digest))


def source_uid_of(candidate: CandidateTransaction) -> str:
    """source_uid of a candidate transaction."""
    return source_uid(candidate.date, candidate.amount, candidate.description)


def is_source_uid(value: str | None) -> bool:
    """Check whether a string has the shape of a source_uid."""
    if not value:
        return False
    return bool(_UID_RE.match(value))
