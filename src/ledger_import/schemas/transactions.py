"""
Canonical transaction records (SSOT).

Candidate transactions come from upstream parsers, existing transactions and
accounts come from the ledger service. Every module in the pipeline uses these
models; nothing else invents a "transaction" shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class TransactionType(str, Enum):
    """Business type of a candidate transaction."""

    INCOME = "income"
    EXPENSE = "expense"
    DEBT = "debt"


class AccountType(str, Enum):
    """Chart-of-accounts type."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


# Ledger account type a transaction type naturally books against
LEDGER_TYPE_FOR_TRANSACTION: dict[TransactionType, AccountType] = {
    TransactionType.INCOME: AccountType.INCOME,
    TransactionType.EXPENSE: AccountType.EXPENSE,
    TransactionType.DEBT: AccountType.LIABILITY,
}


def parse_amount(value: Decimal | str | float | int | None) -> Decimal:
    """
    Parse an amount into a Decimal.

    Strings using a comma as the only decimal separator ("12,50") are accepted.
    Missing values become zero so the zero-amount precheck can report them.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"amount must be numeric, got: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            return Decimal(text)
        except InvalidOperation as e:
            raise ValueError(f"Cannot parse amount from: {value!r}") from e
    raise ValueError(f"amount must be Decimal, str, int or float, got: {type(value)}")


def parse_date(value: date | datetime | str) -> date:
    """Parse a calendar date. Timestamps are cut to their YYYY-MM-DD prefix."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) >= 10:
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"date must be in YYYY-MM-DD format, got: {value!r}")


def parse_flag(value: Any) -> bool | None:
    """
    Parse an optional yes/no flag.

    Accepts booleans, 0/1 and the strings true/false, yes/no, 1/0 in any case.
    None and blank strings mean "not decided".

    Raises:
        ValueError: If the value is not a recognizable flag.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return None
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no"):
            return False
    raise ValueError(f"Cannot parse flag from: {value!r}")


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present key; upstream payloads mix camelCase and snake_case."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts entry (read-only reference data)."""

    id: str
    code: str
    name: str
    type: AccountType

    @property
    def lower_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_dict(cls, data: dict) -> Account:
        return cls(
            id=str(data["id"]),
            code=str(data.get("code") or ""),
            name=str(data.get("name") or ""),
            type=AccountType(str(data.get("type") or "").strip().lower()),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name, "type": self.type.value}


@dataclass(frozen=True)
class ExistingTransaction:
    """Snapshot of a posted ledger transaction used as reconciliation reference."""

    id: str
    amount: Decimal
    date: date
    description: str
    type: str | None = None
    account_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ExistingTransaction:
        return cls(
            id=str(data["id"]),
            amount=parse_amount(data.get("amount")),
            date=parse_date(data["date"]),
            description=data.get("description") or "",
            type=data.get("type"),
            account_id=_optional_id(_pick(data, "account_id", "accountId")),
        )


@dataclass(frozen=True)
class DuplicateMatch:
    """Scored link between a candidate and a suspected prior ledger transaction."""

    existing_id: str
    amount: Decimal
    date: date
    description: str
    score: float  # 0.0 - 1.0

    def to_dict(self) -> dict:
        return {
            "existing_id": self.existing_id,
            "amount": str(self.amount),
            "date": self.date.isoformat(),
            "description": self.description,
            "score": round(self.score, 4),
        }


@dataclass
class CandidateTransaction:
    """
    Unposted transaction awaiting reconciliation.

    Produced by upstream parsing, annotated by the duplicate detector and the
    account suggester, then consumed by the import pipeline.

    ``include_in_import`` is ``None`` until someone decides; ``None`` counts
    as included.
    """

    type: TransactionType
    amount: Decimal
    description: str
    date: date
    category: str = ""

    # Ledger account chosen for the non-cash leg (defaults to the suggestion)
    account_id: str | None = None
    suggested_account_id: str | None = None
    confidence: int = 0  # 0 - 100

    duplicate_flag: bool = False
    duplicate_matches: list[DuplicateMatch] = field(default_factory=list)
    include_in_import: bool | None = None

    @property
    def is_selected(self) -> bool:
        return self.include_in_import is not False

    @classmethod
    def from_dict(cls, data: dict) -> CandidateTransaction:
        """Build a candidate from an upstream parser record."""
        include = parse_flag(_pick(data, "include_in_import", "includeInImport"))
        return cls(
            type=TransactionType(str(data["type"]).strip().lower()),
            amount=parse_amount(data.get("amount")),
            description=data.get("description") or "",
            date=parse_date(data["date"]),
            category=data.get("category") or "",
            account_id=_optional_id(_pick(data, "account_id", "accountId")),
            suggested_account_id=_optional_id(
                _pick(data, "suggested_account_id", "suggestedAccountId")
            ),
            confidence=int(_pick(data, "confidence", "confidenceScore", default=0) or 0),
            include_in_import=include,
        )

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "amount": str(self.amount),
            "description": self.description,
            "date": self.date.isoformat(),
            "category": self.category,
            "account_id": self.account_id,
            "suggested_account_id": self.suggested_account_id,
            "confidence": self.confidence,
            "duplicate_flag": self.duplicate_flag,
            "duplicate_matches": [m.to_dict() for m in self.duplicate_matches],
            "include_in_import": self.is_selected,
        }
