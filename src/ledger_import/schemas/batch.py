"""
Import batch records exchanged with the ledger's staging API.

Wire format (camelCase, as served by the ledger):
- stage:   {batchId, inserted, duplicates}
- preview: {batchId, items: [{rowId, sourceUid, date, description, amount,
            suggested: {debitAccountId, creditAccountId}, error}]}
- commit:  {batchId, posted, skipped}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .transactions import parse_amount


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


@dataclass
class StagedRow:
    """
    A row provisionally inserted into a batch.

    Everything except the two ``proposed_*`` fields is fixed once staged; the
    mapping stage overwrites the proposals.
    """

    row_id: int
    source_uid: str
    date: str  # YYYY-MM-DD as returned by the ledger
    description: str
    amount: Decimal
    suggested_debit_account_id: int | None = None
    suggested_credit_account_id: int | None = None
    proposed_debit_account_id: int | None = None
    proposed_credit_account_id: int | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> StagedRow:
        suggested = data.get("suggested") or {}
        return cls(
            row_id=int(data["rowId"]),
            source_uid=data.get("sourceUid", ""),
            date=(data.get("date") or "")[:10],
            description=data.get("description") or "",
            amount=parse_amount(data.get("amount")),
            suggested_debit_account_id=_optional_int(suggested.get("debitAccountId")),
            suggested_credit_account_id=_optional_int(suggested.get("creditAccountId")),
            error=data.get("error"),
        )


@dataclass
class ImportBatch:
    """A staged batch: the unit of idempotency and of commit."""

    batch_id: int
    rows: list[StagedRow] = field(default_factory=list)
    inserted_count: int = 0
    duplicate_count: int = 0
    committed: bool = False

    @property
    def rows_with_errors(self) -> list[StagedRow]:
        return [row for row in self.rows if row.error]

    @classmethod
    def from_preview(cls, data: dict) -> ImportBatch:
        return cls(
            batch_id=int(data["batchId"]),
            rows=[StagedRow.from_dict(item) for item in data.get("items", [])],
        )


@dataclass(frozen=True)
class StageResult:
    """Response of the staging endpoint."""

    batch_id: int
    inserted: int
    duplicates: int

    @classmethod
    def from_dict(cls, data: dict) -> StageResult:
        return cls(
            batch_id=int(data["batchId"]),
            inserted=int(data.get("inserted", 0)),
            duplicates=int(data.get("duplicates", 0)),
        )


@dataclass(frozen=True)
class CommitResult:
    """Response of the commit endpoint."""

    batch_id: int
    posted: int
    skipped: int

    @classmethod
    def from_dict(cls, data: dict) -> CommitResult:
        return cls(
            batch_id=int(data["batchId"]),
            posted=int(data.get("posted", 0)),
            skipped=int(data.get("skipped", 0)),
        )
