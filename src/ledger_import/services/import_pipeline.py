"""Import pipeline: stage, preview, map, post.

Takes the user's selected candidate transactions through the ledger's
two-phase import:

1. STAGING  - rows are staged into a batch; the ledger skips rows whose
              source uid it already knows
2. PREVIEW  - the staged rows are read back with their row ids
3. MAPPING  - each row gets debit/credit accounts from the chosen account and
              the cash-or-bank counter-account
4. POSTING  - the batch is committed (terminal)

Key invariants:
- Stages run strictly in order; a failed stage stops the run
- Nothing is retried by the pipeline
- Zero amounts are rejected before any network call
- At most one run per pipeline instance is in flight
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Sequence

from ledger_import.ledger_client.client import LedgerAPIError, extract_error_detail
from ledger_import.schemas.dedupe import source_uid_of
from ledger_import.schemas.transactions import AccountType, TransactionType
from ledger_import.services.progress import (
    PipelineRunState,
    PipelineStage,
    ProgressEvent,
    StageStatus,
    notify,
)

if TYPE_CHECKING:
    from ledger_import.ledger_client import LedgerClient
    from ledger_import.schemas.batch import ImportBatch, StagedRow
    from ledger_import.schemas.transactions import Account, CandidateTransaction
    from ledger_import.services.progress import ProgressObserver

logger = logging.getLogger(__name__)

ZERO_AMOUNT_MESSAGE = (
    "Import failed: zero amounts detected. One or more selected transactions "
    "have an amount of 0. Edit the amount or exclude the row and try again."
)

# Database check-constraint failures caused by zero-amount journal lines
_ZERO_AMOUNT_ERROR_RE = re.compile(
    r"23514|check constraint|journal_lines_check1|(?<![\d.])0\.00\b", re.IGNORECASE
)

_BANK_NAME_RE = re.compile(r"bank|cheque|current")
_CASH_NAME_RE = re.compile(r"cash")

DEFAULT_DESCRIPTION = "Imported"


class ImportPipelineError(Exception):
    """Base exception for import pipeline errors."""

    pass


class ZeroAmountError(ImportPipelineError):
    """Selected candidates have an amount of zero; nothing was sent."""

    def __init__(self, candidates: Sequence[CandidateTransaction]):
        self.candidates = list(candidates)
        count = len(self.candidates)
        super().__init__(
            f"{count} selected row{'s' if count != 1 else ''} "
            f"{'have' if count != 1 else 'has'} an amount of 0. "
            "Update the amount or exclude the row from the import."
        )


class ImportState(str, Enum):
    """Possible states for an import run."""

    STAGING = "STAGING"
    PREVIEW = "PREVIEW"
    MAPPING = "MAPPING"
    POSTING = "POSTING"
    DONE = "DONE"
    FAILED = "FAILED"


_STATE_FOR_STAGE = {
    PipelineStage.STAGING: ImportState.STAGING,
    PipelineStage.PREVIEW: ImportState.PREVIEW,
    PipelineStage.MAPPING: ImportState.MAPPING,
    PipelineStage.POSTING: ImportState.POSTING,
}


@dataclass
class ImportResult:
    """Result of an import run."""

    state: ImportState
    selected: int = 0
    batch_id: int | None = None
    inserted: int = 0
    duplicates: int = 0
    patched: int = 0
    unmapped: int = 0
    posted: int = 0
    skipped: int = 0
    failed_stage: PipelineStage | None = None
    error_message: str | None = None
    raw_error: str | None = None
    duration_ms: int = 0
    batch: ImportBatch | None = None
    progress: PipelineRunState = field(default_factory=PipelineRunState)

    @property
    def success(self) -> bool:
        """Return True if the batch was posted (or there was nothing to post)."""
        return self.state == ImportState.DONE

    @property
    def row_errors(self) -> list[StagedRow]:
        """Previewed rows the ledger reported a validation error for."""
        return self.batch.rows_with_errors if self.batch else []

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "selected": self.selected,
            "batch_id": self.batch_id,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "patched": self.patched,
            "unmapped": self.unmapped,
            "posted": self.posted,
            "skipped": self.skipped,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
            "row_errors": [
                {"row_id": row.row_id, "source_uid": row.source_uid, "error": row.error}
                for row in self.row_errors
            ],
            "progress": self.progress.to_dict(),
        }


def raw_error_text(error: BaseException | str) -> str:
    """Extract the most specific error text available.

    API errors yield the ``detail``/``error`` field of their JSON body, or the
    body itself. Plain strings get the same JSON treatment.
    """
    if isinstance(error, str):
        body = error
    elif isinstance(error, LedgerAPIError):
        if error.detail:
            return error.detail
        body = error.response_body or str(error)
    else:
        body = str(error)
    return extract_error_detail(body) or body


def classify_error(error: BaseException | str) -> str:
    """Turn a stage failure into a user-facing message.

    Zero-amount constraint violations get actionable guidance; everything
    else passes through verbatim.
    """
    raw = raw_error_text(error)
    if _ZERO_AMOUNT_ERROR_RE.search(raw):
        return ZERO_AMOUNT_MESSAGE
    return raw or repr(error)


def select_candidates(
    candidates: Sequence[CandidateTransaction],
) -> list[CandidateTransaction]:
    """Candidates not explicitly excluded from the import."""
    return [c for c in candidates if c.is_selected]


def resolve_account_id(value: Any) -> int | None:
    """Ledger account id as a positive integer, or None if unresolvable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = str(value).strip()
    if text.isdigit() and int(text) > 0:
        return int(text)
    return None


def pick_cash_or_bank_account(accounts: Sequence[Account], force_cash: bool = False) -> int | None:
    """Pick the counter-account for every journal entry of a run.

    Bank is the first asset named like bank/cheque/current, cash the first
    asset named like cash. ``force_cash`` prefers cash; either way the other
    kind is the fallback.
    """
    assets = [a for a in accounts if a.type == AccountType.ASSET]
    bank = next((a for a in assets if _BANK_NAME_RE.search(a.lower_name)), None)
    cash = next((a for a in assets if _CASH_NAME_RE.search(a.lower_name)), None)

    preferred, other = (cash, bank) if force_cash else (bank, cash)
    account = preferred or other
    return resolve_account_id(account.id) if account else None


def account_legs(
    transaction_type: TransactionType,
    chosen_account_id: int,
    cash_or_bank_id: int | None,
) -> tuple[int | None, int | None]:
    """Return (debit, credit) account ids for a transaction type.

    - income:  debit cash/bank, credit chosen
    - expense: debit chosen,    credit cash/bank
    - debt:    debit cash/bank, credit chosen
    """
    if transaction_type == TransactionType.EXPENSE:
        return chosen_account_id, cash_or_bank_id
    return cash_or_bank_id, chosen_account_id


def build_stage_rows(candidates: Sequence[CandidateTransaction]) -> list[dict[str, Any]]:
    """Staging payload rows; candidates sharing a source uid are sent once."""
    rows: list[dict[str, Any]] = []
    seen: set[str] = set()
    for candidate in candidates:
        uid = source_uid_of(candidate)
        if uid in seen:
            logger.debug("Skipping repeated source uid %s", uid)
            continue
        seen.add(uid)
        rows.append(
            {
                "sourceUid": uid,
                "date": candidate.date.isoformat(),
                "description": candidate.description or DEFAULT_DESCRIPTION,
                "amount": float(candidate.amount),
            }
        )
    return rows


class ImportPipeline:
    """Drives selected candidates through stage, preview, map and post.

    Usage:
        pipeline = ImportPipeline(client, accounts, observer=observer)
        result = pipeline.run(candidates)

    ``run`` returns None when another run on the same pipeline is still in
    flight. Stage failures never raise; they are recorded on the result.
    """

    def __init__(
        self,
        client: LedgerClient,
        accounts: Sequence[Account],
        observer: ProgressObserver | None = None,
        force_cash: bool = False,
        source_label: str = "bank_csv",
    ) -> None:
        self.client = client
        self.accounts = list(accounts)
        self.observer = observer
        self.force_cash = force_cash
        self.source_label = source_label
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def run(self, candidates: Sequence[CandidateTransaction]) -> ImportResult | None:
        """Run the import for all selected candidates.

        Raises:
            ZeroAmountError: If a selected candidate has a zero amount.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Import already in progress; ignoring new request")
            return None
        try:
            return self._run(candidates)
        finally:
            self._lock.release()

    def _publish(self, result: ImportResult, stage: PipelineStage, status: StageStatus) -> None:
        event = ProgressEvent(stage=stage, status=status)
        result.progress.apply(event)
        notify(self.observer, event)

    def _enter(self, result: ImportResult, stage: PipelineStage) -> PipelineStage:
        result.state = _STATE_FOR_STAGE[stage]
        logger.info("Import - %s", stage.value)
        self._publish(result, stage, StageStatus.RUNNING)
        return stage

    def _run(self, candidates: Sequence[CandidateTransaction]) -> ImportResult:
        selected = select_candidates(candidates)

        if not selected:
            logger.info("Nothing selected to import")
            result = ImportResult(state=ImportState.DONE)
            for stage in PipelineStage:
                self._publish(result, stage, StageStatus.DONE)
            return result

        zero_rows = [c for c in selected if c.amount == 0]
        if zero_rows:
            raise ZeroAmountError(zero_rows)

        start_time = time.time()
        result = ImportResult(state=ImportState.STAGING, selected=len(selected))
        stage = PipelineStage.STAGING

        try:
            stage = self._enter(result, PipelineStage.STAGING)
            rows = build_stage_rows(selected)
            staged = self.client.stage_rows(rows, source=self.source_label)
            result.batch_id = staged.batch_id
            result.inserted = staged.inserted
            result.duplicates = staged.duplicates
            self._publish(result, stage, StageStatus.DONE)

            stage = self._enter(result, PipelineStage.PREVIEW)
            batch = self.client.get_preview(staged.batch_id)
            batch.inserted_count = staged.inserted
            batch.duplicate_count = staged.duplicates
            result.batch = batch
            if batch.rows_with_errors:
                logger.warning(
                    "Preview of batch %s reported %d row error(s)",
                    staged.batch_id,
                    len(batch.rows_with_errors),
                )
            self._publish(result, stage, StageStatus.DONE)

            stage = self._enter(result, PipelineStage.MAPPING)
            self._apply_mapping(batch, selected, result)
            self._publish(result, stage, StageStatus.DONE)

            stage = self._enter(result, PipelineStage.POSTING)
            committed = self.client.commit_batch(staged.batch_id)
            result.posted = committed.posted
            result.skipped = committed.skipped
            batch.committed = True
            self._publish(result, stage, StageStatus.DONE)

            result.state = ImportState.DONE
            logger.info(
                "Import completed: batch %s, %d inserted, %d duplicate(s), "
                "%d mapped, %d posted, %d skipped",
                result.batch_id,
                result.inserted,
                result.duplicates,
                result.patched,
                result.posted,
                result.skipped,
            )

        except Exception as e:
            logger.exception("Import failed at %s stage: %s", stage.value, e)
            self._publish(result, stage, StageStatus.ERROR)
            result.state = ImportState.FAILED
            result.failed_stage = stage
            result.raw_error = raw_error_text(e)
            result.error_message = classify_error(e)

        result.duration_ms = int((time.time() - start_time) * 1000)
        return result

    def _apply_mapping(
        self,
        batch: ImportBatch,
        selected: Sequence[CandidateTransaction],
        result: ImportResult,
    ) -> None:
        """PATCH debit/credit proposals onto every previewed row we can map."""
        cash_or_bank_id = pick_cash_or_bank_account(self.accounts, self.force_cash)
        if cash_or_bank_id is None:
            logger.warning("No bank or cash asset account found; counter-leg left to the ledger")

        by_uid: dict[str, CandidateTransaction] = {}
        for candidate in selected:
            by_uid.setdefault(source_uid_of(candidate), candidate)

        for row in batch.rows:
            candidate = by_uid.get(row.source_uid)
            if candidate is None:
                logger.debug("Row %d (%s) matches no selected candidate", row.row_id, row.source_uid)
                result.unmapped += 1
                continue

            chosen_id = resolve_account_id(candidate.account_id)
            if chosen_id is None:
                logger.debug(
                    "Row %d has no resolvable account (%r), keeping ledger suggestion",
                    row.row_id,
                    candidate.account_id,
                )
                result.unmapped += 1
                continue

            debit_id, credit_id = account_legs(candidate.type, chosen_id, cash_or_bank_id)
            self.client.patch_row(row.row_id, debit_id, credit_id)
            row.proposed_debit_account_id = debit_id
            row.proposed_credit_account_id = credit_id
            result.patched += 1

        logger.info("Applied %d account mapping override(s)", result.patched)
