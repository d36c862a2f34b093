"""Candidate preparation before import.

Fetches the ledger reference data a review needs (recent transactions and the
chart of accounts), flags probable duplicates and suggests an account for
every candidate. The result is what a user reviews before running the import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Sequence

from ledger_import.ledger_client.client import LedgerAPIError
from ledger_import.matching.duplicates import DuplicateDetector
from ledger_import.suggestion.suggester import Provenance, get_suggester

if TYPE_CHECKING:
    from ledger_import.config import Config
    from ledger_import.ledger_client import LedgerClient
    from ledger_import.schemas.transactions import (
        Account,
        CandidateTransaction,
        ExistingTransaction,
    )

logger = logging.getLogger(__name__)


@dataclass
class PreparedImport:
    """Annotated candidates plus the reference data they were checked against."""

    candidates: list[CandidateTransaction]
    accounts: list[Account]
    existing: list[ExistingTransaction]
    provenance: Provenance
    history_since: date
    warnings: list[str] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for c in self.candidates if c.duplicate_flag)

    @property
    def unsuggested_count(self) -> int:
        return sum(1 for c in self.candidates if c.suggested_account_id is None)

    def to_dict(self) -> dict:
        return {
            "provenance": self.provenance.value,
            "history_since": self.history_since.isoformat(),
            "existing_checked": len(self.existing),
            "duplicates": self.duplicate_count,
            "warnings": self.warnings,
            "candidates": [c.to_dict() for c in self.candidates],
        }


class ReconciliationService:
    """Prepares candidates for review: duplicate flags and account suggestions.

    Usage:
        service = ReconciliationService(ledger_client, config)
        prepared = service.prepare(candidates, Provenance.DOCUMENT)
    """

    def __init__(self, client: LedgerClient, config: Config) -> None:
        self.client = client
        self.config = config
        self.detector = DuplicateDetector.from_config(config.duplicates)

    def fetch_history(self, today: date | None = None) -> tuple[date, list[ExistingTransaction]]:
        """Fetch ledger transactions from the trailing history window.

        An unauthorized response yields an empty history instead of an error.
        """
        today = today or date.today()
        since = today - timedelta(days=self.config.duplicates.history_days)
        try:
            existing = self.client.list_recent_transactions(
                since, limit=self.config.duplicates.history_limit
            )
        except LedgerAPIError as e:
            if e.status_code != 401:
                raise
            logger.warning("Not authorized to read ledger history; duplicate check skipped")
            return since, []
        logger.info("Loaded %d ledger transaction(s) since %s", len(existing), since)
        return since, existing

    def prepare(
        self,
        candidates: Sequence[CandidateTransaction],
        provenance: Provenance | str,
        today: date | None = None,
    ) -> PreparedImport:
        """Annotate candidates with duplicate flags and suggested accounts.

        Args:
            candidates: Parsed candidate transactions.
            provenance: Where the candidates came from; selects the suggester.
            today: Reference date for the history window (defaults to today).

        Returns:
            PreparedImport with annotated copies of the candidates.
        """
        provenance = Provenance(provenance)
        warnings: list[str] = []

        since, existing = self.fetch_history(today)
        if not existing:
            warnings.append("No ledger history available; duplicate check found nothing")

        accounts = self.client.list_accounts()
        if not accounts:
            warnings.append("Chart of accounts is empty; no accounts suggested")
        logger.info("Loaded %d account(s)", len(accounts))

        annotated = self.detector.detect(candidates, existing)
        annotated = get_suggester(provenance).annotate(annotated, accounts)

        prepared = PreparedImport(
            candidates=annotated,
            accounts=accounts,
            existing=existing,
            provenance=provenance,
            history_since=since,
            warnings=warnings,
        )
        logger.info(
            "Prepared %d candidate(s): %d possible duplicate(s), %d without suggestion",
            len(annotated),
            prepared.duplicate_count,
            prepared.unsuggested_count,
        )
        return prepared
