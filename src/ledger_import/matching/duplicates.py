"""Duplicate detection of candidate transactions against ledger history.

Every candidate is compared with every existing ledger transaction using three
hard gates (amount, date, description). The weighted score only ranks the
matches; it is never a gate on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Sequence

from ledger_import.matching.similarity import is_substring_match, jaccard, token_set
from ledger_import.schemas.transactions import DuplicateMatch

if TYPE_CHECKING:
    from ledger_import.config import DuplicateDetectionConfig
    from ledger_import.schemas.transactions import CandidateTransaction, ExistingTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateCheck:
    """Outcome of comparing one candidate with one existing transaction."""

    amount_match: bool
    date_close: bool
    similar_description: bool
    jaccard: float
    score: float

    @property
    def is_duplicate(self) -> bool:
        """All three gates must hold."""
        return self.amount_match and self.date_close and self.similar_description


class DuplicateDetector:
    """Flags candidates that probably already exist in the ledger.

    Signals and weights:
    - Amount: within ``amount_tolerance`` (0.5)
    - Date: within ``date_tolerance_days`` (0.2)
    - Description: token Jaccard >= threshold, or substring containment (0.3)

    Candidates are only compared against existing transactions, never against
    each other.
    """

    WEIGHT_AMOUNT = 0.5
    WEIGHT_DATE = 0.2
    WEIGHT_DESCRIPTION = 0.3

    def __init__(
        self,
        amount_tolerance: float = 0.01,
        date_tolerance_days: int = 2,
        jaccard_threshold: float = 0.55,
    ) -> None:
        self.amount_tolerance = Decimal(str(amount_tolerance))
        self.date_tolerance_days = date_tolerance_days
        self.jaccard_threshold = jaccard_threshold

    @classmethod
    def from_config(cls, config: DuplicateDetectionConfig) -> DuplicateDetector:
        return cls(
            amount_tolerance=config.amount_tolerance,
            date_tolerance_days=config.date_tolerance_days,
            jaccard_threshold=config.jaccard_threshold,
        )

    def compare(
        self,
        candidate: CandidateTransaction,
        existing: ExistingTransaction,
    ) -> DuplicateCheck:
        """Compare one candidate with one existing transaction."""
        amount_match = abs(candidate.amount - existing.amount) <= self.amount_tolerance
        date_close = abs((candidate.date - existing.date).days) <= self.date_tolerance_days

        similarity = jaccard(token_set(candidate.description), token_set(existing.description))
        similar_description = similarity >= self.jaccard_threshold or is_substring_match(
            candidate.description, existing.description
        )

        score = (
            (self.WEIGHT_AMOUNT if amount_match else 0.0)
            + (self.WEIGHT_DATE if date_close else 0.0)
            + (self.WEIGHT_DESCRIPTION if similar_description else 0.0)
        )

        return DuplicateCheck(
            amount_match=amount_match,
            date_close=date_close,
            similar_description=similar_description,
            jaccard=similarity,
            score=score,
        )

    def find_matches(
        self,
        candidate: CandidateTransaction,
        existing: Sequence[ExistingTransaction],
    ) -> list[DuplicateMatch]:
        """Return duplicate matches for a candidate, highest score first."""
        matches: list[DuplicateMatch] = []

        for tx in existing:
            check = self.compare(candidate, tx)
            if not check.is_duplicate:
                continue
            matches.append(
                DuplicateMatch(
                    existing_id=tx.id,
                    amount=tx.amount,
                    date=tx.date,
                    description=tx.description,
                    score=check.score,
                )
            )

        # Stable sort keeps ledger order among equal scores
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def detect(
        self,
        candidates: Sequence[CandidateTransaction],
        existing: Sequence[ExistingTransaction],
    ) -> list[CandidateTransaction]:
        """Annotate candidates with duplicate flags and ranked matches.

        Returns new candidate objects in the same order. An explicit prior
        ``include_in_import`` choice is preserved; otherwise it becomes True.
        """
        annotated: list[CandidateTransaction] = []
        flagged = 0

        for candidate in candidates:
            matches = self.find_matches(candidate, existing)
            if matches:
                flagged += 1
                logger.debug(
                    "Candidate %s %s %r has %d possible duplicate(s), best score %.2f",
                    candidate.date,
                    candidate.amount,
                    candidate.description,
                    len(matches),
                    matches[0].score,
                )
            annotated.append(
                replace(
                    candidate,
                    duplicate_flag=bool(matches),
                    duplicate_matches=matches,
                    include_in_import=(
                        candidate.include_in_import
                        if candidate.include_in_import is not None
                        else True
                    ),
                )
            )

        logger.info(
            "Duplicate check: %d candidate(s) against %d existing, %d flagged",
            len(candidates),
            len(existing),
            flagged,
        )
        return annotated
