"""Ledger account suggestion for candidate transactions.

Two strategies share one contract, chosen by where the candidates came from:

- DocumentSuggester: uploaded documents and spreadsheets. Type-gated
  category rules, then fallbacks.
- TextSuggester: typed or voice input. Pinned rules, then per-account
  scoring, then fallbacks.

Suggestions are advisory. A user-chosen ``account_id`` is never replaced.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from ledger_import.schemas.transactions import (
    LEDGER_TYPE_FOR_TRANSACTION,
    Account,
    AccountType,
    CandidateTransaction,
    TransactionType,
)
from ledger_import.suggestion.rules import (
    DOCUMENT_FALLBACKS,
    DOCUMENT_RULES,
    NAME_STOPWORDS,
    TEXT_CONTEXT_BOOSTS,
    TEXT_FALLBACKS,
    TEXT_PINNED_RULES,
    FallbackStep,
    KeywordRule,
)

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100


def clamp_confidence(value: int) -> int:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, int(value)))


class Provenance(str, Enum):
    """Where a batch of candidates came from."""

    DOCUMENT = "document"  # PDF or spreadsheet upload
    TEXT = "text"  # typed or voice input


@dataclass(frozen=True)
class Suggestion:
    """Suggested ledger account with a 0-100 confidence."""

    account_id: str | None
    confidence: int

    @classmethod
    def none(cls) -> Suggestion:
        return cls(account_id=None, confidence=0)

    @classmethod
    def for_account(cls, account: Account, confidence: int) -> Suggestion:
        return cls(account_id=account.id, confidence=clamp_confidence(confidence))


class BaseSuggester(ABC):
    """Common contract and fallback handling for suggestion strategies."""

    provenance: Provenance
    fallbacks: tuple[FallbackStep, ...] = ()

    @abstractmethod
    def _match(
        self,
        transaction_type: TransactionType | None,
        category: str,
        description: str,
        accounts: Sequence[Account],
    ) -> Suggestion | None:
        """Strategy-specific matching on lowercased text; None when nothing fits."""

    def suggest(
        self,
        transaction_type: TransactionType | str | None,
        category: str | None,
        description: str | None,
        accounts: Sequence[Account],
    ) -> Suggestion:
        """Suggest an account for one transaction."""
        if not accounts:
            return Suggestion.none()

        tx_type = _coerce_type(transaction_type)
        lower_category = (category or "").lower()
        lower_description = (description or "").lower()

        suggestion = self._match(tx_type, lower_category, lower_description, accounts)
        if suggestion is not None:
            return suggestion

        for step in self.fallbacks:
            account = step.pick(accounts, tx_type)
            if account is not None:
                logger.debug(
                    "Fallback %s picked %s (%s) for %r",
                    step.kind.value,
                    account.name,
                    account.id,
                    description,
                )
                return Suggestion.for_account(account, step.confidence)

        return Suggestion.none()

    def annotate(
        self,
        candidates: Sequence[CandidateTransaction],
        accounts: Sequence[Account],
    ) -> list[CandidateTransaction]:
        """Return copies carrying suggestions; explicit account choices are kept."""
        annotated: list[CandidateTransaction] = []
        suggested = 0

        for candidate in candidates:
            suggestion = self.suggest(
                candidate.type, candidate.category, candidate.description, accounts
            )
            if suggestion.account_id is not None:
                suggested += 1
            annotated.append(
                replace(
                    candidate,
                    suggested_account_id=suggestion.account_id,
                    confidence=suggestion.confidence,
                    account_id=candidate.account_id or suggestion.account_id,
                )
            )

        logger.info(
            "Suggested accounts for %d/%d candidate(s) (%s)",
            suggested,
            len(candidates),
            self.provenance.value,
        )
        return annotated


def _coerce_type(value: TransactionType | str | None) -> TransactionType | None:
    if value is None or isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().lower())
    except ValueError:
        return None


def _first_firing_rule(
    rules: Sequence[KeywordRule],
    transaction_type: TransactionType | None,
    category: str,
    description: str,
    accounts: Sequence[Account],
) -> Suggestion | None:
    for rule in rules:
        if not rule.applies_to(transaction_type):
            continue
        if not rule.matches(category, description):
            continue
        account = rule.find_target(accounts)
        if account is not None:
            logger.debug("Rule %s matched %s for %r", rule.name, account.name, description)
            return Suggestion.for_account(account, rule.confidence)
    return None


class DocumentSuggester(BaseSuggester):
    """Category-driven suggestions for uploaded statements and spreadsheets."""

    provenance = Provenance.DOCUMENT
    fallbacks = DOCUMENT_FALLBACKS

    def __init__(self, rules: Sequence[KeywordRule] = DOCUMENT_RULES) -> None:
        self.rules = tuple(rules)

    def _match(self, transaction_type, category, description, accounts):
        return _first_firing_rule(self.rules, transaction_type, category, description, accounts)


class TextSuggester(BaseSuggester):
    """Scoring suggestions for free-form typed or spoken transactions.

    After the pinned rules, every account is scored against the description
    and category; the best account wins when it scores above
    ``SCORE_THRESHOLD``. Ties keep the earlier account.
    """

    provenance = Provenance.TEXT
    fallbacks = TEXT_FALLBACKS

    SCORE_THRESHOLD = 60
    FULL_NAME_IN_DESCRIPTION = 100
    FULL_NAME_IN_CATEGORY = 80
    KEYWORD_IN_DESCRIPTION = 10
    KEYWORD_IN_CATEGORY = 8
    TYPE_ALIGNED = 15
    CASH_OR_BANK_ASSET = 5
    MIN_FULL_NAME_LENGTH = 4
    MIN_KEYWORD_LENGTH = 3

    def __init__(self, pinned_rules: Sequence[KeywordRule] = TEXT_PINNED_RULES) -> None:
        self.pinned_rules = tuple(pinned_rules)

    def _match(self, transaction_type, category, description, accounts):
        pinned = _first_firing_rule(
            self.pinned_rules, transaction_type, category, description, accounts
        )
        if pinned is not None:
            return pinned

        best: Account | None = None
        best_score = -1
        for account in accounts:
            score = self.score_account(account, transaction_type, category, description)
            if score > best_score:
                best, best_score = account, score

        if best is not None and best_score > self.SCORE_THRESHOLD:
            return Suggestion.for_account(best, best_score)
        return None

    def score_account(
        self,
        account: Account,
        transaction_type: TransactionType | None,
        category: str,
        description: str,
    ) -> int:
        """Score one account against lowercased category and description."""
        name = account.lower_name
        score = 0

        if len(name) >= self.MIN_FULL_NAME_LENGTH:
            if name in description:
                score += self.FULL_NAME_IN_DESCRIPTION
            if name in category:
                score += self.FULL_NAME_IN_CATEGORY

        for boost in TEXT_CONTEXT_BOOSTS:
            if (
                boost.description_keyword in description
                and boost.account_keyword in name
                and account.type == boost.account_type
            ):
                score += boost.points

        keywords = [
            word
            for word in name.split()
            if len(word) >= self.MIN_KEYWORD_LENGTH and word not in NAME_STOPWORDS
        ]
        for keyword in keywords:
            if keyword in description:
                score += self.KEYWORD_IN_DESCRIPTION
            if keyword in category:
                score += self.KEYWORD_IN_CATEGORY

        if (
            transaction_type is not None
            and LEDGER_TYPE_FOR_TRANSACTION.get(transaction_type) == account.type
        ):
            score += self.TYPE_ALIGNED

        if account.type == AccountType.ASSET and ("bank" in name or "cash" in name):
            score += self.CASH_OR_BANK_ASSET

        return score


_SUGGESTERS: dict[Provenance, type[BaseSuggester]] = {
    Provenance.DOCUMENT: DocumentSuggester,
    Provenance.TEXT: TextSuggester,
}


def get_suggester(provenance: Provenance | str) -> BaseSuggester:
    """Return the suggestion strategy for a provenance.

    Raises:
        ValueError: If the provenance is unknown.
    """
    return _SUGGESTERS[Provenance(provenance)]()
