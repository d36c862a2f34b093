"""
Declarative account-suggestion rule tables.

Rules are evaluated top to bottom and the first rule that fires wins. A rule
fires when its category or description keywords match AND an account of the
required type exists whose name contains one of the target keywords.

Keep specific categories above broad ones: "car loans" must precede the
generic "loan" rule, and every confidence stays within 0-100.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ledger_import.schemas.transactions import (
    LEDGER_TYPE_FOR_TRANSACTION,
    Account,
    AccountType,
    TransactionType,
)


def includes_any(text: str, keywords: Sequence[str]) -> bool:
    """Case-sensitive substring test; callers pass lowercased text."""
    return any(keyword in text for keyword in keywords)


def find_account_by_name(
    accounts: Sequence[Account],
    name_keywords: Sequence[str],
    account_type: AccountType | None = None,
) -> Account | None:
    """First account whose lowercased name contains a keyword (and whose type matches)."""
    for account in accounts:
        if account_type is not None and account.type != account_type:
            continue
        if includes_any(account.lower_name, name_keywords):
            return account
    return None


@dataclass(frozen=True)
class KeywordRule:
    """One keyword rule: predicate on the transaction, target in the chart."""

    name: str
    transaction_type: TransactionType | None
    category_keywords: tuple[str, ...]
    description_keywords: tuple[str, ...]
    target_keywords: tuple[str, ...]
    account_type: AccountType
    confidence: int

    def applies_to(self, transaction_type: TransactionType | None) -> bool:
        return self.transaction_type is None or self.transaction_type == transaction_type

    def matches(self, category: str, description: str) -> bool:
        """Keyword condition on lowercased category and description."""
        return includes_any(category, self.category_keywords) or includes_any(
            description, self.description_keywords
        )

    def find_target(self, accounts: Sequence[Account]) -> Account | None:
        return find_account_by_name(accounts, self.target_keywords, self.account_type)


class FallbackKind(str, Enum):
    """How a fallback step picks its account."""

    TRANSACTION_TYPE = "transaction_type"
    NAMED = "named"
    FIRST_ACCOUNT = "first_account"


@dataclass(frozen=True)
class FallbackStep:
    """One step of the fallback chain tried after no rule fired."""

    kind: FallbackKind
    confidence: int
    name_keywords: tuple[str, ...] = ()
    account_type: AccountType | None = None

    def pick(
        self,
        accounts: Sequence[Account],
        transaction_type: TransactionType | None,
    ) -> Account | None:
        if self.kind is FallbackKind.TRANSACTION_TYPE:
            ledger_type = LEDGER_TYPE_FOR_TRANSACTION.get(transaction_type)
            if ledger_type is None:
                return None
            return next((a for a in accounts if a.type == ledger_type), None)
        if self.kind is FallbackKind.NAMED:
            return find_account_by_name(accounts, self.name_keywords, self.account_type)
        return accounts[0] if accounts else None


def _rule(
    name: str,
    transaction_type: TransactionType | None,
    categories: Sequence[str],
    descriptions: Sequence[str],
    targets: Sequence[str],
    account_type: AccountType,
    confidence: int,
) -> KeywordRule:
    return KeywordRule(
        name=name,
        transaction_type=transaction_type,
        category_keywords=tuple(categories),
        description_keywords=tuple(descriptions),
        target_keywords=tuple(targets),
        account_type=account_type,
        confidence=confidence,
    )


_EXP = TransactionType.EXPENSE
_INC = TransactionType.INCOME
_DEBT = TransactionType.DEBT

# ============================================================================
# Document uploads (PDF / spreadsheet): type-gated category rules
# ============================================================================

DOCUMENT_RULES: tuple[KeywordRule, ...] = (
    # --- Expense ---
    _rule("fuel", _EXP, ["fuel"], ["fuel", "petrol"],
          ["fuel expense"], AccountType.EXPENSE, 90),
    _rule("salaries", _EXP, ["salaries and wages"], ["salary", "wages", "payroll"],
          ["salaries and wages expense"], AccountType.EXPENSE, 90),
    _rule("projects", _EXP, ["projects expenses"], ["project", "materials", "contractor"],
          ["projects expenses"], AccountType.EXPENSE, 90),
    _rule("accounting_fees", _EXP, ["accounting fees"], ["accountant", "audit", "tax fee"],
          ["accounting fees expense"], AccountType.EXPENSE, 90),
    _rule("repairs", _EXP, ["repairs & maintenance"],
          ["repair", "maintenance", "fix", "electrician"],
          ["repairs & maintenance expense"], AccountType.EXPENSE, 90),
    _rule("utilities", _EXP, ["water and electricity"],
          ["electricity", "water bill", "utilities"],
          ["water and electricity expense"], AccountType.EXPENSE, 90),
    _rule("bank_charges", _EXP, ["bank charges"], ["bank charge", "service fee", "card fee"],
          ["bank charges & fees"], AccountType.EXPENSE, 90),
    _rule("insurance", _EXP, ["insurance"], ["insurance", "policy"],
          ["insurance expense"], AccountType.EXPENSE, 90),
    _rule("loan_interest", _EXP, ["loan interest"],
          ["loan interest", "interest on debit", "int on debit"],
          ["loan interest expense"], AccountType.EXPENSE, 90),
    _rule("communication", _EXP, ["computer internet and telephone"],
          ["internet", "airtime", "telephone", "wifi", "data"],
          ["communication expense"], AccountType.EXPENSE, 90),
    _rule("hosting", _EXP, ["website hosting fees"], ["website", "hosting", "domain"],
          ["website hosting fees"], AccountType.EXPENSE, 90),
    _rule("miscellaneous", _EXP, ["other expenses"], ["misc", "sundries", "general expense"],
          ["miscellaneous expense"], AccountType.EXPENSE, 85),
    _rule("rent", _EXP, ["rent"], ["rent", "rental"],
          ["rent expense"], AccountType.EXPENSE, 85),
    _rule("cogs", _EXP, ["cost of goods sold", "cogs"],
          ["cost of goods sold", "cogs", "purchases"],
          ["cost of goods sold"], AccountType.EXPENSE, 85),
    # --- Income ---
    _rule("sales", _INC, ["sales", "revenue"], ["sale", "revenue", "customer payment"],
          ["sales revenue"], AccountType.INCOME, 90),
    _rule("interest_income", _INC, ["interest income"],
          ["interest received", "interest income"],
          ["interest income"], AccountType.INCOME, 90),
    _rule("other_income", _INC, ["income", "general income"], ["transfer from", "deposit"],
          ["other income"], AccountType.INCOME, 80),
    # --- Debt ---
    _rule("car_loans", _DEBT, ["car loans", "loan repayment"], ["car loan", "vehicle finance"],
          ["car loans"], AccountType.LIABILITY, 90),
    _rule("loans", _DEBT, ["loan", "debt"], ["loan", "debt", "borrow"],
          ["loan payable", "long-term loan payable", "short-term loan payable"],
          AccountType.LIABILITY, 85),
    _rule("accounts_payable", _DEBT, ["accounts payable"], ["payable", "creditor"],
          ["accounts payable"], AccountType.LIABILITY, 90),
    _rule("credit_facility", _DEBT, ["credit facility"], ["credit facility", "line of credit"],
          ["credit facility payable"], AccountType.LIABILITY, 90),
)

DOCUMENT_FALLBACKS: tuple[FallbackStep, ...] = (
    FallbackStep(FallbackKind.TRANSACTION_TYPE, 60),
    FallbackStep(FallbackKind.NAMED, 30, ("general expense",), AccountType.EXPENSE),
    FallbackStep(FallbackKind.NAMED, 40, ("bank",), AccountType.ASSET),
    FallbackStep(FallbackKind.NAMED, 40, ("cash",), AccountType.ASSET),
    FallbackStep(FallbackKind.FIRST_ACCOUNT, 20),
)

# ============================================================================
# Typed / voice text: pinned high-confidence rules, no type gate
# ============================================================================

TEXT_PINNED_RULES: tuple[KeywordRule, ...] = (
    _rule("fuel", None, ["fuel"], ["fuel", "petrol"],
          ["fuel expense"], AccountType.EXPENSE, 95),
    _rule("salaries", None, ["salaries and wages"], ["salary", "wages", "payroll"],
          ["salaries and wages"], AccountType.EXPENSE, 95),
    _rule("rent", None, ["rent expense"], ["rent", "rental"],
          ["rent expense"], AccountType.EXPENSE, 95),
)

TEXT_FALLBACKS: tuple[FallbackStep, ...] = (
    FallbackStep(FallbackKind.TRANSACTION_TYPE, 40),
    FallbackStep(FallbackKind.NAMED, 30, ("general expense",), AccountType.EXPENSE),
    FallbackStep(FallbackKind.NAMED, 20, ("bank", "cash"), AccountType.ASSET),
    FallbackStep(FallbackKind.FIRST_ACCOUNT, 10),
)


@dataclass(frozen=True)
class ContextBoost:
    """Score boost when the description and an account name both mention a concept."""

    description_keyword: str
    account_keyword: str
    account_type: AccountType
    points: int = 70


TEXT_CONTEXT_BOOSTS: tuple[ContextBoost, ...] = (
    ContextBoost("bank loan", "bank loan payable", AccountType.LIABILITY),
    ContextBoost("revenue", "sales revenue", AccountType.INCOME),
    ContextBoost("rent", "rent expense", AccountType.EXPENSE),
)

# Account-name words that carry no matching signal
NAME_STOPWORDS = frozenset(
    {"and", "of", "for", "the", "a", "an", "expense", "income", "payable", "receivable"}
)
