"""
Test fixtures for ledger import tests.

This module provides:
- A sample chart of accounts as served by the ledger
- Builders for candidate and existing transactions
- Sample candidate files for CLI tests
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

from ledger_import.schemas.transactions import (
    CandidateTransaction,
    ExistingTransaction,
    TransactionType,
)

FIXTURES_DIR = Path(__file__).parent

# Small but realistic chart of accounts, ids as served by the ledger
SAMPLE_ACCOUNTS = [
    {"id": 1, "code": "1000", "name": "Bank Account", "type": "asset"},
    {"id": 2, "code": "1010", "name": "Cash on Hand", "type": "asset"},
    {"id": 3, "code": "4000", "name": "Sales Revenue", "type": "income"},
    {"id": 4, "code": "4100", "name": "Interest Income", "type": "income"},
    {"id": 5, "code": "5000", "name": "Fuel Expense", "type": "expense"},
    {"id": 6, "code": "5100", "name": "Salaries and Wages Expense", "type": "expense"},
    {"id": 7, "code": "5200", "name": "Rent Expense", "type": "expense"},
    {"id": 8, "code": "5900", "name": "General Expense", "type": "expense"},
    {"id": 9, "code": "2100", "name": "Bank Loan Payable", "type": "liability"},
    {"id": 10, "code": "2200", "name": "Car Loans", "type": "liability"},
]


def fixture_path(name: str) -> Path:
    """Path of a fixture file."""
    return FIXTURES_DIR / name


def make_candidate(
    amount: str = "100.00",
    description: str = "till slip groceries",
    tx_date: date = date(2025, 7, 5),
    tx_type: TransactionType = TransactionType.EXPENSE,
    **kwargs,
) -> CandidateTransaction:
    """Build a candidate transaction with sensible defaults."""
    return CandidateTransaction(
        type=tx_type,
        amount=Decimal(amount),
        description=description,
        date=tx_date,
        **kwargs,
    )


def make_existing(
    tx_id: str = "501",
    amount: str = "100.00",
    description: str = "groceries till slip",
    tx_date: date = date(2025, 7, 6),
) -> ExistingTransaction:
    """Build an existing ledger transaction."""
    return ExistingTransaction(
        id=tx_id,
        amount=Decimal(amount),
        date=tx_date,
        description=description,
    )
