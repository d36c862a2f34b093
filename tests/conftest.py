"""Test fixtures and utilities."""

from datetime import date

import pytest
from fixtures import SAMPLE_ACCOUNTS, make_candidate

from ledger_import.config import Config, LedgerConfig
from ledger_import.schemas.transactions import (
    Account,
    AccountType,
    CandidateTransaction,
    TransactionType,
)


@pytest.fixture
def config() -> Config:
    """Test configuration."""
    return Config(
        ledger=LedgerConfig(
            base_url="http://ledger.test:3000",
            token="test-token-12345",
        ),
    )


@pytest.fixture
def sample_accounts_payload() -> list[dict]:
    """Raw /accounts response body."""
    return [dict(a) for a in SAMPLE_ACCOUNTS]


@pytest.fixture
def accounts() -> list[Account]:
    """Parsed chart of accounts."""
    return [Account.from_dict(a) for a in SAMPLE_ACCOUNTS]


@pytest.fixture
def asset_only_accounts() -> list[Account]:
    """Chart with only a cheque account and petty cash."""
    return [
        Account(id="11", code="1000", name="Cheque Account", type=AccountType.ASSET),
        Account(id="12", code="1010", name="Petty Cash", type=AccountType.ASSET),
    ]


@pytest.fixture
def candidates() -> list[CandidateTransaction]:
    """One income, one expense and one debt candidate with chosen accounts."""
    return [
        make_candidate(
            "250.00",
            "Customer payment INV-1",
            date(2025, 7, 1),
            TransactionType.INCOME,
            account_id="3",
        ),
        make_candidate(
            "80.50",
            "Shell petrol",
            date(2025, 7, 2),
            TransactionType.EXPENSE,
            account_id="5",
        ),
        make_candidate(
            "1200.00",
            "Car loan instalment",
            date(2025, 7, 3),
            TransactionType.DEBT,
            account_id="10",
        ),
    ]
