"""
Ledger service API client implementation.

Endpoints used by the import pipeline:
- POST  /imports/bank/stage        stage rows into a new batch
- GET   /imports/{batchId}/preview list staged rows with suggestions
- PATCH /imports/rows/{rowId}      override the proposed accounts of a row
- POST  /imports/{batchId}/commit  post the batch as journal entries
- GET   /transactions              recent ledger history (duplicate checks)
- GET   /accounts                  chart of accounts
"""

import json
import logging
from datetime import date
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..schemas.batch import CommitResult, ImportBatch, StageResult
from ..schemas.transactions import Account, ExistingTransaction

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception for ledger client errors."""

    pass


class LedgerAPIError(LedgerError):
    """API returned an error response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        response_body: str | None = None,
        detail: str | None = None,
    ):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        # Server-provided reason ("detail" or "error" of a JSON body)
        self.detail = detail

        super().__init__(f"Ledger API error {status_code}: {detail or message}")


class LedgerConnectionError(LedgerError):
    """Failed to connect to the ledger service."""

    pass


def extract_error_detail(body: str | None) -> str | None:
    """Pull ``detail`` or ``error`` out of a JSON error body.

    Returns None when the body is empty, not JSON, or carries neither key.
    """
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    detail = parsed.get("detail") or parsed.get("error")
    if detail is None:
        return None
    return detail if isinstance(detail, str) else json.dumps(detail)


class LedgerClient:
    """
    Client for the ledger service API.

    Features:
    - Two-phase batch import (stage, preview, patch, commit)
    - Chart of accounts and recent transaction history
    - Automatic retry with backoff for GET requests

    Staging, patching and committing are never retried automatically: a
    repeated commit would post journal entries twice.
    """

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize ledger client.

        Args:
            base_url: Ledger service URL (e.g., "http://localhost:3000")
            token: Bearer token of the logged-in user
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts (GET only)
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_config(cls, config) -> "LedgerClient":
        """Build a client from a ``LedgerConfig``."""
        return cls(
            base_url=config.base_url,
            token=config.token,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        json_data: dict | None = None,
    ) -> requests.Response:
        """Make an API request with error handling."""
        url = f"{self.base_url}{endpoint}"

        logger.debug(f"API Request: {method} {url}")
        if json_data:
            logger.debug(f"Request body: {json.dumps(json_data, indent=2, default=str)}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error to {url}: {e}")
            raise LedgerConnectionError(
                f"Failed to connect to ledger at {self.base_url}: {e}"
            ) from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout for {url}: {e}")
            raise LedgerConnectionError(f"Request to ledger timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise LedgerError(f"Request failed: {e}") from e

        logger.debug(f"Response status: {response.status_code}")

        if not response.ok:
            error_body = response.text
            detail = extract_error_detail(error_body)
            message = response.reason or f"HTTP {response.status_code}"

            logger.error(f"API Error {response.status_code}: {detail or message}")
            logger.debug(f"Full response body: {error_body}")

            raise LedgerAPIError(
                status_code=response.status_code,
                message=message,
                response_body=error_body,
                detail=detail,
            )

        return response

    def test_connection(self) -> bool:
        """Test connection and credentials against the ledger API."""
        try:
            self._request("GET", "/accounts")
            return True
        except LedgerError:
            return False

    # ------------------------------------------------------------------
    # Import batches
    # ------------------------------------------------------------------

    def stage_rows(self, rows: list[dict[str, Any]], source: str = "bank_csv") -> StageResult:
        """
        Stage rows into a new import batch.

        Rows whose ``sourceUid`` already exists on the ledger side are
        skipped there and reported as duplicates.

        Args:
            rows: Dicts with sourceUid, date, description, amount
            source: Import source label

        Returns:
            StageResult with batch id and inserted/duplicate counts
        """
        response = self._request(
            "POST",
            "/imports/bank/stage",
            json_data={"source": source, "rows": rows},
        )
        result = StageResult.from_dict(response.json())
        logger.info(
            f"Staged batch {result.batch_id}: "
            f"{result.inserted} inserted, {result.duplicates} duplicate(s)"
        )
        return result

    def get_preview(self, batch_id: int) -> ImportBatch:
        """Get the staged rows of a batch with the ledger's suggested accounts."""
        response = self._request("GET", f"/imports/{batch_id}/preview")
        return ImportBatch.from_preview(response.json())

    def patch_row(
        self,
        row_id: int,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
    ) -> None:
        """
        Override the proposed debit/credit accounts of a staged row.

        Only the given sides are sent.

        Raises:
            ValueError: If neither side is given
        """
        body: dict[str, int] = {}
        if debit_account_id is not None:
            body["proposed_debit_account_id"] = debit_account_id
        if credit_account_id is not None:
            body["proposed_credit_account_id"] = credit_account_id
        if not body:
            raise ValueError(f"Nothing to patch for row {row_id}")

        self._request("PATCH", f"/imports/rows/{row_id}", json_data=body)
        logger.debug(f"Patched row {row_id}: {body}")

    def commit_batch(self, batch_id: int) -> CommitResult:
        """Commit a staged batch; rows become posted journal entries."""
        response = self._request("POST", f"/imports/{batch_id}/commit")
        result = CommitResult.from_dict(response.json())
        logger.info(
            f"Committed batch {result.batch_id}: "
            f"{result.posted} posted, {result.skipped} skipped"
        )
        return result

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def list_recent_transactions(self, since: date, limit: int = 500) -> list[ExistingTransaction]:
        """
        List posted ledger transactions on or after a date.

        Records without a usable id, date or amount are skipped.

        Args:
            since: Earliest transaction date
            limit: Maximum number of transactions

        Returns:
            List of ExistingTransaction objects
        """
        response = self._request(
            "GET",
            "/transactions",
            params={"since": since.isoformat(), "limit": limit},
        )
        data = response.json()
        if not isinstance(data, list):
            logger.warning("Unexpected /transactions payload, expected a list")
            return []

        transactions = []
        for item in data:
            try:
                transactions.append(ExistingTransaction.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping unusable ledger transaction {item!r}: {e}")
        return transactions

    def list_accounts(self) -> list[Account]:
        """List the chart of accounts."""
        response = self._request("GET", "/accounts")
        data = response.json()
        if not isinstance(data, list):
            logger.warning("Unexpected /accounts payload, expected a list")
            return []

        accounts = []
        for item in data:
            try:
                accounts.append(Account.from_dict(item))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping account with unknown shape {item!r}: {e}")
        return accounts
