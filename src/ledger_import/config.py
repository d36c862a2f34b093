"""
Configuration management (SSOT).

This module defines ALL configuration for the ledger import pipeline.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- The ledger base_url is the only network endpoint the pipeline talks to
- Duplicate-detection thresholds live here, never in matching code
- force_cash is a per-run default; callers can still override it per pipeline
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class LedgerConfig:
    """Ledger service configuration."""

    base_url: str
    token: str
    timeout_seconds: int = 30
    # Transport-level retries for idempotent GET requests only
    max_retries: int = 3
    # Label sent as "source" with every staging call
    source_label: str = "bank_csv"


@dataclass
class DuplicateDetectionConfig:
    """Fuzzy duplicate detection settings."""

    # Amounts closer than this are considered equal
    amount_tolerance: float = 0.01
    # Dates within this many days are considered close
    date_tolerance_days: int = 2
    # Minimum token-set Jaccard similarity for similar descriptions
    jaccard_threshold: float = 0.55
    # Trailing window of ledger history fetched for comparison (days)
    history_days: int = 180
    # Maximum number of existing transactions fetched
    history_limit: int = 500


@dataclass
class ImportConfig:
    """Import pipeline settings."""

    # Prefer a cash asset account over a bank account as counter-account
    force_cash: bool = False
    # Capacity of the progress event queue (events beyond it are dropped)
    progress_queue_size: int = 32


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    ledger: LedgerConfig
    duplicates: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.ledger.base_url:
            errors.append("ledger.base_url is required")
        if not self.ledger.token:
            errors.append("ledger.token is required")
        if self.ledger.timeout_seconds <= 0:
            errors.append("ledger.timeout_seconds must be positive")

        if self.duplicates.amount_tolerance < 0:
            errors.append("duplicates.amount_tolerance must be >= 0")
        if self.duplicates.date_tolerance_days < 0:
            errors.append("duplicates.date_tolerance_days must be >= 0")
        if not 0.0 <= self.duplicates.jaccard_threshold <= 1.0:
            errors.append("duplicates.jaccard_threshold must be between 0 and 1")
        if self.duplicates.history_days <= 0:
            errors.append("duplicates.history_days must be positive")

        if self.imports.progress_queue_size <= 0:
            errors.append("imports.progress_queue_size must be positive")

        return errors


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"'{name}' section must be a mapping")
    return value


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - LEDGER_URL
    - LEDGER_TOKEN
    - LEDGER_FORCE_CASH (true/false)
    - LEDGER_HISTORY_DAYS (trailing days of history for duplicate checks)

    Raises:
        ConfigValidationError: If the file or one of its sections is not a mapping
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path}: top level must be a mapping")

    # Ledger config
    ledger_data = _section(data, "ledger")
    ledger = LedgerConfig(
        base_url=os.environ.get(
            "LEDGER_URL", ledger_data.get("base_url", "http://localhost:3000")
        ),
        token=os.environ.get("LEDGER_TOKEN", ledger_data.get("token", "")),
        timeout_seconds=ledger_data.get("timeout_seconds", 30),
        max_retries=ledger_data.get("max_retries", 3),
        source_label=ledger_data.get("source_label", "bank_csv"),
    )

    # Duplicate detection config
    dup_data = _section(data, "duplicates")
    history_days = dup_data.get("history_days", 180)
    history_days_env = os.environ.get("LEDGER_HISTORY_DAYS", "")
    if history_days_env:
        try:
            history_days = int(history_days_env)
        except ValueError:
            pass  # Keep file/default value

    duplicates = DuplicateDetectionConfig(
        amount_tolerance=dup_data.get("amount_tolerance", 0.01),
        date_tolerance_days=dup_data.get("date_tolerance_days", 2),
        jaccard_threshold=dup_data.get("jaccard_threshold", 0.55),
        history_days=history_days,
        history_limit=dup_data.get("history_limit", 500),
    )

    # Import config
    import_data = _section(data, "imports")
    imports = ImportConfig(
        force_cash=_env_bool("LEDGER_FORCE_CASH", import_data.get("force_cash", False)),
        progress_queue_size=import_data.get("progress_queue_size", 32),
    )

    return Config(ledger=ledger, duplicates=duplicates, imports=imports)


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Ledger import pipeline configuration

ledger:
  base_url: "http://localhost:3000"       # Ledger service API URL
  token: "YOUR_LEDGER_TOKEN"
  timeout_seconds: 30
  max_retries: 3                          # Retries apply to GET requests only
  source_label: "bank_csv"                # "source" sent with staging calls

# Fuzzy duplicate detection against ledger history
duplicates:
  amount_tolerance: 0.01                  # Amounts within this are equal
  date_tolerance_days: 2                  # Dates within this are close
  jaccard_threshold: 0.55                 # Description token overlap
  history_days: 180                       # Trailing days of history to compare
  history_limit: 500                      # Max existing transactions fetched

imports:
  force_cash: false                       # Prefer cash over bank counter-account
  progress_queue_size: 32
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
