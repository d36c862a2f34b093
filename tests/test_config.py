"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from ledger_import.config import (
    Config,
    ConfigValidationError,
    LedgerConfig,
    create_default_config,
    load_config,
)

ENV_VARS = ("LEDGER_URL", "LEDGER_TOKEN", "LEDGER_FORCE_CASH", "LEDGER_HISTORY_DAYS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Test YAML loading with environment overrides."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test a missing file yields the documented defaults."""
        config = load_config(tmp_path / "missing.yaml")

        assert config.ledger.base_url == "http://localhost:3000"
        assert config.ledger.token == ""
        assert config.ledger.source_label == "bank_csv"
        assert config.duplicates.amount_tolerance == 0.01
        assert config.duplicates.date_tolerance_days == 2
        assert config.duplicates.jaccard_threshold == 0.55
        assert config.duplicates.history_days == 180
        assert config.duplicates.history_limit == 500
        assert config.imports.force_cash is False

    def test_values_from_file(self, tmp_path: Path) -> None:
        """Test values are read from every section."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "ledger:\n"
            "  base_url: https://ledger.example.com\n"
            "  token: abc\n"
            "  max_retries: 1\n"
            "duplicates:\n"
            "  jaccard_threshold: 0.7\n"
            "  history_days: 90\n"
            "imports:\n"
            "  force_cash: true\n"
        )

        config = load_config(path)

        assert config.ledger.base_url == "https://ledger.example.com"
        assert config.ledger.token == "abc"
        assert config.ledger.max_retries == 1
        assert config.duplicates.jaccard_threshold == 0.7
        assert config.duplicates.history_days == 90
        assert config.imports.force_cash is True

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty file is treated like no file."""
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path).ledger.base_url == "http://localhost:3000"

    def test_environment_overrides(self, tmp_path: Path, monkeypatch) -> None:
        """Test environment variables win over file values."""
        path = tmp_path / "config.yaml"
        path.write_text("ledger:\n  token: from-file\nimports:\n  force_cash: true\n")
        monkeypatch.setenv("LEDGER_URL", "http://env-ledger:3000")
        monkeypatch.setenv("LEDGER_TOKEN", "from-env")
        monkeypatch.setenv("LEDGER_FORCE_CASH", "false")
        monkeypatch.setenv("LEDGER_HISTORY_DAYS", "30")

        config = load_config(path)

        assert config.ledger.base_url == "http://env-ledger:3000"
        assert config.ledger.token == "from-env"
        assert config.imports.force_cash is False
        assert config.duplicates.history_days == 30

    def test_invalid_history_days_env_ignored(self, tmp_path: Path, monkeypatch) -> None:
        """Test a non-numeric LEDGER_HISTORY_DAYS keeps the default."""
        monkeypatch.setenv("LEDGER_HISTORY_DAYS", "half a year")

        assert load_config(tmp_path / "missing.yaml").duplicates.history_days == 180

    def test_non_mapping_file_rejected(self, tmp_path: Path) -> None:
        """Test a YAML list at top level is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigValidationError, match="top level"):
            load_config(path)

    def test_non_mapping_section_rejected(self, tmp_path: Path) -> None:
        """Test a scalar section is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("ledger: http://ledger\n")

        with pytest.raises(ConfigValidationError, match="'ledger'"):
            load_config(path)


class TestValidate:
    """Test configuration validation."""

    def test_valid(self) -> None:
        """Test a complete config has no errors."""
        config = Config(ledger=LedgerConfig(base_url="http://ledger", token="t"))

        assert config.validate() == []

    def test_missing_token(self) -> None:
        """Test the token is required."""
        config = Config(ledger=LedgerConfig(base_url="http://ledger", token=""))

        assert config.validate() == ["ledger.token is required"]

    def test_out_of_range_values(self) -> None:
        """Test every out-of-range value is reported."""
        config = Config(ledger=LedgerConfig(base_url="", token="t", timeout_seconds=0))
        config.duplicates.jaccard_threshold = 1.5
        config.duplicates.date_tolerance_days = -1
        config.imports.progress_queue_size = 0

        errors = config.validate()

        assert "ledger.base_url is required" in errors
        assert "ledger.timeout_seconds must be positive" in errors
        assert "duplicates.jaccard_threshold must be between 0 and 1" in errors
        assert "duplicates.date_tolerance_days must be >= 0" in errors
        assert "imports.progress_queue_size must be positive" in errors


class TestDefaultConfig:
    """Test the default config template."""

    def test_create_and_load(self, tmp_path: Path) -> None:
        """Test the written template loads and validates."""
        path = tmp_path / "nested" / "config.yaml"

        create_default_config(path)
        config = load_config(path)

        assert config.ledger.token == "YOUR_LEDGER_TOKEN"
        assert config.duplicates.history_days == 180
        assert config.validate() == []
