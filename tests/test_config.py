"""Tests for the configuration system."""

from __future__ import annotations

from pathlib import Path

import pytest

from flowrecover.config import (
    AutoRecoverSettings,
    RecoveryConfig,
    RetrySettings,
    get_config,
    get_config_path,
    load_config,
    reset_config,
    save_config,
)
from flowrecover.execution import ExecutionStatus, MemoryExecutionStore
from flowrecover.observability import MemoryHistoryLog
from flowrecover.recovery import RecoveryOrchestrator
from flowrecover.utils.errors import InvalidConfigurationError, RecoveryError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the caller's environment and cached config."""
    for var in (
        "FLOWRECOVER_CONFIG",
        "FLOWRECOVER_MAX_RETRIES",
        "FLOWRECOVER_RETRY_DELAY_MS",
        "FLOWRECOVER_MIN_CONFIDENCE",
        "FLOWRECOVER_DB_PATH",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        """Defaults match the default retry policy."""
        config = RecoveryConfig()
        assert config.retry.max_retries == 3
        assert config.retry.retry_delay_ms == 1000
        assert config.auto_recover.min_confidence == 0.7
        assert config.auto_recover.pause_execution_status == ExecutionStatus.PAUSED
        assert config.validate() == []

    def test_to_policy(self):
        """Retry settings build a RetryPolicy."""
        policy = RetrySettings(max_retries=5, exponential_backoff=False).to_policy()
        assert policy.max_retries == 5
        assert policy.exponential_backoff is False
        assert "network_error" in policy.retryable_error_codes

    def test_cancelled_pause_status(self):
        """Manual pauses can map to CANCELLED."""
        settings = AutoRecoverSettings(pause_status="cancelled")
        assert settings.pause_execution_status == ExecutionStatus.CANCELLED

    def test_validate_reports_problems(self):
        """Invalid values are reported, not raised."""
        config = RecoveryConfig()
        config.retry.max_retries = -1
        config.auto_recover.min_confidence = 1.5
        config.auto_recover.pause_status = "frozen"

        problems = config.validate()
        assert len(problems) == 3


class TestLoadSave:
    """Tests for TOML loading and saving."""

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        """A missing file yields defaults."""
        config = load_config(tmp_path / "missing.toml")
        assert config.retry.max_retries == 3
        assert config.config_path == tmp_path / "missing.toml"

    def test_load_sections(self, tmp_path: Path):
        """Sections are read from TOML."""
        path = tmp_path / "config.toml"
        path.write_text(
            "[retry]\nmax_retries = 5\nretry_delay_ms = 250\n\n"
            "[auto_recover]\nmin_confidence = 0.9\npause_status = \"cancelled\"\n\n"
            "[history]\ndb_path = \"/tmp/h.db\"\n"
        )

        config = load_config(path)

        assert config.retry.max_retries == 5
        assert config.retry.retry_delay_ms == 250
        assert config.retry.exponential_backoff is True
        assert config.auto_recover.min_confidence == 0.9
        assert config.history.db_path == "/tmp/h.db"

    def test_invalid_toml_falls_back(self, tmp_path: Path):
        """Unparseable files fall back to defaults."""
        path = tmp_path / "config.toml"
        path.write_text("[retry\nmax_retries = ")
        assert load_config(path).retry.max_retries == 3

    def test_save_round_trip(self, tmp_path: Path):
        """Saved configs load back unchanged."""
        config = RecoveryConfig()
        config.retry.max_retries = 7
        config.auto_recover.enabled = False
        path = tmp_path / "sub" / "config.toml"

        assert save_config(config, path) is True
        loaded = load_config(path)

        assert loaded.retry.max_retries == 7
        assert loaded.auto_recover.enabled is False
        assert loaded.to_dict() == config.to_dict()


class TestEnvironment:
    """Tests for environment overrides."""

    def test_overrides(self, tmp_path: Path, monkeypatch):
        """Environment variables win over the file."""
        path = tmp_path / "config.toml"
        path.write_text("[retry]\nmax_retries = 5\n")
        monkeypatch.setenv("FLOWRECOVER_MAX_RETRIES", "2")
        monkeypatch.setenv("FLOWRECOVER_RETRY_DELAY_MS", "10")
        monkeypatch.setenv("FLOWRECOVER_MIN_CONFIDENCE", "0.5")
        monkeypatch.setenv("FLOWRECOVER_DB_PATH", "/var/lib/h.db")

        config = load_config(path)

        assert config.retry.max_retries == 2
        assert config.retry.retry_delay_ms == 10
        assert config.auto_recover.min_confidence == 0.5
        assert config.history.db_path == "/var/lib/h.db"

    def test_invalid_override_ignored(self, tmp_path: Path, monkeypatch):
        """Unparseable numbers are ignored."""
        monkeypatch.setenv("FLOWRECOVER_MAX_RETRIES", "many")
        assert load_config(tmp_path / "none.toml").retry.max_retries == 3

    def test_config_path_env(self, tmp_path: Path, monkeypatch):
        """FLOWRECOVER_CONFIG selects the config file."""
        path = tmp_path / "custom.toml"
        monkeypatch.setenv("FLOWRECOVER_CONFIG", str(path))
        assert get_config_path() == path

    def test_get_config_is_cached(self, tmp_path: Path, monkeypatch):
        """get_config loads once until reset."""
        monkeypatch.setenv("FLOWRECOVER_CONFIG", str(tmp_path / "config.toml"))
        assert get_config() is get_config()


class TestOrchestratorFromConfig:
    """Tests for building an orchestrator from configuration."""

    def test_from_config(self):
        """Configuration flows into the orchestrator."""
        config = RecoveryConfig()
        config.retry.max_retries = 4
        config.auto_recover.min_confidence = 0.8
        config.auto_recover.pause_status = "cancelled"

        orchestrator = RecoveryOrchestrator.from_config(
            config, MemoryExecutionStore(), MemoryHistoryLog()
        )

        assert orchestrator.policy.max_retries == 4
        assert orchestrator.min_confidence == 0.8
        assert orchestrator.pause_status == ExecutionStatus.CANCELLED
        assert orchestrator.auto_recover_enabled is True

    def test_from_config_default_history(self, tmp_path: Path):
        """Without a history log the SQLite history database is used."""
        config = RecoveryConfig()
        config.history.db_path = str(tmp_path / "history.db")

        orchestrator = RecoveryOrchestrator.from_config(config, MemoryExecutionStore())

        assert orchestrator.history.db_path == tmp_path / "history.db"

    @pytest.mark.parametrize(
        "section,key,value,problem",
        [
            ("retry", "max_retries", -1, "retry.max_retries must be >= 0"),
            ("auto_recover", "pause_status", "frozen", "auto_recover.pause_status is not a valid status: frozen"),
        ],
    )
    def test_from_config_rejects_invalid_values(self, section, key, value, problem):
        """Values that fail validation raise a typed configuration error."""
        config = RecoveryConfig()
        setattr(getattr(config, section), key, value)

        with pytest.raises(InvalidConfigurationError) as exc_info:
            RecoveryOrchestrator.from_config(config, MemoryExecutionStore(), MemoryHistoryLog())

        assert exc_info.value.problems == [problem]
        assert isinstance(exc_info.value, RecoveryError)
