"""Tests for the flowrecover CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from flowrecover import __version__
from flowrecover.cli import main
from flowrecover.config import reset_config
from flowrecover.observability import HistoryDB, LogLevel


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """Point the CLI at an empty config file and history path."""
    monkeypatch.setenv("FLOWRECOVER_CONFIG", str(tmp_path / "config.toml"))
    monkeypatch.setenv("FLOWRECOVER_DB_PATH", str(tmp_path / "history.db"))
    for var in ("FLOWRECOVER_MAX_RETRIES", "FLOWRECOVER_RETRY_DELAY_MS", "FLOWRECOVER_MIN_CONFIDENCE"):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


class TestMain:
    """Tests for the command group."""

    def test_version(self, runner):
        """--version prints the package version."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_without_command(self, runner):
        """No subcommand shows help."""
        result = runner.invoke(main, [])
        assert result.exit_code == 0
        assert "analyze" in result.output


class TestAnalyze:
    """Tests for the analyze command."""

    def test_network_error_json(self, runner):
        """JSON output carries the full analysis."""
        result = runner.invoke(main, ["analyze", "--code", "ECONNREFUSED", "--node-id", "n1", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["error_type"] == "network_error"
        assert data["category"] == "transient"
        assert data["is_retryable"] is True
        assert data["confidence"] == pytest.approx(0.9)
        assert data["suggested_strategy"]["type"] == "retry"
        assert data["suggested_strategy"]["node_id"] == "n1"

    def test_timeout_message_wins(self, runner):
        """A 500 mentioning a timeout is reported as a timeout."""
        result = runner.invoke(
            main, ["analyze", "--status", "500", "--message", "upstream timeout", "--json"]
        )
        data = json.loads(result.output)
        assert data["error_type"] == "timeout"
        assert data["category"] == "timeout"

    def test_human_output(self, runner):
        """Human output lists strategy and recommendations."""
        result = runner.invoke(main, ["analyze", "--status", "401"])

        assert result.exit_code == 0
        assert "authentication_error" in result.output
        assert "configuration" in result.output
        assert "manual" in result.output
        assert "Check node configuration and credentials" in result.output

    def test_uses_configured_policy(self, runner, tmp_path: Path):
        """Retryability follows the configured stop codes."""
        (tmp_path / "config.toml").write_text('[retry]\nstop_error_codes = ["rate_limit"]\n')
        reset_config()

        result = runner.invoke(main, ["analyze", "--status", "429", "--json"])

        assert json.loads(result.output)["is_retryable"] is False


class TestHistory:
    """Tests for the history command."""

    def test_missing_database(self, runner, tmp_path: Path):
        """A missing database is reported, not created."""
        result = runner.invoke(main, ["history", "exec-1"])
        assert result.exit_code == 0
        assert "No history database" in result.output
        assert not (tmp_path / "history.db").exists()

    def test_lists_entries(self, runner, tmp_path: Path):
        """Entries of the execution are listed."""
        db = HistoryDB(tmp_path / "history.db")
        db.log("exec-1", LogLevel.INFO, "Attempting recovery with strategy: retry", node_id="n1")
        db.log("exec-1", LogLevel.WARN, "Max retry attempts (3) reached", node_id="n1")
        db.log("exec-2", LogLevel.INFO, "unrelated")
        db.close()

        result = runner.invoke(main, ["history", "exec-1", "--json"])

        assert result.exit_code == 0
        messages = [entry["message"] for entry in json.loads(result.output)]
        assert messages == [
            "Attempting recovery with strategy: retry",
            "Max retry attempts (3) reached",
        ]

    def test_level_filter_and_table(self, runner, tmp_path: Path):
        """The table view honours the level filter."""
        db = HistoryDB(tmp_path / "other.db")
        db.log("exec-1", LogLevel.INFO, "fine")
        db.log("exec-1", LogLevel.ERROR, "Recovery error: boom")
        db.close()

        result = runner.invoke(
            main, ["history", "exec-1", "--level", "error", "--db", str(tmp_path / "other.db")]
        )

        assert result.exit_code == 0
        assert "Recovery error: boom" in result.output
        assert "fine" not in result.output

    def test_no_entries(self, runner, tmp_path: Path):
        """Executions without entries are reported."""
        HistoryDB(tmp_path / "history.db").close()
        result = runner.invoke(main, ["history", "exec-404"])
        assert "No history entries" in result.output


class TestConfigCommands:
    """Tests for config commands."""

    def test_show_json(self, runner):
        """JSON output includes all sections with env overrides."""
        result = runner.invoke(main, ["config", "show", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert set(data) == {"retry", "auto_recover", "history"}
        assert data["retry"]["max_retries"] == 3
        assert data["history"]["db_path"].endswith("history.db")

    def test_show_section(self, runner):
        """A single section can be shown."""
        result = runner.invoke(main, ["config", "show", "--section", "auto_recover"])
        assert result.exit_code == 0
        assert "[auto_recover]" in result.output
        assert "min_confidence = 0.7" in result.output

    def test_unknown_section(self, runner):
        """Unknown sections are reported."""
        result = runner.invoke(main, ["config", "show", "--section", "nope"])
        assert "Unknown section: nope" in result.output

    def test_path(self, runner, tmp_path: Path):
        """config path shows the selected file."""
        result = runner.invoke(main, ["config", "path"])
        assert "config.toml" in result.output
