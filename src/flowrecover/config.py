"""Configuration for flowrecover.

Configuration is stored at ~/.flowrecover/config.toml and organized into
sections.

Configuration loading priority:
1. Environment variables (highest)
2. Config file (~/.flowrecover/config.toml or $FLOWRECOVER_CONFIG)
3. Defaults (lowest)

Sections:
    [retry]         - Default retry policy
    [auto_recover]  - Automatic recovery gate and manual pause status
    [history]       - Execution history database

Example:
    from flowrecover.config import get_config

    config = get_config()
    print(config.retry.max_retries)
    print(config.auto_recover.min_confidence)
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from .execution.models import ExecutionStatus
from .recovery.policy import (
    DEFAULT_RETRYABLE_ERROR_CODES,
    DEFAULT_STOP_ERROR_CODES,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".flowrecover"
DEFAULT_CONFIG_FILE = "config.toml"

# Singleton instance
_config: RecoveryConfig | None = None


# =============================================================================
# Configuration Sections
# =============================================================================


@dataclass
class RetrySettings:
    """Default retry policy.

    Attributes:
        max_retries: Attempts per node before retries are refused.
        retry_delay_ms: Base backoff delay in milliseconds.
        exponential_backoff: Double the delay on every attempt.
        retryable_error_codes: Error types allowed to retry.
        stop_error_codes: Error types never retried.
    """

    max_retries: int = 3
    retry_delay_ms: int = 1000
    exponential_backoff: bool = True
    retryable_error_codes: list[str] = field(
        default_factory=lambda: sorted(DEFAULT_RETRYABLE_ERROR_CODES)
    )
    stop_error_codes: list[str] = field(default_factory=lambda: sorted(DEFAULT_STOP_ERROR_CODES))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrySettings:
        """Create from dictionary."""
        defaults = cls()
        return cls(
            max_retries=int(data.get("max_retries", defaults.max_retries)),
            retry_delay_ms=int(data.get("retry_delay_ms", defaults.retry_delay_ms)),
            exponential_backoff=bool(data.get("exponential_backoff", defaults.exponential_backoff)),
            retryable_error_codes=list(
                data.get("retryable_error_codes", defaults.retryable_error_codes)
            ),
            stop_error_codes=list(data.get("stop_error_codes", defaults.stop_error_codes)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "max_retries": self.max_retries,
            "retry_delay_ms": self.retry_delay_ms,
            "exponential_backoff": self.exponential_backoff,
            "retryable_error_codes": list(self.retryable_error_codes),
            "stop_error_codes": list(self.stop_error_codes),
        }

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            retry_delay_ms=self.retry_delay_ms,
            exponential_backoff=self.exponential_backoff,
            retryable_error_codes=frozenset(self.retryable_error_codes),
            stop_error_codes=frozenset(self.stop_error_codes),
        )


@dataclass
class AutoRecoverSettings:
    """Automatic recovery settings.

    Attributes:
        enabled: Allow ``auto_recover`` to act at all.
        min_confidence: Analyses below this confidence are never auto-recovered.
        pause_status: Execution status set by a manual strategy
            ("paused", or "cancelled" for stores without a paused state).
    """

    enabled: bool = True
    min_confidence: float = 0.7
    pause_status: str = "paused"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AutoRecoverSettings:
        """Create from dictionary."""
        return cls(
            enabled=bool(data.get("enabled", True)),
            min_confidence=float(data.get("min_confidence", 0.7)),
            pause_status=str(data.get("pause_status", "paused")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "min_confidence": self.min_confidence,
            "pause_status": self.pause_status,
        }

    @property
    def pause_execution_status(self) -> ExecutionStatus:
        return ExecutionStatus(self.pause_status.upper())


@dataclass
class HistorySettings:
    """Execution history database settings.

    Attributes:
        db_path: SQLite file for history entries.
    """

    db_path: str = ".flowrecover/history.db"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistorySettings:
        """Create from dictionary."""
        return cls(db_path=str(data.get("db_path", ".flowrecover/history.db")))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"db_path": self.db_path}


# =============================================================================
# Main Configuration Class
# =============================================================================


@dataclass
class RecoveryConfig:
    """Complete flowrecover configuration."""

    retry: RetrySettings = field(default_factory=RetrySettings)
    auto_recover: AutoRecoverSettings = field(default_factory=AutoRecoverSettings)
    history: HistorySettings = field(default_factory=HistorySettings)
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecoveryConfig:
        """Create from dictionary (parsed TOML)."""
        return cls(
            retry=RetrySettings.from_dict(data.get("retry", {})),
            auto_recover=AutoRecoverSettings.from_dict(data.get("auto_recover", {})),
            history=HistorySettings.from_dict(data.get("history", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for TOML serialization."""
        return {
            "retry": self.retry.to_dict(),
            "auto_recover": self.auto_recover.to_dict(),
            "history": self.history.to_dict(),
        }

    def validate(self) -> list[str]:
        """Return a list of problems with the current values."""
        problems = []
        if self.retry.max_retries < 0:
            problems.append("retry.max_retries must be >= 0")
        if self.retry.retry_delay_ms < 0:
            problems.append("retry.retry_delay_ms must be >= 0")
        if not 0.0 <= self.auto_recover.min_confidence <= 1.0:
            problems.append("auto_recover.min_confidence must be between 0 and 1")
        try:
            self.auto_recover.pause_execution_status
        except ValueError:
            problems.append(f"auto_recover.pause_status is not a valid status: {self.auto_recover.pause_status}")
        return problems

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if value := os.environ.get("FLOWRECOVER_MAX_RETRIES"):
            try:
                self.retry.max_retries = int(value)
            except ValueError:
                logger.warning(f"Ignoring invalid FLOWRECOVER_MAX_RETRIES: {value}")

        if value := os.environ.get("FLOWRECOVER_RETRY_DELAY_MS"):
            try:
                self.retry.retry_delay_ms = int(value)
            except ValueError:
                logger.warning(f"Ignoring invalid FLOWRECOVER_RETRY_DELAY_MS: {value}")

        if value := os.environ.get("FLOWRECOVER_MIN_CONFIDENCE"):
            try:
                self.auto_recover.min_confidence = float(value)
            except ValueError:
                logger.warning(f"Ignoring invalid FLOWRECOVER_MIN_CONFIDENCE: {value}")

        if value := os.environ.get("FLOWRECOVER_DB_PATH"):
            self.history.db_path = value


# =============================================================================
# Configuration Loading/Saving
# =============================================================================


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    if custom_path := os.environ.get("FLOWRECOVER_CONFIG"):
        return Path(custom_path)
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> RecoveryConfig:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        RecoveryConfig with settings from file and environment.
    """
    path = config_path or get_config_path()

    config = RecoveryConfig()

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            config = RecoveryConfig.from_dict(data)

        except Exception as e:
            logger.error(f"Failed to load config from {path}: {e}")
            config = RecoveryConfig()

    config.config_path = path
    config.apply_env_overrides()

    for problem in config.validate():
        logger.warning(f"Invalid configuration: {problem}")

    return config


def save_config(config: RecoveryConfig, config_path: Path | None = None) -> bool:
    """Save configuration to TOML file.

    Args:
        config: RecoveryConfig to save.
        config_path: Path to config file. Uses default if not specified.

    Returns:
        True if saved successfully, False otherwise.
    """
    path = config_path or config.config_path or get_config_path()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            tomli_w.dump(config.to_dict(), f)
        config.config_path = path
        logger.info(f"Saved config to {path}")
        return True
    except Exception as e:
        logger.error(f"Failed to save config: {e}")
        return False


def get_config() -> RecoveryConfig:
    """Get the global configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config
    _config = None
