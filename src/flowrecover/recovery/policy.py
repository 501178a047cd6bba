"""Retry policy used to decide retryability and backoff timing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

DEFAULT_RETRYABLE_ERROR_CODES = frozenset(
    {
        "network_error",
        "timeout",
        "rate_limit",
        "service_unavailable",
        "temporary_failure",
    }
)

DEFAULT_STOP_ERROR_CODES = frozenset(
    {
        "authentication_error",
        "authorization_error",
        "invalid_configuration",
        "schema_validation_error",
    }
)

# Accepted spellings for override keys coming from wire payloads
_FIELD_ALIASES = {
    "maxRetries": "max_retries",
    "retryDelay": "retry_delay_ms",
    "retryDelayMs": "retry_delay_ms",
    "exponentialBackoff": "exponential_backoff",
    "retryableErrors": "retryable_error_codes",
    "retryableErrorCodes": "retryable_error_codes",
    "stopOnErrors": "stop_error_codes",
    "stopErrorCodes": "stop_error_codes",
}


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration.

    Attributes:
        max_retries: Attempts allowed per retry key before retries are refused.
        retry_delay_ms: Base delay before a retry resumes the execution.
        exponential_backoff: Double the delay on every recorded attempt.
        retryable_error_codes: Error types that may be retried.
        stop_error_codes: Error types that must never be retried. Wins over
            ``retryable_error_codes``.
    """

    max_retries: int = 3
    retry_delay_ms: int = 1000
    exponential_backoff: bool = True
    retryable_error_codes: frozenset[str] = field(default=DEFAULT_RETRYABLE_ERROR_CODES)
    stop_error_codes: frozenset[str] = field(default=DEFAULT_STOP_ERROR_CODES)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must be >= 0, got {self.retry_delay_ms}")
        # Accept any iterable of codes but always store frozensets
        object.__setattr__(self, "retryable_error_codes", frozenset(self.retryable_error_codes))
        object.__setattr__(self, "stop_error_codes", frozenset(self.stop_error_codes))

    def merged(self, override: Mapping[str, Any] | None) -> RetryPolicy:
        """Return a copy with the given fields replaced (shallow merge).

        Args:
            override: Partial policy. Keys may use field names or the
                camelCase names used in wire payloads. ``None`` values are
                ignored.

        Returns:
            A new RetryPolicy.

        Raises:
            ValueError: If a key is not a policy field.
        """
        if not override:
            return self

        valid = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in override.items():
            name = _FIELD_ALIASES.get(key, key)
            if name not in valid:
                raise ValueError(f"Unknown retry policy field: {key}")
            if value is None:
                continue
            if name in ("retryable_error_codes", "stop_error_codes"):
                value = _as_codes(value)
            changes[name] = value

        return replace(self, **changes)

    def delay_for_attempt(self, attempt: int) -> int:
        """Delay in milliseconds before the retry following ``attempt`` recorded attempts."""
        if self.exponential_backoff:
            return self.retry_delay_ms * (2**attempt)
        return self.retry_delay_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_retries": self.max_retries,
            "retry_delay_ms": self.retry_delay_ms,
            "exponential_backoff": self.exponential_backoff,
            "retryable_error_codes": sorted(self.retryable_error_codes),
            "stop_error_codes": sorted(self.stop_error_codes),
        }


def _as_codes(value: Iterable[str] | str) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset({value})
    return frozenset(value)


DEFAULT_RETRY_POLICY = RetryPolicy()
