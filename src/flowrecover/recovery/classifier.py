"""Error classification for recovery strategy selection.

Classifies a runtime error into a symbolic error type and a broader
category that drives the recovery strategy:
- transient: network, timeout, rate limit, 5xx errors
- configuration: authentication, authorization, misconfiguration
- timeout: operations that ran out of time
- resource: memory / disk / quota exhaustion
- permanent: everything else

Rules are evaluated in a fixed order and the first match wins. The order
is part of the contract since rules overlap (a 500 response whose message
mentions a timeout is a ``timeout``, not ``service_unavailable``).
"""

from __future__ import annotations

import errno
import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .policy import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Symbolic error types produced by the classifier."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"
    RATE_LIMIT = "rate_limit"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CLIENT_ERROR = "client_error"
    VALIDATION_ERROR = "validation_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN_ERROR = "unknown_error"


class ErrorCategory(str, Enum):
    """Broad failure categories used for strategy planning."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    RESOURCE = "resource"


NETWORK_ERROR_CODES = frozenset({"ENOTFOUND", "ECONNREFUSED"})
NETWORK_FAILURE_CODES = frozenset({"ENOTFOUND", "ECONNREFUSED", "ETIMEDOUT", "ECONNRESET"})

TRANSIENT_ERROR_TYPES = frozenset(
    {
        ErrorType.NETWORK_ERROR.value,
        ErrorType.TIMEOUT.value,
        ErrorType.RATE_LIMIT.value,
        ErrorType.SERVICE_UNAVAILABLE.value,
    }
)
CONFIGURATION_ERROR_TYPES = frozenset(
    {
        ErrorType.AUTHENTICATION_ERROR.value,
        ErrorType.AUTHORIZATION_ERROR.value,
        ErrorType.CONFIGURATION_ERROR.value,
    }
)
RESOURCE_EXHAUSTION_MARKERS = ("memory", "disk space", "quota exceeded")


class ClassifiableError(BaseModel):
    """Normalized view of a runtime error.

    Raw exceptions, HTTP client errors and plain dicts are adapted into this
    shape before classification so that the rules never read attributes
    ad hoc.
    """

    code: str | None = None
    status: int | None = None
    message: str = ""

    @classmethod
    def from_exception(cls, exc: BaseException) -> ClassifiableError:
        """Adapt an exception, reading ``code``/``status`` style attributes."""
        code = getattr(exc, "code", None)
        if code is None and isinstance(exc, OSError) and exc.errno is not None:
            code = errno.errorcode.get(exc.errno)
        if code is None and isinstance(exc, TimeoutError):
            code = "ETIMEDOUT"

        status = getattr(exc, "status", None)
        if status is None:
            status = getattr(exc, "status_code", None)
        if status is None:
            response = getattr(exc, "response", None)
            status = getattr(response, "status_code", None)

        return cls(
            code=code if isinstance(code, str) else None,
            status=_coerce_status(status),
            message=str(exc),
        )

    @classmethod
    def from_value(cls, value: Any) -> ClassifiableError:
        """Adapt any supported error representation.

        Args:
            value: A ClassifiableError, exception, mapping with
                ``code``/``status``/``statusCode``/``message`` keys, or string.

        Returns:
            The normalized error. Unsupported shapes yield an empty error.
        """
        if isinstance(value, ClassifiableError):
            return value
        if isinstance(value, BaseException):
            return cls.from_exception(value)
        if isinstance(value, dict):
            status = value.get("status")
            if status is None:
                status = value.get("status_code", value.get("statusCode"))
            code = value.get("code")
            message = value.get("message")
            return cls(
                code=code if isinstance(code, str) else None,
                status=_coerce_status(status),
                message=message if isinstance(message, str) else "",
            )
        if isinstance(value, str):
            return cls(message=value)
        return cls()


def _type_value(error_type: ErrorType | str) -> str:
    return error_type.value if isinstance(error_type, ErrorType) else str(error_type)


def _coerce_status(status: Any) -> int | None:
    if isinstance(status, bool):
        return None
    if isinstance(status, int):
        return status
    if isinstance(status, str) and status.isdigit():
        return int(status)
    return None


def classify_error(error: Any) -> ErrorType:
    """Map an error to its symbolic error type.

    Never raises: unexpected shapes classify as ``unknown_error``.

    Args:
        error: The error to classify (anything ``ClassifiableError.from_value``
            accepts).

    Returns:
        The first matching ErrorType.
    """
    try:
        err = ClassifiableError.from_value(error)
        message = err.message
        status = err.status

        if err.code in NETWORK_ERROR_CODES:
            return ErrorType.NETWORK_ERROR
        if err.code == "ETIMEDOUT" or "timeout" in message:
            return ErrorType.TIMEOUT
        if status == 401 or "authentication" in message:
            return ErrorType.AUTHENTICATION_ERROR
        if status == 403 or "authorization" in message:
            return ErrorType.AUTHORIZATION_ERROR
        if status == 429:
            return ErrorType.RATE_LIMIT
        if status is not None and status >= 500:
            return ErrorType.SERVICE_UNAVAILABLE
        if status is not None and 400 <= status < 500:
            return ErrorType.CLIENT_ERROR
        if "validation" in message:
            return ErrorType.VALIDATION_ERROR
        if "configuration" in message:
            return ErrorType.CONFIGURATION_ERROR
    except Exception as e:
        logger.debug(f"Could not classify error {error!r}: {e}")

    return ErrorType.UNKNOWN_ERROR


def categorize_error(error: Any, error_type: ErrorType | str) -> ErrorCategory:
    """Place an error type into its broad category.

    ``timeout`` is checked before the transient bucket so that a timeout
    keeps its own category.

    Args:
        error: The original error, used for the resource heuristic.
        error_type: Result of ``classify_error``.

    Returns:
        The ErrorCategory.
    """
    value = _type_value(error_type)
    if value == ErrorType.TIMEOUT.value:
        return ErrorCategory.TIMEOUT
    if value in TRANSIENT_ERROR_TYPES:
        return ErrorCategory.TRANSIENT
    if value in CONFIGURATION_ERROR_TYPES:
        return ErrorCategory.CONFIGURATION
    if is_resource_exhaustion(error):
        return ErrorCategory.RESOURCE
    return ErrorCategory.PERMANENT


def is_retryable(error_type: ErrorType | str, policy: RetryPolicy | None = None) -> bool:
    """Check if an error type may be retried under a policy.

    Stop codes take precedence over retryable codes.
    """
    if policy is None:
        policy = DEFAULT_RETRY_POLICY

    value = _type_value(error_type)
    return value in policy.retryable_error_codes and value not in policy.stop_error_codes


def is_network_error(error: Any) -> bool:
    """Quick check for socket-level failures."""
    try:
        return ClassifiableError.from_value(error).code in NETWORK_FAILURE_CODES
    except Exception:
        return False


def is_resource_exhaustion(error: Any) -> bool:
    """Quick check for memory / disk / quota exhaustion.

    Markers are lowercase and matched case-sensitively.
    """
    try:
        message = ClassifiableError.from_value(error).message
    except Exception:
        return False
    return any(marker in message for marker in RESOURCE_EXHAUSTION_MARKERS)
