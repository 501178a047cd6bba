"""flowrecover utility modules."""

from .errors import (
    ErrorCategory,
    ErrorInfo,
    ExecutionNotFoundError,
    InvalidConfigurationError,
    InvalidStrategyError,
    RecoveryError,
    classify_exception,
    format_error,
    handle_exception,
    is_debug_mode,
    set_debug_mode,
)

__all__ = [
    # Exceptions
    "RecoveryError",
    "ExecutionNotFoundError",
    "InvalidStrategyError",
    "InvalidConfigurationError",
    # Error display
    "ErrorCategory",
    "ErrorInfo",
    "format_error",
    "handle_exception",
    "classify_exception",
    "set_debug_mode",
    "is_debug_mode",
]
