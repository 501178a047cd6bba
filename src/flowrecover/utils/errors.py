"""Error types and error display utilities for flowrecover.

Provides:
- The exception hierarchy raised inside the recovery engine
- Human-friendly CLI error formatting with suggested fixes
- Hidden stack traces (unless debug mode)
"""

from __future__ import annotations

import os
import sys
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rich.console import Console

# Debug mode enabled by FLOWRECOVER_DEBUG=1 or --debug flag
_debug_mode = os.environ.get("FLOWRECOVER_DEBUG", "0") == "1"


# =============================================================================
# Exceptions
# =============================================================================


class RecoveryError(Exception):
    """Base class for errors raised inside the recovery engine."""


class ExecutionNotFoundError(RecoveryError):
    """The execution store has no record for an execution id."""

    def __init__(self, execution_id: str):
        super().__init__(f"Execution not found: {execution_id}")
        self.execution_id = execution_id


class InvalidStrategyError(RecoveryError):
    """A recovery strategy is unknown or missing required fields."""


class InvalidConfigurationError(RecoveryError):
    """Loaded configuration values cannot build an orchestrator."""

    def __init__(self, problems: list[str]):
        super().__init__("Invalid configuration: " + "; ".join(problems))
        self.problems = problems


# =============================================================================
# CLI error display
# =============================================================================


class ErrorCategory(str, Enum):
    """Categories of errors for consistent formatting."""

    CONFIG = "config"  # Configuration errors
    FILE = "file"  # File not found, permission errors
    NOT_FOUND = "not_found"  # Missing executions
    STRATEGY = "strategy"  # Invalid recovery strategies
    STORAGE = "storage"  # History / checkpoint persistence
    INTERNAL = "internal"  # Internal/unexpected errors


@dataclass
class ErrorInfo:
    """Structured error information for consistent display."""

    message: str
    category: ErrorCategory
    suggestion: str | None = None
    details: str | None = None
    original_error: Exception | None = None


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable debug mode for verbose error output."""
    global _debug_mode
    _debug_mode = enabled


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode


def format_error(error: ErrorInfo, console: Console) -> None:
    """Format and display an error with consistent styling.

    Args:
        error: Structured error information
        console: Rich console for output
    """
    console.print(f"[bold red]Error:[/bold red] {error.message}")

    if error.details:
        if _debug_mode or len(error.details) < 200:
            console.print(f"[dim]{error.details}[/dim]")

    if error.suggestion:
        console.print()
        console.print(f"[yellow]Suggestion:[/yellow] {error.suggestion}")

    if _debug_mode and error.original_error:
        console.print()
        console.print("[dim]Stack trace (debug mode):[/dim]")
        tb_lines = traceback.format_exception(
            type(error.original_error),
            error.original_error,
            error.original_error.__traceback__,
        )
        for line in tb_lines:
            console.print(f"[dim]{line.rstrip()}[/dim]")

    if not _debug_mode and error.original_error:
        console.print()
        console.print("[dim]Set FLOWRECOVER_DEBUG=1 or use --debug for more details[/dim]")


def classify_exception(exception: Exception, context: str = "operation") -> ErrorInfo:
    """Classify an exception into an ErrorInfo.

    Args:
        exception: The exception to classify
        context: Description of what was being done

    Returns:
        ErrorInfo with appropriate categorization
    """
    if isinstance(exception, ExecutionNotFoundError):
        return ErrorInfo(
            message=str(exception),
            category=ErrorCategory.NOT_FOUND,
            suggestion="Check the execution id against the execution store",
            original_error=exception,
        )

    if isinstance(exception, InvalidConfigurationError):
        return ErrorInfo(
            message=str(exception),
            category=ErrorCategory.CONFIG,
            suggestion="Run 'flowrecover config show' and fix the listed values",
            original_error=exception,
        )

    if isinstance(exception, InvalidStrategyError):
        return ErrorInfo(
            message=f"Invalid recovery strategy: {exception}",
            category=ErrorCategory.STRATEGY,
            suggestion="Use one of: retry, skip, restart, manual",
            original_error=exception,
        )

    if isinstance(exception, FileNotFoundError):
        return ErrorInfo(
            message=f"{context.capitalize()} not found: {exception.filename or exception}",
            category=ErrorCategory.FILE,
            suggestion="Check the path and ensure the file exists",
            original_error=exception,
        )

    if isinstance(exception, PermissionError):
        return ErrorInfo(
            message=f"Permission denied: {exception}",
            category=ErrorCategory.FILE,
            suggestion="Check file permissions or run with appropriate access",
            original_error=exception,
        )

    error_str = str(exception).lower()

    if any(word in error_str for word in ["sqlite", "database"]):
        return ErrorInfo(
            message=f"History database error: {exception}",
            category=ErrorCategory.STORAGE,
            suggestion="Check [history] db_path in the configuration",
            original_error=exception,
        )

    if any(word in error_str for word in ["config", "toml"]):
        return ErrorInfo(
            message=f"Configuration error: {exception}",
            category=ErrorCategory.CONFIG,
            suggestion="Run 'flowrecover config show' to view current configuration",
            original_error=exception,
        )

    return ErrorInfo(
        message=f"Internal error: {context}: {exception}",
        category=ErrorCategory.INTERNAL,
        suggestion="This may be a bug. Re-run with --debug and report the trace",
        original_error=exception,
    )


def handle_exception(
    console: Console,
    exception: Exception,
    context: str = "operation",
    exit_code: int = 1,
    exit_on_error: bool = True,
) -> ErrorInfo:
    """Handle an exception and display a formatted error.

    Args:
        console: Rich console for output
        exception: The exception to handle
        context: Description of what was being done
        exit_code: Exit code to use if exit_on_error is True
        exit_on_error: Whether to exit after displaying the error

    Returns:
        ErrorInfo for the error (useful if not exiting)
    """
    error = classify_exception(exception, context)
    format_error(error, console)

    if exit_on_error:
        sys.exit(exit_code)

    return error
