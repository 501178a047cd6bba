"""Failure analysis results, confidence scoring and remediation hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .classifier import (
    ClassifiableError,
    ErrorCategory,
    categorize_error,
    classify_error,
    is_network_error,
    is_resource_exhaustion,
    is_retryable,
)
from .strategies import ManualStrategy, RecoveryStrategy, plan_strategy

if TYPE_CHECKING:
    from .checkpoints import RecoveryPointStore
    from .policy import RetryPolicy

# ECONNRESET is a network error but not a hard failure
HARD_FAILURE_CODES = frozenset({"ENOTFOUND", "ECONNREFUSED", "ETIMEDOUT"})
WELL_KNOWN_STATUSES = frozenset({401, 403, 429, 500, 502, 503})

BASE_CONFIDENCE = 0.5
SAFE_DEFAULT_CONFIDENCE = 0.1


@dataclass
class FailureContext:
    """Where and how an execution failed."""

    node_id: str | None = None
    node_name: str | None = None
    error_code: str | None = None
    http_status: int | None = None
    is_network_error: bool = False
    is_resource_exhaustion: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "node_name": self.node_name,
            "error_code": self.error_code,
            "http_status": self.http_status,
            "is_network_error": self.is_network_error,
            "is_resource_exhaustion": self.is_resource_exhaustion,
        }


@dataclass
class FailureAnalysis:
    """Diagnosis of a failed execution and the suggested way out."""

    error_type: str
    category: ErrorCategory
    is_retryable: bool
    confidence: float
    suggested_strategy: RecoveryStrategy
    context: FailureContext = field(default_factory=FailureContext)
    recommendations: list[str] = field(default_factory=list)

    @classmethod
    def safe_default(cls) -> FailureAnalysis:
        """Analysis returned when the analysis itself fails."""
        return cls(
            error_type="unknown",
            category=ErrorCategory.PERMANENT,
            is_retryable=False,
            confidence=SAFE_DEFAULT_CONFIDENCE,
            suggested_strategy=ManualStrategy(),
            recommendations=["Manual investigation required", "Check system logs"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type,
            "category": self.category.value,
            "is_retryable": self.is_retryable,
            "confidence": self.confidence,
            "suggested_strategy": self.suggested_strategy.to_dict(),
            "context": self.context.to_dict(),
            "recommendations": list(self.recommendations),
        }


def score_confidence(error: ClassifiableError, context: FailureContext) -> float:
    """Score how sure we are of the diagnosis.

    Starts from 0.5 and adds 0.3 for a hard-failure socket code, 0.2 for a
    well-known HTTP status and 0.1 when the failed node is known. The sum
    can reach 1.1, so the result is clamped to [0, 1].
    """
    confidence = BASE_CONFIDENCE

    if error.code in HARD_FAILURE_CODES:
        confidence += 0.3
    if error.status in WELL_KNOWN_STATUSES:
        confidence += 0.2
    if context.node_id:
        confidence += 0.1

    return round(min(max(confidence, 0.0), 1.0), 10)


def generate_recommendations(
    error: ClassifiableError,
    context: FailureContext,
    category: ErrorCategory,
) -> list[str]:
    """Build ordered remediation hints.

    Blocks are appended in display-priority order: category advice, then
    network advice, then server-error advice.
    """
    recommendations: list[str] = []

    if category == ErrorCategory.TRANSIENT:
        recommendations.append("Error is likely temporary - retry should resolve it")
        recommendations.append("Monitor for recurring issues")
    elif category == ErrorCategory.CONFIGURATION:
        recommendations.append("Check node configuration and credentials")
        recommendations.append("Verify API endpoints and parameters")
    elif category == ErrorCategory.TIMEOUT:
        recommendations.append("Consider increasing timeout values")
        recommendations.append("Check network connectivity and service availability")

    if context.is_network_error:
        recommendations.append("Verify network connectivity")
        recommendations.append("Check DNS resolution")
        recommendations.append("Verify firewall settings")

    if context.http_status is not None and context.http_status >= 500:
        recommendations.append("External service is experiencing issues")
        recommendations.append("Check service status page")
        recommendations.append("Consider implementing circuit breaker pattern")

    return recommendations or ["Review error details and logs"]


def analyze_error(
    error: Any,
    node_id: str | None = None,
    node_name: str | None = None,
    policy: RetryPolicy | None = None,
    execution_id: str = "",
    points: RecoveryPointStore | None = None,
) -> FailureAnalysis:
    """Run the full analysis pipeline on a single error.

    Args:
        error: Raw error (anything ``ClassifiableError.from_value`` accepts).
        node_id: The failed node, if known.
        node_name: Display name of the failed node.
        policy: Retry policy deciding retryability. Defaults to the default policy.
        execution_id: Execution whose recovery points are consulted.
        points: Recovery point store used for restart targets.

    Returns:
        The FailureAnalysis.
    """
    err = ClassifiableError.from_value(error)

    error_type = classify_error(err)
    category = categorize_error(err, error_type)
    retryable = is_retryable(error_type, policy)

    context = FailureContext(
        node_id=node_id,
        node_name=node_name,
        error_code=err.code,
        http_status=err.status,
        is_network_error=is_network_error(err),
        is_resource_exhaustion=is_resource_exhaustion(err),
    )

    return FailureAnalysis(
        error_type=error_type.value,
        category=category,
        is_retryable=retryable,
        confidence=score_confidence(err, context),
        suggested_strategy=plan_strategy(
            error_type, category, retryable, context, execution_id, points
        ),
        context=context,
        recommendations=generate_recommendations(err, context, category),
    )
