"""Failure recovery engine for workflow executions.

This module provides:
- Error classification into error types and categories
- Retry policies with exponential backoff
- Recovery strategies (retry, skip, restart, manual) and a planner
- Recovery points (checkpoints) for running executions
- The orchestrator that analyses failures and carries out strategies
"""

from .analysis import (
    FailureAnalysis,
    FailureContext,
    analyze_error,
    generate_recommendations,
    score_confidence,
)
from .attempts import RetryAttemptTracker
from .checkpoints import RecoveryPoint, RecoveryPointStore, fingerprint
from .classifier import (
    ClassifiableError,
    ErrorCategory,
    ErrorType,
    categorize_error,
    classify_error,
    is_network_error,
    is_resource_exhaustion,
    is_retryable,
)
from .orchestrator import RecoveryOrchestrator
from .policy import DEFAULT_RETRY_POLICY, RetryPolicy
from .strategies import (
    ManualStrategy,
    RecoveryStrategy,
    RecoveryStrategyType,
    RestartStrategy,
    RetryStrategy,
    SkipStrategy,
    plan_strategy,
    strategy_from_dict,
)
from .timer import BackoffTimer

__all__ = [
    # Classifier
    "ClassifiableError",
    "ErrorType",
    "ErrorCategory",
    "classify_error",
    "categorize_error",
    "is_retryable",
    "is_network_error",
    "is_resource_exhaustion",
    # Policy
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    # Strategies
    "RecoveryStrategy",
    "RecoveryStrategyType",
    "RetryStrategy",
    "SkipStrategy",
    "RestartStrategy",
    "ManualStrategy",
    "plan_strategy",
    "strategy_from_dict",
    # Analysis
    "FailureAnalysis",
    "FailureContext",
    "analyze_error",
    "score_confidence",
    "generate_recommendations",
    # Checkpoints
    "RecoveryPoint",
    "RecoveryPointStore",
    "fingerprint",
    # Orchestration
    "RetryAttemptTracker",
    "BackoffTimer",
    "RecoveryOrchestrator",
]
