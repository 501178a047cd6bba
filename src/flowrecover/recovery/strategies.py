"""Recovery strategies for failed executions.

A strategy is an immutable value describing what the orchestrator should do
with a failed execution:
- RetryStrategy: Re-run after a backoff delay
- SkipStrategy: Mark the failed node as skipped and carry on
- RestartStrategy: Reset failed nodes, optionally from a checkpoint
- ManualStrategy: Pause and wait for an operator
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from ..utils.errors import InvalidStrategyError
from .classifier import ErrorCategory, ErrorType

if TYPE_CHECKING:
    from .analysis import FailureContext
    from .checkpoints import RecoveryPointStore


class RecoveryStrategyType(str, Enum):
    """Types of recovery strategies."""

    RETRY = "retry"  # Retry with backoff
    SKIP = "skip"  # Skip the failed node
    RESTART = "restart"  # Reset failed nodes
    MANUAL = "manual"  # Pause for an operator


@dataclass(frozen=True)
class RecoveryStrategy:
    """Base class for recovery strategies."""

    strategy_type: ClassVar[RecoveryStrategyType]

    @property
    def target_node_id(self) -> str | None:
        return getattr(self, "node_id", None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire form accepted by ``strategy_from_dict``."""
        data: dict[str, Any] = {"type": self.strategy_type.value}
        for name, value in self.__dict__.items():
            if value is not None:
                data[name] = dict(value) if isinstance(value, Mapping) else value
        return data


@dataclass(frozen=True)
class RetryStrategy(RecoveryStrategy):
    """Retry the failed node (or the whole execution) after a backoff delay.

    Best for: Network errors, rate limits, temporary failures.
    """

    strategy_type: ClassVar[RecoveryStrategyType] = RecoveryStrategyType.RETRY

    node_id: str | None = None
    from_checkpoint: str | None = None
    policy_override: Mapping[str, Any] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class SkipStrategy(RecoveryStrategy):
    """Mark the failed node as skipped.

    Best for: Optional nodes whose output downstream nodes can live without.
    """

    strategy_type: ClassVar[RecoveryStrategyType] = RecoveryStrategyType.SKIP

    node_id: str | None = None


@dataclass(frozen=True)
class RestartStrategy(RecoveryStrategy):
    """Reset failed node executions so the engine can run them again.

    Best for: Timeouts where a checkpoint exists.
    """

    strategy_type: ClassVar[RecoveryStrategyType] = RecoveryStrategyType.RESTART

    from_checkpoint: str | None = None


@dataclass(frozen=True)
class ManualStrategy(RecoveryStrategy):
    """Pause the execution until an operator intervenes.

    Best for: Configuration errors, unrecoverable failures.
    """

    strategy_type: ClassVar[RecoveryStrategyType] = RecoveryStrategyType.MANUAL

    node_id: str | None = None
    note: str | None = None
    custom_data: Mapping[str, Any] | None = field(default=None, compare=False)


_STRATEGY_CLASSES: dict[str, type[RecoveryStrategy]] = {
    RecoveryStrategyType.RETRY.value: RetryStrategy,
    RecoveryStrategyType.SKIP.value: SkipStrategy,
    RecoveryStrategyType.RESTART.value: RestartStrategy,
    RecoveryStrategyType.MANUAL.value: ManualStrategy,
}

_KEY_ALIASES = {
    "nodeId": "node_id",
    "fromCheckpoint": "from_checkpoint",
    "retryConfig": "policy_override",
    "retry_config": "policy_override",
    "customData": "custom_data",
}


def strategy_from_dict(data: Mapping[str, Any]) -> RecoveryStrategy:
    """Build a strategy from its wire form.

    Args:
        data: Mapping with a ``type`` key and the variant's fields. camelCase
            keys (``nodeId``, ``fromCheckpoint``, ``retryConfig``,
            ``customData``) are accepted.

    Returns:
        The matching RecoveryStrategy.

    Raises:
        InvalidStrategyError: If the type is unknown or a field does not
            belong to the variant.
    """
    strategy_type = data.get("type")
    cls = _STRATEGY_CLASSES.get(str(strategy_type))
    if cls is None:
        raise InvalidStrategyError(f"Unknown recovery strategy: {strategy_type}")

    kwargs = {_KEY_ALIASES.get(k, k): v for k, v in data.items() if k != "type"}
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise InvalidStrategyError(f"Invalid fields for {strategy_type} strategy: {e}") from e


def plan_strategy(
    error_type: ErrorType | str,
    category: ErrorCategory,
    retryable: bool,
    context: FailureContext,
    execution_id: str,
    points: RecoveryPointStore | None = None,
) -> RecoveryStrategy:
    """Pick a recovery strategy for a classified failure.

    Decision list (first match wins):
    - Transient and retryable → RetryStrategy (rate limits back off longer)
    - Configuration → ManualStrategy
    - Timeout → RestartStrategy from the latest recovery point, else a
      single RetryStrategy
    - Anything else → ManualStrategy

    Args:
        error_type: Classified error type.
        category: Error category.
        retryable: Whether the policy allows retrying this error type.
        context: Failure context (provides the failed node id).
        execution_id: Execution being recovered.
        points: Recovery point store consulted for restart targets.

    Returns:
        The suggested RecoveryStrategy.
    """
    if category == ErrorCategory.TRANSIENT and retryable:
        if error_type == ErrorType.RATE_LIMIT:
            override = {"max_retries": 5, "retry_delay_ms": 5000, "exponential_backoff": True}
        else:
            override = {"max_retries": 3, "retry_delay_ms": 1000, "exponential_backoff": True}
        return RetryStrategy(node_id=context.node_id, policy_override=override)

    if category == ErrorCategory.CONFIGURATION:
        error_value = error_type.value if isinstance(error_type, ErrorType) else error_type
        return ManualStrategy(
            node_id=context.node_id,
            note=f"Configuration error requires manual fix ({error_value})",
            custom_data={
                "reason": "Configuration error requires manual fix",
                "error_type": error_value,
            },
        )

    if category == ErrorCategory.TIMEOUT:
        latest = points.latest(execution_id) if points is not None else None
        if latest is not None:
            return RestartStrategy(from_checkpoint=latest.node_id)
        return RetryStrategy(
            policy_override={"max_retries": 1, "retry_delay_ms": 2000, "exponential_backoff": False},
        )

    return ManualStrategy(node_id=context.node_id)
