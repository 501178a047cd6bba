"""Recovery orchestrator: analyse failures and carry out recovery strategies.

The orchestrator is the single entry point the execution engine calls when
a node fails. It never raises to its caller: analysis failures degrade to a
safe default analysis and recovery failures to a ``False`` result, with the
details captured in the history log and in lifecycle events.

Concurrency contract: recovery calls for one execution are issued
sequentially by the execution engine. Calls for different executions may
run concurrently; their retry keys and recovery points never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..execution.models import ExecutionStatus, NodeExecutionStatus
from ..observability.events import EventBus, RecoveryEventType
from ..observability.history import LogLevel
from ..utils.errors import (
    ExecutionNotFoundError,
    InvalidConfigurationError,
    InvalidStrategyError,
)
from .analysis import FailureAnalysis, analyze_error
from .attempts import RetryAttemptTracker
from .checkpoints import RecoveryPoint, RecoveryPointStore
from .policy import DEFAULT_RETRY_POLICY, RetryPolicy
from .strategies import (
    ManualStrategy,
    RecoveryStrategy,
    RestartStrategy,
    RetryStrategy,
    SkipStrategy,
    strategy_from_dict,
)
from .timer import BackoffTimer

if TYPE_CHECKING:
    from ..config import RecoveryConfig
    from ..execution.store import ExecutionStore
    from ..observability.history import HistoryLog

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.7


class RecoveryOrchestrator:
    """Analyses execution failures and executes recovery strategies.

    Attributes:
        store: Execution store the orchestrator reads and transitions.
        history: Per-execution audit log.
        events: Lifecycle event bus.
        points: Recovery points, consulted for restart targets.
        attempts: Retry attempt counters.
        policy: Default retry policy; strategies may override parts of it.
        timer: Backoff timer used between retries.
        min_confidence: Minimum analysis confidence for ``auto_recover``.
        pause_status: Status set by a manual strategy.
        auto_recover_enabled: When False, ``auto_recover`` never acts.
    """

    def __init__(
        self,
        store: ExecutionStore,
        history: HistoryLog,
        events: EventBus | None = None,
        points: RecoveryPointStore | None = None,
        attempts: RetryAttemptTracker | None = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        timer: BackoffTimer | None = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        pause_status: ExecutionStatus = ExecutionStatus.PAUSED,
        auto_recover_enabled: bool = True,
    ):
        self.store = store
        self.history = history
        self.events = events or EventBus()
        self.points = points or RecoveryPointStore(
            mirror=getattr(store, "create_checkpoint_record", None)
        )
        self.attempts = attempts or RetryAttemptTracker()
        self.policy = policy
        self.timer = timer or BackoffTimer()
        self.min_confidence = min_confidence
        self.pause_status = pause_status
        self.auto_recover_enabled = auto_recover_enabled
        self._pending_retries: dict[str, asyncio.Event] = {}

    @classmethod
    def from_config(
        cls,
        config: RecoveryConfig,
        store: ExecutionStore,
        history: HistoryLog | None = None,
        events: EventBus | None = None,
    ) -> RecoveryOrchestrator:
        """Build an orchestrator from configuration.

        Args:
            config: Loaded configuration.
            store: Execution store.
            history: History log. Defaults to a HistoryDB at the configured path.
            events: Event bus to publish on.

        Raises:
            InvalidConfigurationError: If the configuration does not validate.
        """
        problems = config.validate()
        if problems:
            raise InvalidConfigurationError(problems)

        if history is None:
            from ..observability.db import HistoryDB

            history = HistoryDB(config.history.db_path)

        return cls(
            store=store,
            history=history,
            events=events,
            policy=config.retry.to_policy(),
            min_confidence=config.auto_recover.min_confidence,
            pause_status=config.auto_recover.pause_execution_status,
            auto_recover_enabled=config.auto_recover.enabled,
        )

    # -------------------------------------------------------------------------
    # Failure analysis
    # -------------------------------------------------------------------------

    async def analyze_failure(self, execution_id: str, error: Any) -> FailureAnalysis:
        """Diagnose a failure and suggest a recovery strategy.

        Args:
            execution_id: The failed execution.
            error: The raw error (exception, mapping or ClassifiableError).

        Returns:
            The FailureAnalysis, or a safe default if the analysis itself
            failed (for example when the execution does not exist).
        """
        try:
            execution = await self.store.get_execution(execution_id)
            if execution is None:
                raise ExecutionNotFoundError(execution_id)

            failed_nodes = execution.failed_nodes()
            failed_node_id = failed_nodes[0].node_id if failed_nodes else None

            analysis = analyze_error(
                error,
                node_id=failed_node_id,
                node_name=execution.workflow.get_node_name(failed_node_id),
                policy=self.policy,
                execution_id=execution_id,
                points=self.points,
            )
        except Exception as e:
            logger.error(f"Error analyzing failure of execution {execution_id}: {e}", exc_info=True)
            return FailureAnalysis.safe_default()

        await self._log(
            execution_id,
            LogLevel.INFO,
            f"Failure analysis completed: {analysis.category.value} error ({analysis.error_type})",
            analysis.context.node_id,
            {"analysis": analysis.to_dict()},
        )
        self.events.publish(RecoveryEventType.FAILURE_ANALYZED, execution_id, analysis=analysis)
        return analysis

    # -------------------------------------------------------------------------
    # Recovery points
    # -------------------------------------------------------------------------

    async def create_recovery_point(
        self,
        execution_id: str,
        node_id: str,
        state: Any,
    ) -> RecoveryPoint:
        """Record a resumable marker for an execution."""
        point = await self.points.append(execution_id, node_id, state)
        self.events.publish(
            RecoveryEventType.RECOVERY_POINT_CREATED,
            execution_id,
            node_id=node_id,
            point_id=point.point_id,
            created_at_ms=point.created_at_ms,
            fingerprint=point.fingerprint,
        )
        return point

    def get_recovery_points(self, execution_id: str) -> list[RecoveryPoint]:
        return self.points.list(execution_id)

    # -------------------------------------------------------------------------
    # Recovery
    # -------------------------------------------------------------------------

    async def recover_execution(
        self,
        execution_id: str,
        strategy: RecoveryStrategy | Mapping[str, Any],
    ) -> bool:
        """Carry out a recovery strategy.

        Args:
            execution_id: The execution to recover.
            strategy: A RecoveryStrategy or its dict form.

        Returns:
            True if the strategy was applied. For retry and restart this means
            resuming is now the execution engine's job. False if retries are
            exhausted, the retry was cancelled, or anything went wrong.
        """
        node_id: str | None = None

        try:
            if isinstance(strategy, Mapping):
                strategy = strategy_from_dict(strategy)
            if not isinstance(strategy, RecoveryStrategy):
                raise InvalidStrategyError(f"Unknown recovery strategy: {strategy!r}")

            strategy_name = strategy.strategy_type.value
            node_id = strategy.target_node_id

            logger.info(f"Recovering execution {execution_id} with {strategy_name} strategy")
            await self._log(
                execution_id,
                LogLevel.INFO,
                f"Attempting recovery with strategy: {strategy_name}",
                node_id,
                {"strategy": strategy.to_dict()},
            )

            if isinstance(strategy, RetryStrategy):
                success = await self._retry_execution(execution_id, strategy)
            elif isinstance(strategy, SkipStrategy):
                success = await self._skip_failed_node(execution_id, strategy)
            elif isinstance(strategy, RestartStrategy):
                success = await self._restart_execution(execution_id, strategy)
            elif isinstance(strategy, ManualStrategy):
                success = await self._request_manual_intervention(execution_id, strategy)
            else:
                raise InvalidStrategyError(f"Unknown recovery strategy: {strategy_name}")

        except Exception as e:
            logger.error(f"Recovery error for execution {execution_id}: {e}", exc_info=True)
            await self._log(
                execution_id,
                LogLevel.ERROR,
                f"Recovery error: {e}",
                node_id,
                {"error": str(e)},
            )
            self.events.publish(
                RecoveryEventType.RECOVERY_ERROR, execution_id, strategy=strategy, error=e
            )
            return False

        if success:
            await self._log(
                execution_id,
                LogLevel.INFO,
                f"Recovery successful using {strategy_name} strategy",
                node_id,
            )
            self.events.publish(
                RecoveryEventType.RECOVERY_SUCCESSFUL, execution_id, strategy=strategy
            )
        else:
            await self._log(
                execution_id,
                LogLevel.WARN,
                f"Recovery failed using {strategy_name} strategy",
                node_id,
            )
            self.events.publish(RecoveryEventType.RECOVERY_FAILED, execution_id, strategy=strategy)

        return success

    async def auto_recover(self, execution_id: str, error: Any) -> bool:
        """Analyse a failure and recover automatically when it is safe to.

        Recovery only runs when the analysis is retryable and its confidence
        reaches ``min_confidence``.

        Returns:
            The recovery result, or False if automatic recovery was skipped.
        """
        analysis = await self.analyze_failure(execution_id, error)

        if (
            not self.auto_recover_enabled
            or analysis.confidence < self.min_confidence
            or not analysis.is_retryable
        ):
            await self._log(
                execution_id,
                LogLevel.INFO,
                f"Auto-recovery skipped: confidence={analysis.confidence}, "
                f"retryable={analysis.is_retryable}",
                analysis.context.node_id,
                {"analysis": analysis.to_dict()},
            )
            return False

        return await self.recover_execution(execution_id, analysis.suggested_strategy)

    def cancel_pending_retry(self, execution_id: str) -> bool:
        """Cancel in-flight backoff waits of an execution.

        The cancelled retry returns False; its attempt stays counted.

        Returns:
            True if at least one wait was cancelled.
        """
        prefix = f"{execution_id}:"
        cancelled = False
        for key, event in self._pending_retries.items():
            if key.startswith(prefix) and not event.is_set():
                event.set()
                cancelled = True
        return cancelled

    def cleanup_recovery_data(self, execution_id: str) -> None:
        """Drop recovery points and retry counters of a finished execution.

        Must be called by the execution engine once the execution reaches a
        terminal state.
        """
        self.cancel_pending_retry(execution_id)
        points_cleared = self.points.clear(execution_id)
        counters_reset = self.attempts.reset_all(execution_id)
        logger.debug(
            f"Cleaned up execution {execution_id}: "
            f"{points_cleared} recovery points, {counters_reset} retry counters"
        )
        self.events.publish(
            RecoveryEventType.RECOVERY_DATA_CLEANUP,
            execution_id,
            points_cleared=points_cleared,
            counters_reset=counters_reset,
        )

    # -------------------------------------------------------------------------
    # Strategy executors
    # -------------------------------------------------------------------------

    async def _retry_execution(self, execution_id: str, strategy: RetryStrategy) -> bool:
        policy = self.policy.merged(strategy.policy_override)
        retry_key = self.attempts.key(execution_id, strategy.node_id)
        current_attempts = self.attempts.get(retry_key)

        if current_attempts >= policy.max_retries:
            logger.warning(f"Max retry attempts ({policy.max_retries}) reached for {retry_key}")
            await self._log(
                execution_id,
                LogLevel.WARN,
                f"Max retry attempts ({policy.max_retries}) reached",
                strategy.node_id,
            )
            return False

        delay = policy.delay_for_attempt(current_attempts)
        attempt = self.attempts.increment(retry_key)

        await self._log(
            execution_id,
            LogLevel.INFO,
            f"Retrying in {delay}ms (attempt {attempt}/{policy.max_retries})",
            strategy.node_id,
            {"delay_ms": delay, "attempt": attempt},
        )

        cancel_event = asyncio.Event()
        self._pending_retries[retry_key] = cancel_event
        try:
            completed = await self.timer.wait(delay, cancel_event)
        finally:
            if self._pending_retries.get(retry_key) is cancel_event:
                del self._pending_retries[retry_key]

        if not completed:
            await self._log(
                execution_id,
                LogLevel.WARN,
                f"Retry attempt {attempt} cancelled during backoff",
                strategy.node_id,
            )
            return False

        await self.store.update_execution_status(
            execution_id,
            ExecutionStatus.RUNNING,
            error={
                "type": "retry",
                "attempt": attempt,
                "max_attempts": policy.max_retries,
                "timestamp": datetime.now().isoformat(),
            },
        )
        return True

    async def _skip_failed_node(self, execution_id: str, strategy: SkipStrategy) -> bool:
        if not strategy.node_id:
            raise InvalidStrategyError("Skip strategy requires a node_id")

        now = datetime.now()
        await self.store.update_node_executions(
            execution_id,
            NodeExecutionStatus.ERROR,
            {
                "status": NodeExecutionStatus.SKIPPED,
                "finished_at": now,
                "output_data": {
                    "skipped": True,
                    "reason": "Recovery strategy: skip failed node",
                    "timestamp": now.isoformat(),
                },
            },
            node_id=strategy.node_id,
        )
        return True

    async def _restart_execution(self, execution_id: str, strategy: RestartStrategy) -> bool:
        await self.store.update_execution_status(
            execution_id,
            ExecutionStatus.RUNNING,
            error=None,
            clear_finished_at=True,
        )
        await self.store.update_node_executions(
            execution_id,
            NodeExecutionStatus.ERROR,
            {
                "status": NodeExecutionStatus.WAITING,
                "started_at": None,
                "finished_at": None,
                "error": None,
                "output_data": None,
            },
        )

        # State restoration itself is the execution engine's job
        if strategy.from_checkpoint:
            await self._log(
                execution_id,
                LogLevel.INFO,
                f"Restarting from checkpoint: {strategy.from_checkpoint}",
                None,
                {"checkpoint": strategy.from_checkpoint},
            )
        return True

    async def _request_manual_intervention(
        self,
        execution_id: str,
        strategy: ManualStrategy,
    ) -> bool:
        payload = dict(strategy.custom_data or {})
        if strategy.note:
            payload["note"] = strategy.note

        await self._log(
            execution_id,
            LogLevel.INFO,
            "Manual intervention requested",
            strategy.node_id,
            payload,
        )

        await self.store.update_execution_status(
            execution_id,
            self.pause_status,
            error={
                "type": "manual_intervention_required",
                "reason": "Automatic recovery failed, manual intervention required",
                "note": strategy.note,
                "timestamp": datetime.now().isoformat(),
            },
        )
        return True

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _log(
        self,
        execution_id: str,
        level: LogLevel,
        message: str,
        node_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Append to the history log; failures are never fatal."""
        try:
            await self.history.append(execution_id, level, message, node_id, payload or {})
        except Exception as e:
            logger.warning(f"Failed to write history entry for {execution_id}: {e}")
