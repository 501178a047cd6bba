"""flowrecover - failure analysis and recovery for workflow executions."""

from .execution import (
    Execution,
    ExecutionStatus,
    ExecutionStore,
    MemoryExecutionStore,
    NodeExecution,
    NodeExecutionStatus,
    Workflow,
    WorkflowNode,
)
from .recovery import (
    FailureAnalysis,
    ManualStrategy,
    RecoveryOrchestrator,
    RecoveryPoint,
    RestartStrategy,
    RetryPolicy,
    RetryStrategy,
    SkipStrategy,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Executions
    "Execution",
    "ExecutionStatus",
    "ExecutionStore",
    "MemoryExecutionStore",
    "NodeExecution",
    "NodeExecutionStatus",
    "Workflow",
    "WorkflowNode",
    # Recovery
    "FailureAnalysis",
    "RecoveryOrchestrator",
    "RecoveryPoint",
    "RetryPolicy",
    "RetryStrategy",
    "SkipStrategy",
    "RestartStrategy",
    "ManualStrategy",
]
