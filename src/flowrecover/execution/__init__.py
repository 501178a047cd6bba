"""Execution records and the store interface used by the recovery engine."""

from .models import (
    Execution,
    ExecutionStatus,
    NodeExecution,
    NodeExecutionStatus,
    Workflow,
    WorkflowNode,
)
from .store import ExecutionStore, MemoryExecutionStore

__all__ = [
    # Models
    "Execution",
    "ExecutionStatus",
    "NodeExecution",
    "NodeExecutionStatus",
    "Workflow",
    "WorkflowNode",
    # Store
    "ExecutionStore",
    "MemoryExecutionStore",
]
