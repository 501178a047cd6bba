"""Data models for workflow executions as seen by the recovery engine.

Only the fields the recovery engine reads or writes are modelled here;
the full execution schema belongs to the execution store.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"
    PAUSED = "PAUSED"  # Awaiting operator after a manual recovery request

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.SUCCESS, ExecutionStatus.ERROR, ExecutionStatus.CANCELLED)


class NodeExecutionStatus(str, Enum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


class WorkflowNode(BaseModel):
    """A node in the workflow definition."""

    id: str
    type: str | None = None
    name: str | None = None


class Workflow(BaseModel):
    """Workflow definition the execution was started from."""

    id: str
    name: str | None = None
    nodes: list[WorkflowNode] = Field(default_factory=list)

    def get_node_name(self, node_id: str | None) -> str | None:
        """Resolve a node's display name, falling back to its type."""
        if not node_id:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node.name or node.type
        return None


class NodeExecution(BaseModel):
    """Execution record of a single node within an execution."""

    node_id: str
    status: NodeExecutionStatus = NodeExecutionStatus.WAITING
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: dict[str, Any] | None = None
    output_data: dict[str, Any] | None = None


class Execution(BaseModel):
    """A workflow execution record."""

    id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    workflow: Workflow
    node_executions: list[NodeExecution] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    error: dict[str, Any] | None = None

    def failed_nodes(self) -> list[NodeExecution]:
        """Node executions currently in ERROR status, in execution order."""
        return [n for n in self.node_executions if n.status == NodeExecutionStatus.ERROR]
