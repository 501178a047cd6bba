"""Shared fixtures for flowrecover tests."""

from __future__ import annotations

import asyncio

import pytest

from flowrecover.execution import (
    Execution,
    ExecutionStatus,
    MemoryExecutionStore,
    NodeExecution,
    NodeExecutionStatus,
    Workflow,
    WorkflowNode,
)
from flowrecover.observability import EventBus, MemoryHistoryLog
from flowrecover.recovery import RecoveryOrchestrator


class FakeTimer:
    """BackoffTimer stand-in that records delays and returns immediately."""

    supports_cancellation = True

    def __init__(self) -> None:
        self.delays: list[int] = []

    async def wait(self, delay_ms: int, cancel_event: asyncio.Event | None = None) -> bool:
        self.delays.append(delay_ms)
        return not (cancel_event is not None and cancel_event.is_set())


def make_execution(
    execution_id: str = "exec-1",
    failed_node: str | None = "n1",
    status: ExecutionStatus = ExecutionStatus.ERROR,
) -> Execution:
    """Build a three-node execution with ``failed_node`` in ERROR."""
    nodes = [
        WorkflowNode(id="n1", type="httpRequest", name="Fetch orders"),
        WorkflowNode(id="n2", type="transform"),
        WorkflowNode(id="n3", type="emailSend", name="Notify"),
    ]
    node_executions = []
    for node in nodes:
        if node.id == failed_node:
            node_status = NodeExecutionStatus.ERROR
        elif failed_node is not None and node.id < failed_node:
            node_status = NodeExecutionStatus.SUCCESS
        else:
            node_status = NodeExecutionStatus.WAITING
        node_executions.append(NodeExecution(node_id=node.id, status=node_status))

    return Execution(
        id=execution_id,
        status=status,
        workflow=Workflow(id="wf-1", name="Orders", nodes=nodes),
        node_executions=node_executions,
    )


@pytest.fixture
def store() -> MemoryExecutionStore:
    return MemoryExecutionStore([make_execution()])


@pytest.fixture
def history() -> MemoryHistoryLog:
    return MemoryHistoryLog()


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def orchestrator(store, history, timer, events) -> RecoveryOrchestrator:
    return RecoveryOrchestrator(store=store, history=history, events=events, timer=timer)


@pytest.fixture
def execution_factory():
    return make_execution
