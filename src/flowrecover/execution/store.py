"""Execution store interface and the in-memory reference adapter.

The recovery engine never talks to a database directly. It reads and
transitions execution records through an ``ExecutionStore``, which a host
application implements on top of its own persistence layer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from ..utils.errors import ExecutionNotFoundError
from .models import Execution, ExecutionStatus, NodeExecutionStatus

if TYPE_CHECKING:
    from ..recovery.checkpoints import RecoveryPoint

logger = logging.getLogger(__name__)


class ExecutionStore(Protocol):
    """Persistence operations the recovery engine depends on."""

    async def get_execution(self, execution_id: str) -> Execution | None: ...

    async def update_execution_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        *,
        finished_at: datetime | None = None,
        error: dict[str, Any] | None = None,
        clear_finished_at: bool = False,
    ) -> None: ...

    async def update_node_executions(
        self,
        execution_id: str,
        where_status: NodeExecutionStatus,
        patch: dict[str, Any],
        node_id: str | None = None,
    ) -> int: ...

    async def create_checkpoint_record(self, point: RecoveryPoint) -> None: ...


class MemoryExecutionStore:
    """Dictionary-backed ExecutionStore.

    Used by the test-suite and by hosts that keep executions in process.
    Records are stored as pydantic models and patched in place.
    """

    def __init__(self, executions: list[Execution] | None = None):
        self.executions: dict[str, Execution] = {}
        self.checkpoint_records: list[RecoveryPoint] = []
        for execution in executions or []:
            self.add(execution)

    def add(self, execution: Execution) -> None:
        self.executions[execution.id] = execution

    async def get_execution(self, execution_id: str) -> Execution | None:
        return self.executions.get(execution_id)

    async def update_execution_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        *,
        finished_at: datetime | None = None,
        error: dict[str, Any] | None = None,
        clear_finished_at: bool = False,
    ) -> None:
        execution = self.executions.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)

        execution.status = status
        execution.error = error
        if clear_finished_at:
            execution.finished_at = None
        elif finished_at is not None:
            execution.finished_at = finished_at

    async def update_node_executions(
        self,
        execution_id: str,
        where_status: NodeExecutionStatus,
        patch: dict[str, Any],
        node_id: str | None = None,
    ) -> int:
        execution = self.executions.get(execution_id)
        if execution is None:
            return 0

        updated = 0
        for node_execution in execution.node_executions:
            if node_execution.status != where_status:
                continue
            if node_id is not None and node_execution.node_id != node_id:
                continue
            for field_name, value in patch.items():
                setattr(node_execution, field_name, value)
            updated += 1

        logger.debug(f"Patched {updated} node executions of {execution_id}")
        return updated

    async def create_checkpoint_record(self, point: RecoveryPoint) -> None:
        self.checkpoint_records.append(point)
