"""Execution history (audit) log interface and in-memory adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogActor(str, Enum):
    SYSTEM = "system"
    NODE = "node"
    USER = "user"


@dataclass
class LogEntry:
    """A single entry in an execution's history log."""

    execution_id: str
    level: LogLevel
    message: str
    node_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    actor: LogActor = LogActor.SYSTEM
    timestamp: datetime = field(default_factory=datetime.now)
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "execution_id": self.execution_id,
            "level": self.level.value,
            "message": self.message,
            "node_id": self.node_id,
            "payload": self.payload,
            "actor": self.actor.value,
            "timestamp": self.timestamp.isoformat(),
        }


class HistoryLog(Protocol):
    """Sink for per-execution audit entries."""

    async def append(
        self,
        execution_id: str,
        level: LogLevel | str,
        message: str,
        node_id: str | None = None,
        payload: dict[str, Any] | None = None,
        actor: LogActor | str = LogActor.SYSTEM,
    ) -> None: ...


class MemoryHistoryLog:
    """HistoryLog that keeps entries in a list."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def append(
        self,
        execution_id: str,
        level: LogLevel | str,
        message: str,
        node_id: str | None = None,
        payload: dict[str, Any] | None = None,
        actor: LogActor | str = LogActor.SYSTEM,
    ) -> None:
        self.entries.append(
            LogEntry(
                execution_id=execution_id,
                level=LogLevel(level),
                message=message,
                node_id=node_id,
                payload=payload or {},
                actor=LogActor(actor),
                id=len(self.entries) + 1,
            )
        )

    def for_execution(self, execution_id: str) -> list[LogEntry]:
        return [e for e in self.entries if e.execution_id == execution_id]

    def messages(self, execution_id: str | None = None) -> list[str]:
        return [e.message for e in self.entries if execution_id in (None, e.execution_id)]
