"""Recovery points (checkpoints) for running executions.

The execution engine records a recovery point whenever it reaches a
resumable marker. Points are kept in memory per execution, in creation
order, and mirrored best-effort to durable storage. In-memory state is
authoritative for the lifetime of the process.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

FINGERPRINT_LENGTH = 16

CheckpointMirror = Callable[["RecoveryPoint"], Awaitable[None]]


def fingerprint(state: Any) -> str:
    """Deterministic short digest of a state snapshot.

    Equal JSON documents produce equal fingerprints regardless of key order.
    """
    canonical = json.dumps(state, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")[:FINGERPRINT_LENGTH]


@dataclass(frozen=True)
class RecoveryPoint:
    """A resumable marker inside an execution."""

    execution_id: str
    node_id: str
    created_at_ms: int
    state_snapshot: Any
    fingerprint: str

    @property
    def point_id(self) -> str:
        return f"{self.execution_id}_{self.node_id}_{self.created_at_ms}"

    def to_dict(self) -> dict[str, Any]:
        """Convert recovery point to dictionary."""
        return {
            "point_id": self.point_id,
            "execution_id": self.execution_id,
            "node_id": self.node_id,
            "created_at_ms": self.created_at_ms,
            "state_snapshot": self.state_snapshot,
            "fingerprint": self.fingerprint,
        }

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)


class RecoveryPointStore:
    """Append-only recovery points keyed by execution id.

    Concurrent use from different executions is safe because keys are
    disjoint. Appends for the same execution must be sequenced by the caller.
    """

    def __init__(self, mirror: CheckpointMirror | None = None):
        """Initialize the store.

        Args:
            mirror: Optional coroutine function that persists a point
                durably. Failures are logged and ignored.
        """
        self.mirror = mirror
        self._points: dict[str, list[RecoveryPoint]] = {}

    async def append(
        self,
        execution_id: str,
        node_id: str,
        state_snapshot: Any,
    ) -> RecoveryPoint:
        """Record a recovery point.

        Args:
            execution_id: Execution the point belongs to.
            node_id: Node the point was taken at.
            state_snapshot: JSON-compatible snapshot of the node state.

        Returns:
            The created RecoveryPoint.
        """
        point = RecoveryPoint(
            execution_id=execution_id,
            node_id=node_id,
            created_at_ms=int(time.time() * 1000),
            state_snapshot=state_snapshot,
            fingerprint=fingerprint(state_snapshot),
        )
        self._points.setdefault(execution_id, []).append(point)

        if self.mirror is not None:
            try:
                await self.mirror(point)
            except Exception as e:
                logger.warning(f"Failed to persist recovery point {point.point_id}: {e}")

        return point

    def list(self, execution_id: str) -> list[RecoveryPoint]:
        """All points for an execution, oldest first."""
        return list(self._points.get(execution_id, []))

    def latest(self, execution_id: str) -> RecoveryPoint | None:
        """The most recently appended point, if any."""
        points = self._points.get(execution_id)
        return points[-1] if points else None

    def find(self, execution_id: str, fingerprint_value: str) -> RecoveryPoint | None:
        """Find the most recent point with a given fingerprint."""
        for point in reversed(self._points.get(execution_id, [])):
            if point.fingerprint == fingerprint_value:
                return point
        return None

    def clear(self, execution_id: str) -> int:
        """Drop every point for an execution.

        Returns:
            Number of points dropped.
        """
        return len(self._points.pop(execution_id, []))

    def execution_ids(self) -> list[str]:
        return list(self._points)
