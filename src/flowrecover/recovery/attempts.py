"""Per-node retry attempt counters."""

from __future__ import annotations

WHOLE_EXECUTION = "execution"


class RetryAttemptTracker:
    """Counts retry attempts per ``(execution, node)`` key.

    Counts only grow until reset. Like RecoveryPointStore, there is no
    internal lock: the execution engine is the single writer per execution.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    @staticmethod
    def key(execution_id: str, node_id: str | None = None) -> str:
        return f"{execution_id}:{node_id or WHOLE_EXECUTION}"

    def get(self, key: str) -> int:
        return self._counts.get(key, 0)

    def increment(self, key: str) -> int:
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        return count

    def reset(self, key: str) -> None:
        self._counts.pop(key, None)

    def reset_all(self, execution_id: str) -> int:
        """Reset every counter of an execution.

        Returns:
            Number of counters removed.
        """
        prefix = f"{execution_id}:"
        keys = [k for k in self._counts if k.startswith(prefix)]
        for k in keys:
            del self._counts[k]
        return len(keys)

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)
