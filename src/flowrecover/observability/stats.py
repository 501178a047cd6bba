"""Recovery statistics collected from the event bus."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .events import EventBus, RecoveryEvent, RecoveryEventType

_OUTCOME_EVENTS = frozenset(
    {
        RecoveryEventType.RECOVERY_SUCCESSFUL,
        RecoveryEventType.RECOVERY_FAILED,
        RecoveryEventType.RECOVERY_ERROR,
    }
)


@dataclass
class StrategyStats:
    """Outcome counters for one strategy type."""

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    errors: int = 0

    @property
    def success_rate(self) -> float:
        return self.successes / self.attempts if self.attempts else 0.0


@dataclass
class RecoveryStatistics:
    """Aggregates recovery outcomes and analysed error types.

    Attach to an EventBus with ``attach``; every recovery outcome event
    counts as one attempt for its strategy type.
    """

    by_strategy: dict[str, StrategyStats] = field(default_factory=dict)
    error_types: Counter[str] = field(default_factory=Counter)
    categories: Counter[str] = field(default_factory=Counter)
    cleanups: int = 0
    _unsubscribe: Callable[[], None] | None = field(default=None, repr=False)

    def attach(self, bus: EventBus) -> RecoveryStatistics:
        self.detach()
        self._unsubscribe = bus.subscribe(self.record)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def record(self, event: RecoveryEvent) -> None:
        if event.event_type == RecoveryEventType.FAILURE_ANALYZED:
            analysis = event.payload.get("analysis")
            if analysis is not None:
                self.error_types[analysis.error_type] += 1
                self.categories[analysis.category.value] += 1
            return

        if event.event_type == RecoveryEventType.RECOVERY_DATA_CLEANUP:
            self.cleanups += 1
            return

        if event.event_type not in _OUTCOME_EVENTS:
            return

        strategy = event.payload.get("strategy")
        strategy_type = getattr(getattr(strategy, "strategy_type", None), "value", "unknown")
        stats = self.by_strategy.setdefault(strategy_type, StrategyStats())

        if event.event_type == RecoveryEventType.RECOVERY_SUCCESSFUL:
            stats.attempts += 1
            stats.successes += 1
        elif event.event_type == RecoveryEventType.RECOVERY_FAILED:
            stats.attempts += 1
            stats.failures += 1
        elif event.event_type == RecoveryEventType.RECOVERY_ERROR:
            stats.attempts += 1
            stats.errors += 1

    @property
    def total_attempts(self) -> int:
        return sum(s.attempts for s in self.by_strategy.values())

    @property
    def total_successes(self) -> int:
        return sum(s.successes for s in self.by_strategy.values())

    @property
    def success_rate(self) -> float:
        total = self.total_attempts
        return self.total_successes / total if total else 0.0

    def error_patterns(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Analysed error types, most frequent first, with percentages."""
        total = sum(self.error_types.values())
        return [
            {
                "type": error_type,
                "count": count,
                "percentage": round(count / total * 100, 1) if total else 0.0,
            }
            for error_type, count in self.error_types.most_common(limit)
        ]

    def summary(self) -> dict[str, Any]:
        return {
            "attempts": self.total_attempts,
            "successes": self.total_successes,
            "success_rate": round(self.success_rate * 100, 2),
            "by_strategy": {
                name: {
                    "attempts": s.attempts,
                    "successes": s.successes,
                    "failures": s.failures,
                    "errors": s.errors,
                }
                for name, s in self.by_strategy.items()
            },
            "error_patterns": self.error_patterns(),
            "cleanups": self.cleanups,
        }
