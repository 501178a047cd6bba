"""In-process recovery lifecycle events.

The orchestrator publishes a ``RecoveryEvent`` for every lifecycle step.
Subscribers are plain callables; an exception raised by one subscriber is
logged and does not reach the publisher or other subscribers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RecoveryEventType(str, Enum):
    """Lifecycle events emitted by the recovery orchestrator."""

    FAILURE_ANALYZED = "failureAnalyzed"
    RECOVERY_POINT_CREATED = "recoveryPointCreated"
    RECOVERY_SUCCESSFUL = "recoverySuccessful"
    RECOVERY_FAILED = "recoveryFailed"
    RECOVERY_ERROR = "recoveryError"
    RECOVERY_DATA_CLEANUP = "recoveryDataCleanup"


@dataclass
class RecoveryEvent:
    """A recovery lifecycle event.

    Attributes:
        event_type: What happened.
        execution_id: Execution the event concerns.
        payload: Event-specific data (analysis, strategy, error...).
        timestamp: When the event was published.
    """

    event_type: RecoveryEventType
    execution_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "execution_id": self.execution_id,
            "timestamp": self.timestamp.isoformat(),
            **self.payload,
        }


Subscriber = Callable[[RecoveryEvent], None]


class EventBus:
    """Minimal synchronous publish/subscribe channel."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[RecoveryEventType | None, Subscriber]] = []

    def subscribe(
        self,
        callback: Subscriber,
        event_type: RecoveryEventType | None = None,
    ) -> Callable[[], None]:
        """Register a subscriber.

        Args:
            callback: Called with every matching event.
            event_type: Only deliver this event type. All types if None.

        Returns:
            A function that removes the subscription.
        """
        entry = (event_type, callback)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(
        self,
        event_type: RecoveryEventType,
        execution_id: str,
        **payload: Any,
    ) -> RecoveryEvent:
        """Deliver an event to all matching subscribers."""
        event = RecoveryEvent(event_type=event_type, execution_id=execution_id, payload=payload)

        for wanted, callback in list(self._subscribers):
            if wanted is not None and wanted != event_type:
                continue
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Subscriber failed on {event_type.value} for {execution_id}: {e}")

        return event
