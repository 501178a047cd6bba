"""Observability module for flowrecover.

Provides recovery lifecycle events, the execution history log and
recovery statistics.
"""

from .db import HistoryDB
from .events import EventBus, RecoveryEvent, RecoveryEventType
from .history import HistoryLog, LogActor, LogEntry, LogLevel, MemoryHistoryLog
from .stats import RecoveryStatistics, StrategyStats

__all__ = [
    # Events
    "EventBus",
    "RecoveryEvent",
    "RecoveryEventType",
    # History
    "HistoryLog",
    "HistoryDB",
    "MemoryHistoryLog",
    "LogEntry",
    "LogLevel",
    "LogActor",
    # Statistics
    "RecoveryStatistics",
    "StrategyStats",
]
