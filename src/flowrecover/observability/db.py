"""SQLite database for execution history logs.

Durable ``HistoryLog`` implementation: every audit entry written by the
recovery orchestrator is stored in an ``execution_logs`` table and can be
queried per execution.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from .history import LogActor, LogEntry, LogLevel

# Default database location
DEFAULT_DB_PATH = Path(".flowrecover/history.db")


class HistoryDB:
    """SQLite database for storing execution history entries.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path | str | None = None):
        """Initialize the history database.

        Args:
            db_path: Path to the database file. Defaults to .flowrecover/history.db
        """
        self.db_path = Path(db_path) if db_path is not None else Path.cwd() / DEFAULT_DB_PATH
        self._local = threading.local()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a thread-local database connection."""
        conn: sqlite3.Connection | None = getattr(self._local, "connection", None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=30.0,
            )
            conn.row_factory = sqlite3.Row
            self._local.connection = conn
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a database cursor with automatic commit/rollback."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._cursor() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS execution_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    execution_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    message TEXT NOT NULL,
                    node_id TEXT,
                    actor TEXT DEFAULT 'system',
                    payload TEXT DEFAULT '{}'
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_logs_execution
                ON execution_logs(execution_id, id)
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_logs_level
                ON execution_logs(level)
                """
            )

    def close(self) -> None:
        """Close this thread's connection."""
        conn: sqlite3.Connection | None = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None

    def log(
        self,
        execution_id: str,
        level: LogLevel | str,
        message: str,
        node_id: str | None = None,
        payload: dict[str, Any] | None = None,
        actor: LogActor | str = LogActor.SYSTEM,
        timestamp: datetime | None = None,
    ) -> int:
        """Insert a history entry.

        Args:
            execution_id: Execution the entry belongs to.
            level: Severity.
            message: Human-readable message.
            node_id: Node the entry concerns, if any.
            payload: Additional data, stored as JSON.
            actor: Who produced the entry.
            timestamp: Entry timestamp (defaults to now).

        Returns:
            The ID of the inserted entry.
        """
        level = LogLevel(level)
        actor = LogActor(actor)
        ts = timestamp or datetime.now()
        payload_json = json.dumps(payload, default=str) if payload else "{}"

        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO execution_logs
                (execution_id, timestamp, level, message, node_id, actor, payload)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    execution_id,
                    ts.isoformat(),
                    level.value,
                    message,
                    node_id,
                    actor.value,
                    payload_json,
                ),
            )
            return cursor.lastrowid or 0

    async def append(
        self,
        execution_id: str,
        level: LogLevel | str,
        message: str,
        node_id: str | None = None,
        payload: dict[str, Any] | None = None,
        actor: LogActor | str = LogActor.SYSTEM,
    ) -> None:
        """HistoryLog entry point used by the orchestrator.

        The insert runs in a worker thread so the event loop is never blocked
        on SQLite.
        """
        await asyncio.to_thread(self.log, execution_id, level, message, node_id, payload, actor)

    def get_logs(
        self,
        execution_id: str,
        level: LogLevel | str | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        """Query history entries for an execution, oldest first.

        Args:
            execution_id: Execution to query.
            level: Only return entries of this level.
            limit: Maximum number of entries.

        Returns:
            List of matching entries.
        """
        conditions = ["execution_id = ?"]
        params: list[Any] = [execution_id]

        if level is not None:
            conditions.append("level = ?")
            params.append(LogLevel(level).value)

        query = f"""
            SELECT id, execution_id, timestamp, level, message, node_id, actor, payload
            FROM execution_logs
            WHERE {" AND ".join(conditions)}
            ORDER BY id ASC
        """
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()

        return [
            LogEntry(
                id=row["id"],
                execution_id=row["execution_id"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                level=LogLevel(row["level"]),
                message=row["message"],
                node_id=row["node_id"],
                actor=LogActor(row["actor"]),
                payload=json.loads(row["payload"]) if row["payload"] else {},
            )
            for row in rows
        ]

    def count_by_level(self, execution_id: str | None = None) -> dict[str, int]:
        """Count entries per level, optionally for one execution."""
        query = "SELECT level, COUNT(*) AS count FROM execution_logs"
        params: list[Any] = []
        if execution_id is not None:
            query += " WHERE execution_id = ?"
            params.append(execution_id)
        query += " GROUP BY level"

        with self._cursor() as cursor:
            cursor.execute(query, params)
            return {row["level"]: row["count"] for row in cursor.fetchall()}

    def delete_logs(self, execution_id: str) -> int:
        """Delete every entry of an execution.

        Returns:
            Number of entries deleted.
        """
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM execution_logs WHERE execution_id = ?", (execution_id,))
            return cursor.rowcount
