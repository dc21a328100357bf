"""SQLite storage keeping one JSON document per resource.

Example:
    >>> from cogmedia.storage import SQLiteStorage
    >>> with SQLiteStorage("sqlite://:memory:") as storage:
    ...     storage.create("task", "t-1", {"id": "t-1"})
    ...     storage.list_types()
    ['task']
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from cogmedia.errors import ErrorContext, StorageError
from cogmedia.storage.base import BaseStorage

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS resources (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,
    UNIQUE (type, id)
)
"""


class SQLiteStorage(BaseStorage):
    """SQLite-backed storage.

    Records live in a single ``resources`` table keyed by ``(type, id)`` with
    the property bag serialized as JSON. Insertion order is kept by ``seq``;
    updates keep a record's original position. Filtering and ordering happen
    in Python so results match InMemoryStorage exactly.

    Attributes:
        timeout: Seconds to wait on a locked database file.
    """

    def __init__(self, connection_url: str, timeout: float = 30.0) -> None:
        """Initialize the SQLite storage.

        Args:
            connection_url: SQLite connection string or file path.
                Formats:
                - sqlite:///absolute/path/to/resources.db
                - sqlite://relative/path/to/resources.db
                - sqlite://:memory: (in-memory database)
                - /absolute/path/to/resources.db (plain path)
            timeout: Connection timeout in seconds.
        """
        super().__init__(connection_url)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        if self._connected and self._conn:
            logger.warning("Already connected, disconnecting first")
            self.disconnect()

        db_path = self._parse_connection_url()
        try:
            self._conn = sqlite3.connect(db_path, timeout=self.timeout, check_same_thread=False)
            self._conn.execute(SCHEMA)
            self._conn.commit()
            self._connected = True
            logger.info(f"Connected to SQLite storage: {db_path}")
        except sqlite3.Error as e:
            logger.error(f"Failed to connect to SQLite ({db_path}): {e}")
            raise StorageError(
                message=f"Failed to connect to SQLite: {e}",
                context=ErrorContext(extra={"database_path": db_path}),
                cause=e,
            ) from e

    def disconnect(self) -> None:
        if not self._conn:
            self._connected = False
            return

        try:
            self._conn.close()
            logger.info("Disconnected from SQLite storage")
        except sqlite3.Error as e:
            logger.warning(f"Error during disconnect: {e}")
        finally:
            self._conn = None
            self._connected = False

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        self._ensure_connected()
        assert self._conn is not None
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                rows = cursor.fetchall()
                self._conn.commit()
                return rows
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StorageError(
                    message=f"SQLite operation failed: {e}",
                    context=ErrorContext(extra={"sql": sql.split()[0]}),
                    cause=e,
                ) from e

    def _write(self, type: str, id: str, data: dict[str, Any]) -> None:
        self._execute(
            "INSERT INTO resources (type, id, data) VALUES (?, ?, ?) "
            "ON CONFLICT (type, id) DO UPDATE SET data = excluded.data",
            (type, id, json.dumps(data)),
        )

    def _read(self, type: str, id: str) -> dict[str, Any] | None:
        rows = self._execute("SELECT data FROM resources WHERE type = ? AND id = ?", (type, id))
        return json.loads(rows[0][0]) if rows else None

    def _remove(self, type: str, id: str) -> None:
        self._execute("DELETE FROM resources WHERE type = ? AND id = ?", (type, id))

    def _records(self, type: str) -> list[dict[str, Any]]:
        rows = self._execute("SELECT data FROM resources WHERE type = ? ORDER BY seq", (type,))
        return [json.loads(row[0]) for row in rows]

    def list_types(self) -> list[str]:
        rows = self._execute("SELECT DISTINCT type FROM resources ORDER BY type")
        return [row[0] for row in rows]

    def count(self, type: str | None = None) -> int:
        """Number of stored records, optionally of one type."""
        if type is None:
            rows = self._execute("SELECT COUNT(*) FROM resources")
        else:
            rows = self._execute("SELECT COUNT(*) FROM resources WHERE type = ?", (type,))
        return int(rows[0][0])

    def _parse_connection_url(self) -> str:
        """Extract the database path, or ':memory:' for in-memory databases."""
        url = self.connection_url

        if url.startswith("sqlite:///"):
            return str(Path(url[9:]).expanduser().absolute())

        if url.startswith("sqlite://"):
            path = url[9:]
            if path == ":memory:":
                return path
            return str(Path(path).expanduser().absolute())

        return url
