"""In-memory storage for tests and single-process use."""

from __future__ import annotations

import copy
import logging
from typing import Any

from cogmedia.storage.base import BaseStorage

logger = logging.getLogger(__name__)


class InMemoryStorage(BaseStorage):
    """Dictionary-backed storage using deep copies on every read and write.

    Callers can never mutate stored records through a returned dictionary.
    Not suitable when several processes need to share data.
    """

    def __init__(
        self,
        connection_url: str = "memory://default",
        initial_data: dict[str, dict[str, dict[str, Any]]] | None = None,
    ) -> None:
        super().__init__(connection_url)
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._initial_data = initial_data or {}

    def connect(self) -> None:
        self._data = copy.deepcopy(self._initial_data)
        self._connected = True
        logger.info(f"Connected to in-memory storage: {self.connection_url}")

    def disconnect(self) -> None:
        self._data = {}
        self._connected = False
        logger.info("Disconnected from in-memory storage")

    def _write(self, type: str, id: str, data: dict[str, Any]) -> None:
        self._data.setdefault(type, {})[id] = copy.deepcopy(data)

    def _read(self, type: str, id: str) -> dict[str, Any] | None:
        record = self._data.get(type, {}).get(id)
        return copy.deepcopy(record) if record is not None else None

    def _remove(self, type: str, id: str) -> None:
        records = self._data.get(type)
        if records is None:
            return
        records.pop(id, None)
        if not records:
            del self._data[type]

    def _records(self, type: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._data.get(type, {}).values()]

    def list_types(self) -> list[str]:
        self._ensure_connected()
        return sorted(self._data)

    def reset(self) -> None:
        """Restore the initial data set."""
        self._ensure_connected()
        self._data = copy.deepcopy(self._initial_data)
        logger.info("Reset in-memory storage to initial data")

    def snapshot(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Copy of everything stored (for test assertions)."""
        self._ensure_connected()
        return copy.deepcopy(self._data)
