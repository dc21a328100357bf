"""Storage backends for cogmedia.

The store persists raw property bags through any object implementing the
Storage protocol.

Available Backends:
    - InMemoryStorage: dictionaries with deep-copy isolation
    - SQLiteStorage: one JSON document per resource in SQLite

Quick Start:
    >>> from cogmedia.storage import StorageFactory
    >>> with StorageFactory.from_url("memory://app") as storage:
    ...     storage.create("note", "n-1", {"id": "n-1", "text": "hi"})
"""

from cogmedia.storage.base import (
    BaseStorage,
    BatchItem,
    ListResult,
    Storage,
    matches_filter,
    paginate,
    validate_record,
)
from cogmedia.storage.factory import StorageFactory
from cogmedia.storage.memory import InMemoryStorage
from cogmedia.storage.sqlite import SQLiteStorage

__all__ = [
    "BaseStorage",
    "BatchItem",
    "InMemoryStorage",
    "ListResult",
    "SQLiteStorage",
    "Storage",
    "StorageFactory",
    "matches_filter",
    "paginate",
    "validate_record",
]
