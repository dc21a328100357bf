"""Storage collaborators for raw resource property bags.

The store never talks to a database directly. It hands plain dictionaries to
an object implementing the Storage protocol and gets plain dictionaries back.
This module defines that protocol plus BaseStorage, an abstract base class
that adds connection tracking, value validation, equality filtering,
pagination and batch operations on top of a handful of primitives.

Example:
    >>> from cogmedia.storage import InMemoryStorage
    >>> with InMemoryStorage() as storage:
    ...     storage.create("task", "t-1", {"id": "t-1", "title": "Write docs"})
    ...     storage.get("task", "t-1")["title"]
    'Write docs'
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Protocol, TypeVar

from cogmedia.errors import ConflictError, ErrorContext, StorageError, ValidationError

T = TypeVar("T", bound="BaseStorage")

JSON_SCALARS = (str, int, float, bool, type(None))


@dataclass
class ListResult:
    """One page of raw records plus the number of records matching the filter."""

    items: list[dict[str, Any]] = field(default_factory=list)
    total_items: int = 0


@dataclass
class BatchItem:
    type: str
    id: str
    data: dict[str, Any] = field(default_factory=dict)


class Storage(Protocol):
    """Protocol for key-value persistence of resource property bags.

    Records are addressed by ``(type, id)``. Implementations must treat
    ``delete`` of a missing record as a no-op.
    """

    def create(self, type: str, id: str, data: dict[str, Any]) -> None:
        """Store a new record. An existing ``(type, id)`` is a conflict."""
        ...

    def get(self, type: str, id: str) -> dict[str, Any] | None:
        """Return the record, or None when it does not exist."""
        ...

    def update(self, type: str, id: str, data: dict[str, Any]) -> None:
        """Replace the stored record with ``data``."""
        ...

    def delete(self, type: str, id: str) -> None:
        """Remove the record. Missing records are ignored."""
        ...

    def list(
        self,
        type: str,
        filter: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> ListResult:
        """Return one page of records matching every ``filter`` key exactly."""
        ...

    def list_types(self) -> list[str]:
        """Return every type that currently has at least one record."""
        ...


def validate_record(type: str, id: str, data: dict[str, Any]) -> None:
    """Check that ``data`` only holds JSON-compatible values.

    Raises:
        ValidationError: If a key is not a string or a value is not
            str/int/float/bool/None or a list/dict of those.
    """

    def check(value: Any, path: str) -> None:
        if isinstance(value, JSON_SCALARS):
            if isinstance(value, float) and not math.isfinite(value):
                raise ValidationError(
                    f"Non-finite number at '{path}'",
                    field=path,
                    value=value,
                    context=ErrorContext(resource_type=type, resource_id=id),
                )
            return
        if isinstance(value, list | tuple):
            for index, item in enumerate(value):
                check(item, f"{path}[{index}]")
            return
        if isinstance(value, dict):
            for key, item in value.items():
                if not isinstance(key, str):
                    raise ValidationError(
                        f"Non-string key {key!r} at '{path}'",
                        field=path,
                        value=key,
                        context=ErrorContext(resource_type=type, resource_id=id),
                    )
                check(item, f"{path}.{key}" if path else key)
            return
        raise ValidationError(
            f"Unsupported value of type {value.__class__.__name__} at '{path}'",
            field=path,
            value=value,
            context=ErrorContext(resource_type=type, resource_id=id),
        )

    if not isinstance(data, dict):
        raise ValidationError(
            "Record data must be a mapping",
            value=data,
            context=ErrorContext(resource_type=type, resource_id=id),
        )
    check(data, "")


def matches_filter(record: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Equality-only match: every filter key must be present with an equal value."""
    if not filter:
        return True
    return all(key in record and record[key] == value for key, value in filter.items())


def paginate(
    records: Iterable[dict[str, Any]],
    filter: dict[str, Any] | None,
    page: int,
    page_size: int,
) -> ListResult:
    """Filter, order by ``createdAt`` ascending (stable) and slice one page."""
    if page < 1:
        raise ValidationError("page must be >= 1", field="page", value=page)
    if page_size < 1:
        raise ValidationError("page_size must be >= 1", field="page_size", value=page_size)

    matching = [r for r in records if matches_filter(r, filter)]
    matching.sort(key=lambda r: str(r.get("createdAt") or ""))
    start = (page - 1) * page_size
    return ListResult(items=matching[start : start + page_size], total_items=len(matching))


class BaseStorage(ABC):
    """Abstract base class for storage backends.

    Provides connection tracking, context manager support, value validation
    on writes, and default ``exists`` and batch implementations built on the
    abstract primitives.

    Attributes:
        connection_url: Backend location, e.g. ``memory://default`` or
            ``sqlite:///path/to/resources.db``.
    """

    def __init__(self, connection_url: str) -> None:
        if not connection_url or not connection_url.strip():
            raise ValueError("connection_url cannot be empty")

        self.connection_url = connection_url.strip()
        self._connected: bool = False

    @abstractmethod
    def connect(self) -> None:
        """Open the backend. Must set ``self._connected = True``."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the backend. Must be safe to call multiple times."""

    @abstractmethod
    def _write(self, type: str, id: str, data: dict[str, Any]) -> None:
        """Insert or replace an already validated record."""

    @abstractmethod
    def _read(self, type: str, id: str) -> dict[str, Any] | None:
        """Load a record, or None."""

    @abstractmethod
    def _remove(self, type: str, id: str) -> None:
        """Delete a record if present."""

    @abstractmethod
    def _records(self, type: str) -> list[dict[str, Any]]:
        """All records of ``type`` in insertion order."""

    @abstractmethod
    def list_types(self) -> list[str]:
        """Types that currently have records."""

    def is_connected(self) -> bool:
        return self._connected

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise StorageError(
                message=f"{self.__class__.__name__} not connected. Call connect() first.",
            )

    def create(self, type: str, id: str, data: dict[str, Any]) -> None:
        """Store a new record.

        Raises:
            ConflictError: If a record with the same ``(type, id)`` exists.
        """
        self._ensure_connected()
        validate_record(type, id, data)
        if self._read(type, id) is not None:
            raise ConflictError(
                f"Resource {type}/{id} already exists",
                context=ErrorContext(resource_type=type, resource_id=id, action="create"),
                suggestions=["Use update to change an existing record"],
            )
        self._write(type, id, data)

    def get(self, type: str, id: str) -> dict[str, Any] | None:
        self._ensure_connected()
        return self._read(type, id)

    def update(self, type: str, id: str, data: dict[str, Any]) -> None:
        self._ensure_connected()
        validate_record(type, id, data)
        self._write(type, id, data)

    def delete(self, type: str, id: str) -> None:
        self._ensure_connected()
        self._remove(type, id)

    def list(
        self,
        type: str,
        filter: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> ListResult:
        self._ensure_connected()
        return paginate(self._records(type), filter, page, page_size)

    def exists(self, type: str, id: str) -> bool:
        return self.get(type, id) is not None

    def batch_create(self, items: Iterable[BatchItem], continue_on_error: bool = False) -> None:
        self._batch("create", items, continue_on_error, lambda i: self.create(i.type, i.id, i.data))

    def batch_update(self, items: Iterable[BatchItem], continue_on_error: bool = False) -> None:
        self._batch("update", items, continue_on_error, lambda i: self.update(i.type, i.id, i.data))

    def batch_delete(self, items: Iterable[BatchItem], continue_on_error: bool = False) -> None:
        self._batch("delete", items, continue_on_error, lambda i: self.delete(i.type, i.id))

    def _batch(self, operation: str, items: Iterable[BatchItem], continue_on_error: bool, apply) -> None:
        """Apply ``apply`` to each item in order.

        Stops at the first failure unless ``continue_on_error`` is set, in
        which case every item is attempted and a single StorageError reports
        how many failed.
        """
        if not continue_on_error:
            for item in items:
                apply(item)
            return

        errors: list[tuple[BatchItem, Exception]] = []
        for item in items:
            try:
                apply(item)
            except Exception as e:
                errors.append((item, e))

        if errors:
            raise StorageError(
                message=f"Batch {operation} completed with {len(errors)} errors",
                cause=errors[0][1],
                failed=[f"{item.type}/{item.id}" for item, _ in errors],
            )

    def __enter__(self: T) -> T:
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.disconnect()
