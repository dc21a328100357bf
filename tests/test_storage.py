"""Tests for storage backends and the storage factory."""

from __future__ import annotations

import math
from collections.abc import Iterator
from pathlib import Path

import pytest

from cogmedia.errors import ConflictError, StorageBackendError, StorageError, ValidationError
from cogmedia.storage import (
    BaseStorage,
    BatchItem,
    InMemoryStorage,
    SQLiteStorage,
    StorageFactory,
    matches_filter,
    paginate,
    validate_record,
)


@pytest.fixture(params=["memory", "sqlite"])
def backend(request: pytest.FixtureRequest) -> Iterator[BaseStorage]:
    if request.param == "memory":
        storage: BaseStorage = InMemoryStorage("memory://test")
    else:
        storage = SQLiteStorage("sqlite://:memory:")
    storage.connect()
    yield storage
    storage.disconnect()


def record(id: str, created_at: str, **props: object) -> dict:
    return {"id": id, "createdAt": created_at, **props}


class TestBackendContract:
    """Behaviour every backend must share."""

    def test_create_and_get(self, backend: BaseStorage) -> None:
        backend.create("task", "t-1", record("t-1", "2024-01-01", title="Docs"))
        assert backend.get("task", "t-1")["title"] == "Docs"

    def test_get_missing(self, backend: BaseStorage) -> None:
        assert backend.get("task", "nope") is None

    def test_update_replaces(self, backend: BaseStorage) -> None:
        backend.create("task", "t-1", {"id": "t-1", "a": 1})
        backend.update("task", "t-1", {"id": "t-1", "b": 2})
        assert backend.get("task", "t-1") == {"id": "t-1", "b": 2}

    def test_create_existing_conflicts(self, backend: BaseStorage) -> None:
        backend.create("task", "t-1", {"id": "t-1", "title": "first"})
        with pytest.raises(ConflictError):
            backend.create("task", "t-1", {"id": "t-1", "title": "second"})
        assert backend.get("task", "t-1")["title"] == "first"

    def test_delete_is_idempotent(self, backend: BaseStorage) -> None:
        backend.create("task", "t-1", {"id": "t-1"})
        backend.delete("task", "t-1")
        backend.delete("task", "t-1")
        assert backend.get("task", "t-1") is None
        assert backend.exists("task", "t-1") is False

    def test_returned_records_are_isolated(self, backend: BaseStorage) -> None:
        backend.create("task", "t-1", {"id": "t-1", "tags": ["a"]})
        loaded = backend.get("task", "t-1")
        loaded["tags"].append("b")
        assert backend.get("task", "t-1")["tags"] == ["a"]

    def test_types_are_separate(self, backend: BaseStorage) -> None:
        backend.create("task", "x", {"id": "x", "kind": "task"})
        backend.create("note", "x", {"id": "x", "kind": "note"})
        assert backend.get("task", "x")["kind"] == "task"
        assert backend.list_types() == ["note", "task"]

    def test_list_orders_by_created_at(self, backend: BaseStorage) -> None:
        backend.create("task", "b", record("b", "2024-01-02"))
        backend.create("task", "a", record("a", "2024-01-01"))
        backend.create("task", "c", record("c", "2024-01-02"))
        result = backend.list("task")
        assert [r["id"] for r in result.items] == ["a", "b", "c"]

    def test_list_filter_and_page(self, backend: BaseStorage) -> None:
        for index, color in enumerate(["red", "blue", "red", "red"]):
            backend.create("widget", f"w-{index}", record(f"w-{index}", f"2024-01-0{index + 1}", color=color))

        result = backend.list("widget", filter={"color": "red"}, page=2, page_size=2)

        assert result.total_items == 3
        assert [r["id"] for r in result.items] == ["w-3"]
        assert math.ceil(result.total_items / 2) == 2

    def test_list_unknown_type_is_empty(self, backend: BaseStorage) -> None:
        result = backend.list("ghost")
        assert result.items == []
        assert result.total_items == 0

    def test_rejects_non_json_values(self, backend: BaseStorage) -> None:
        with pytest.raises(ValidationError):
            backend.create("task", "t-1", {"id": "t-1", "when": object()})

    def test_requires_connection(self, backend: BaseStorage) -> None:
        backend.disconnect()
        with pytest.raises(StorageError):
            backend.get("task", "t-1")


class TestBatchOperations:
    """Tests for batch helpers on BaseStorage."""

    def test_batch_create_and_delete(self, backend: BaseStorage) -> None:
        items = [BatchItem("task", f"t-{i}", {"id": f"t-{i}"}) for i in range(3)]
        backend.batch_create(items)
        assert backend.list("task").total_items == 3

        backend.batch_delete(items[:2])
        assert [r["id"] for r in backend.list("task").items] == ["t-2"]

    def test_batch_stops_on_first_error(self, backend: BaseStorage) -> None:
        items = [
            BatchItem("task", "t-1", {"id": "t-1"}),
            BatchItem("task", "t-2", {"id": "t-2", "bad": {1, 2}}),
            BatchItem("task", "t-3", {"id": "t-3"}),
        ]
        with pytest.raises(ValidationError):
            backend.batch_create(items)
        assert backend.exists("task", "t-1")
        assert not backend.exists("task", "t-3")

    def test_batch_continue_on_error_collects_failures(self, backend: BaseStorage) -> None:
        items = [
            BatchItem("task", "t-1", {"id": "t-1"}),
            BatchItem("task", "t-2", {"id": "t-2", "bad": {1, 2}}),
            BatchItem("task", "t-3", {"id": "t-3"}),
        ]
        with pytest.raises(StorageError) as exc_info:
            backend.batch_create(items, continue_on_error=True)

        assert exc_info.value.context.extra["failed"] == ["task/t-2"]
        assert backend.exists("task", "t-3")


class TestInMemoryStorage:
    """Tests specific to InMemoryStorage."""

    def test_initial_data_and_reset(self) -> None:
        storage = InMemoryStorage(initial_data={"task": {"t-1": {"id": "t-1"}}})
        with storage:
            storage.create("task", "t-2", {"id": "t-2"})
            storage.reset()
            assert storage.snapshot() == {"task": {"t-1": {"id": "t-1"}}}

    def test_empty_types_are_dropped(self) -> None:
        with InMemoryStorage() as storage:
            storage.create("task", "t-1", {"id": "t-1"})
            storage.delete("task", "t-1")
            assert storage.list_types() == []


class TestSQLiteStorage:
    """Tests specific to SQLiteStorage."""

    def test_file_database_persists_across_connections(self, tmp_path: Path) -> None:
        url = f"sqlite://{tmp_path / 'resources.db'}"
        with SQLiteStorage(url) as storage:
            storage.create("task", "t-1", {"id": "t-1", "title": "Docs"})

        with SQLiteStorage(url) as storage:
            assert storage.get("task", "t-1")["title"] == "Docs"
            assert storage.count() == 1
            assert storage.count("note") == 0

    def test_absolute_url_keeps_leading_slash(self, tmp_path: Path) -> None:
        storage = SQLiteStorage(f"sqlite://{tmp_path}/x.db")
        assert storage._parse_connection_url() == str(tmp_path / "x.db")

    def test_update_keeps_insertion_position(self) -> None:
        with SQLiteStorage("sqlite://:memory:") as storage:
            storage.create("task", "a", {"id": "a"})
            storage.create("task", "b", {"id": "b"})
            storage.update("task", "a", {"id": "a", "x": 1})
            assert [r["id"] for r in storage.list("task").items] == ["a", "b"]


class TestStorageFactory:
    """Tests for StorageFactory."""

    def test_from_url_memory(self) -> None:
        assert isinstance(StorageFactory.from_url("memory://app"), InMemoryStorage)

    def test_from_url_sqlite(self) -> None:
        assert isinstance(StorageFactory.from_url("sqlite://:memory:"), SQLiteStorage)

    def test_from_url_unknown_scheme(self) -> None:
        with pytest.raises(StorageBackendError):
            StorageFactory.from_url("redis://localhost")

    def test_create_aliases(self) -> None:
        for name in ("memory", "inmemory", "in-memory", "MEMORY"):
            assert isinstance(StorageFactory.create(name, "memory://x"), InMemoryStorage)

    def test_create_unknown_backend(self) -> None:
        with pytest.raises(StorageBackendError) as exc_info:
            StorageFactory.create("dynamo", "dynamo://x")
        assert "memory" in str(exc_info.value)

    def test_register_custom_backend(self) -> None:
        StorageFactory.register_backend("scratch", lambda connection_url, **kw: InMemoryStorage(connection_url))
        try:
            storage = StorageFactory.from_url("scratch://one")
            assert storage.connection_url == "scratch://one"
            assert "scratch" in StorageFactory.get_supported_backends()
        finally:
            assert StorageFactory.unregister_backend("scratch") is True

    def test_create_for_testing_is_connected(self) -> None:
        storage = StorageFactory.create_for_testing({"task": {"t-1": {"id": "t-1"}}})
        assert storage.is_connected()
        assert storage.exists("task", "t-1")


class TestHelpers:
    """Tests for validation, filtering and pagination helpers."""

    def test_validate_record_accepts_nested_json(self) -> None:
        validate_record("t", "1", {"a": [1, 2.5, {"b": None, "c": True}], "d": "x"})

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), b"bytes", {1: "x"}])
    def test_validate_record_rejects(self, bad: object) -> None:
        with pytest.raises(ValidationError):
            validate_record("t", "1", {"value": bad})

    def test_matches_filter(self) -> None:
        assert matches_filter({"a": 1, "b": 2}, {"a": 1})
        assert not matches_filter({"a": 1}, {"a": 2})
        assert not matches_filter({"a": 1}, {"missing": None})
        assert matches_filter({"a": 1}, None)

    def test_paginate_validates(self) -> None:
        with pytest.raises(ValidationError):
            paginate([], None, 0, 10)
        with pytest.raises(ValidationError):
            paginate([], None, 1, 0)
