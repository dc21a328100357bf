"""Pytest fixtures for cogmedia tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import pytest

from cogmedia.config import EngineConfig
from cogmedia.core.statemachine import StateMachineBuilder, StateMachineDefinition
from cogmedia.navigation import Navigator
from cogmedia.observability.logging import ROOT_LOGGER_NAME
from cogmedia.storage import InMemoryStorage, StorageFactory
from cogmedia.store import ResourceStore


def build_task_machine() -> StateMachineDefinition:
    return (
        StateMachineBuilder("pending")
        .state("pending", "Waiting to be started")
        .state("inProgress", "Being worked on")
        .state("blocked", "Waiting on something else")
        .state("completed", "Finished")
        .state("cancelled", "Abandoned")
        .transition("pending", "start", "inProgress", "Start working on the task")
        .transition("pending", "cancel", "cancelled")
        .transition("inProgress", "complete", "completed", "Mark the task as done")
        .transition("inProgress", "block", "blocked")
        .transition("blocked", "unblock", "inProgress")
        .build()
    )


@pytest.fixture
def simple_machine_dict() -> dict[str, Any]:
    """Three-state machine in its camelCase transfer form."""
    return {
        "initialState": "pending",
        "states": {
            "pending": {
                "description": "Waiting to be started",
                "transitions": {"start": {"target": "inProgress"}},
            },
            "inProgress": {
                "description": "Being worked on",
                "transitions": {"complete": {"target": "completed"}},
            },
            "completed": {"description": "Finished"},
        },
    }


@pytest.fixture
def task_machine() -> StateMachineDefinition:
    return build_task_machine()


@pytest.fixture
def storage() -> Iterator[InMemoryStorage]:
    storage = StorageFactory.create_for_testing()
    yield storage
    storage.disconnect()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(_env_file=None)


@pytest.fixture
def store(storage: InMemoryStorage, task_machine: StateMachineDefinition, config: EngineConfig) -> ResourceStore:
    return ResourceStore(storage, {"task": task_machine}, config=config)


@pytest.fixture
def navigator(store: ResourceStore) -> Navigator:
    return Navigator(store)


@pytest.fixture(autouse=True)
def reset_cogmedia_logger() -> Iterator[None]:
    """Undo any handler configuration a test installs on the package logger."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
