"""ResourceStore: persistence, enhancement and action execution.

The store is the only component that talks to Storage. It writes raw
property bags, reads them back, and runs the enhancement pipeline so that
every Resource it returns carries its current actions, state, links,
presentation hints and prompts.

Example:
    >>> from cogmedia.storage import StorageFactory
    >>> store = ResourceStore(StorageFactory.create_for_testing())
    >>> store.register_state_machine("task", task_machine)
    >>> task = store.create("task", {"title": "Write docs"})
    >>> task.current_state
    'pending'
    >>> store.perform_action("task", task.id, "start").current_state
    'inProgress'

Concurrent ``update``/``perform_action`` calls on the same resource are not
serialized. Each is a read-modify-write against Storage.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from cogmedia.config import EngineConfig, load_config
from cogmedia.core.collection import Collection
from cogmedia.core.models import Link, PaginationInfo
from cogmedia.core.resource import Resource
from cogmedia.core.statemachine import StateMachine, StateMachineDefinition
from cogmedia.errors import (
    ConflictError,
    ErrorContext,
    InvalidActionError,
    InvalidTransitionError,
    ResourceNotFoundError,
    ValidationError,
)
from cogmedia.observability.logging import configure_logging, structured
from cogmedia.storage.base import Storage
from cogmedia.storage.factory import StorageFactory
from cogmedia.store.enhancers import (
    HISTORY_PROPERTY,
    LINKS_PROPERTY,
    STATUS_PROPERTY,
    PresentationRegistry,
    PromptRegistry,
    collection_actions,
    enhance,
    stored_links,
)

logger = logging.getLogger(__name__)

PROTECTED_PROPERTIES = ("id", "createdAt")
GOVERNED_PROPERTIES = (STATUS_PROPERTY, HISTORY_PROPERTY)


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class ResourceStore:
    """Persists resources and computes their hypermedia affordances.

    Args:
        storage: Any object implementing the Storage protocol. It must
            already be connected.
        state_machines: Initial registry, resource type to definition.
        config: Engine configuration. Defaults to ``EngineConfig()``.
        presentation: Presentation hints registry.
        prompts: Conversation prompt registry.
    """

    def __init__(
        self,
        storage: Storage,
        state_machines: dict[str, StateMachineDefinition | dict[str, Any]] | None = None,
        config: EngineConfig | None = None,
        presentation: PresentationRegistry | None = None,
        prompts: PromptRegistry | None = None,
    ) -> None:
        self.storage = storage
        self.config = config or EngineConfig()
        self.presentation = presentation or PresentationRegistry()
        self.prompts = prompts or PromptRegistry()
        self._machines: dict[str, StateMachine] = {}

        for type, definition in (state_machines or {}).items():
            self.register_state_machine(type, definition)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig | None = None,
        state_machines: dict[str, StateMachineDefinition | dict[str, Any]] | None = None,
        setup_logging: bool = True,
        **kwargs: Any,
    ) -> ResourceStore:
        """Build a store whose storage and logging follow ``config``.

        Storage is created from ``config.storage_url`` and connected. Unless
        ``setup_logging`` is False, the ``cogmedia`` logger is configured
        with ``config.log_level`` and ``config.log_format``.

        Raises:
            StorageBackendError: If no backend handles the storage URL.
        """
        config = config or load_config()
        if setup_logging:
            configure_logging(level=config.log_level, log_format=config.log_format)

        storage = StorageFactory.from_url(config.storage_url)
        storage.connect()
        logger.info(
            f"Connected {storage.__class__.__name__} for {config.storage_url}",
            extra=structured(storage_url=config.storage_url),
        )
        return cls(storage, state_machines, config=config, **kwargs)

    # State machines

    def register_state_machine(
        self,
        type: str,
        definition: StateMachineDefinition | dict[str, Any],
    ) -> StateMachine:
        """Validate ``definition`` and make it govern ``type``.

        A machine already registered for ``type`` is replaced.

        Raises:
            StateMachineDefinitionError: If the definition references
                undefined states.
        """
        machine = StateMachine(definition)
        if type in self._machines:
            logger.warning(
                f"Replacing state machine for type: {type}",
                extra=structured(type=type, initial_state=machine.initial_state),
            )
        else:
            logger.info(
                f"Registered state machine for type: {type}",
                extra=structured(type=type, states=machine.states),
            )
        self._machines[type] = machine
        return machine

    def get_state_machine(self, type: str) -> StateMachine | None:
        return self._machines.get(type)

    # CRUD

    def create(self, type: str, data: dict[str, Any] | None = None) -> Resource:
        """Persist a new resource and return it enhanced.

        Uses ``data["id"]`` when given, otherwise a random UUID. Governed
        types start in their machine's initial state whatever ``status``
        the caller passed.
        """
        record = dict(data or {})
        id = str(record.get("id") or uuid.uuid4())
        now = utc_now()

        record["id"] = id
        record["createdAt"] = now
        record["updatedAt"] = now

        machine = self._machines.get(type)
        if machine is not None:
            record[STATUS_PROPERTY] = machine.initial_state
            record.pop(HISTORY_PROPERTY, None)

        self._check_links(type, id, record)
        self.storage.create(type, id, record)
        logger.info(f"Created {type}/{id}", extra=structured(type=type, id=id))
        return self._build(type, id, record)

    def get(self, type: str, id: str) -> Resource | None:
        record = self.storage.get(type, id)
        if record is None:
            return None
        return self._build(type, id, record)

    def update(self, type: str, id: str, updates: dict[str, Any]) -> Resource:
        """Merge ``updates`` into the stored properties.

        ``id`` and ``createdAt`` are never overwritten and ``updatedAt`` is
        stamped with the current time.

        Raises:
            ResourceNotFoundError: If the resource does not exist.
            ConflictError: If ``updates`` touches ``status`` or
                ``stateHistory`` on a type governed by a state machine.
        """
        existing = self._require(type, id)

        if type in self._machines:
            governed = [name for name in GOVERNED_PROPERTIES if name in updates]
            if governed:
                raise ConflictError(
                    f"Direct updates of {', '.join(governed)} are not allowed for type '{type}'. "
                    "Use perform_action for state transitions.",
                    context=ErrorContext(resource_type=type, resource_id=id, action="update"),
                    fields=governed,
                )

        record = self._merge(id, existing, updates)
        self._check_links(type, id, record)
        self.storage.update(type, id, record)
        logger.debug(f"Updated {type}/{id}", extra=structured(type=type, id=id, fields=sorted(updates)))
        return self._build(type, id, record)

    def delete(self, type: str, id: str) -> None:
        """Delete the resource. Succeeds whether or not it exists."""
        self.storage.delete(type, id)
        logger.info(f"Deleted {type}/{id}", extra=structured(type=type, id=id))

    def get_collection(
        self,
        type: str,
        filter: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> Collection:
        """One page of ``type`` resources matching ``filter`` exactly.

        Raises:
            ValidationError: If ``page`` or ``page_size`` is below 1.
        """
        if page < 1:
            raise ValidationError("page must be >= 1", field="page", value=page)
        if page_size is not None and page_size < 1:
            raise ValidationError("page_size must be >= 1", field="page_size", value=page_size)
        size = self.config.get_page_size(page_size)

        result = self.storage.list(type, filter=filter or None, page=page, page_size=size)

        collection = Collection(type)
        for record in result.items:
            collection.add_item(self._build(type, str(record["id"]), record))

        collection.set_pagination(PaginationInfo.compute(page, size, result.total_items))
        if filter:
            collection.set_filters(filter)
        for name, action in collection_actions(type).items():
            collection.add_action(name, action)
        return collection

    def get_resource_types(self) -> list[str]:
        return self.storage.list_types()

    # Actions

    def perform_action(
        self,
        type: str,
        id: str,
        action: str,
        payload: dict[str, Any] | None = None,
    ) -> Resource | None:
        """Execute ``action`` on a resource.

        ``delete`` removes the resource and returns None. ``update`` needs a
        non-empty payload and behaves like ``update()``. ``get`` returns the
        resource unchanged. Any other action merges ``payload`` minus
        ``id``, ``createdAt``, ``status`` and ``stateHistory``. When the
        governing state machine defines a transition for it, ``status`` moves
        to the target and exactly one entry is appended to ``stateHistory``.

        Raises:
            ResourceNotFoundError: If the resource does not exist.
            InvalidTransitionError: If the state machine knows the action
                but not from the current status.
            InvalidActionError: If the action is not currently offered.
            ValidationError: If ``update`` is called without a payload.
        """
        resource = self.get(type, id)
        if resource is None:
            raise ResourceNotFoundError(type, id)

        machine = self._machines.get(type)
        if not resource.has_action(action):
            if machine is not None and machine.has_transition(action):
                raise InvalidTransitionError(type, id, action, resource.current_state)
            raise InvalidActionError(type, id, action)

        if action == "delete":
            self.delete(type, id)
            return None

        if action == "get":
            return resource

        if action == "update":
            if not payload:
                raise ValidationError(
                    "Payload is required and cannot be empty for 'update' action",
                    field="payload",
                    value=payload,
                    context=ErrorContext(resource_type=type, resource_id=id, action=action),
                )
            return self.update(type, id, payload)

        existing = self._require(type, id)
        updates = {k: v for k, v in (payload or {}).items() if k not in GOVERNED_PROPERTIES}
        record = self._merge(id, existing, updates)

        current = existing.get(STATUS_PROPERTY)
        target = machine.target_state(current, action) if machine and isinstance(current, str) else None
        if target is not None:
            record[STATUS_PROPERTY] = target
            history = list(record.get(HISTORY_PROPERTY) or [])
            history.append(
                {"from": current, "to": target, "timestamp": record["updatedAt"], "action": action}
            )
            record[HISTORY_PROPERTY] = history

        self._check_links(type, id, record)
        self.storage.update(type, id, record)

        if target is not None:
            logger.info(
                f"Transitioned {type}/{id} from {current} to {target}",
                extra=structured(type=type, id=id, action=action, from_state=current, to_state=target),
            )
        else:
            logger.info(
                f"Performed {action} on {type}/{id}",
                extra=structured(type=type, id=id, action=action),
            )
        return self._build(type, id, record)

    # Explicit links

    def get_stored_links(self, type: str, id: str) -> list[Link]:
        """Links persisted on the resource, excluding computed ones.

        Raises:
            ResourceNotFoundError: If the resource does not exist.
        """
        return stored_links(self._require(type, id).get(LINKS_PROPERTY))

    def set_stored_links(self, type: str, id: str, links: list[Link]) -> Resource:
        """Replace the persisted links of a resource."""
        return self.update(type, id, {LINKS_PROPERTY: [link.to_transfer() for link in links]})

    # Internals

    def _require(self, type: str, id: str) -> dict[str, Any]:
        record = self.storage.get(type, id)
        if record is None:
            raise ResourceNotFoundError(type, id)
        return record

    def _merge(self, id: str, existing: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
        record = dict(existing)
        record.update({k: v for k, v in updates.items() if k not in PROTECTED_PROPERTIES})
        record["id"] = id
        if "createdAt" in existing:
            record["createdAt"] = existing["createdAt"]
        record["updatedAt"] = utc_now()
        return record

    def _check_links(self, type: str, id: str, record: dict[str, Any]) -> None:
        """Reject a ``_links`` value that is not a list of link objects."""
        raw = record.get(LINKS_PROPERTY)
        if raw is None:
            return
        if not isinstance(raw, list):
            raise ValidationError(
                f"'{LINKS_PROPERTY}' must be a list of links",
                field=LINKS_PROPERTY,
                value=raw,
                context=ErrorContext(resource_type=type, resource_id=id),
            )
        for item in raw:
            if not isinstance(item, dict) or not item.get("rel") or not item.get("href"):
                raise ValidationError(
                    "Each stored link needs a 'rel' and an 'href'",
                    field=LINKS_PROPERTY,
                    value=item,
                    context=ErrorContext(resource_type=type, resource_id=id),
                )

    def _build(self, type: str, id: str, record: dict[str, Any]) -> Resource:
        return enhance(
            type,
            id,
            record,
            machine=self._machines.get(type),
            relationship_suffix=self.config.relationship_suffix,
            presentation=self.presentation,
            prompts=self.prompts,
        )

