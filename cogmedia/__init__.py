"""cogmedia - Stateful Hypermedia Resource Engine.

cogmedia stores typed resources and, every time one is read, computes the
hypermedia affordances a client needs to work with it: the actions it can
perform right now, its state-machine status, links to related resources,
presentation hints and conversation prompts.

Key Features:
    - Resources: open property bags with immutable type and id
    - State Machines: per-type status governed by declared transitions
    - Collections: filtered, paginated lists with collection actions
    - Navigation: bidirectional links, reverse lookup, cycle-safe graphs
    - Storage: in-memory and SQLite backends behind one protocol

Example:
    >>> from cogmedia import ResourceStore, StateMachineBuilder, StorageFactory
    >>>
    >>> machine = (
    ...     StateMachineBuilder("pending")
    ...     .state("pending").state("inProgress").state("completed")
    ...     .transition("pending", "start", "inProgress")
    ...     .transition("inProgress", "complete", "completed")
    ...     .build()
    ... )
    >>> store = ResourceStore(StorageFactory.create_for_testing(), {"task": machine})
    >>> task = store.create("task", {"title": "Write docs"})
    >>> sorted(task.actions)
    ['delete', 'get', 'start', 'update']
    >>> store.perform_action("task", task.id, "start").current_state
    'inProgress'
"""

from cogmedia.config import EngineConfig, load_config
from cogmedia.core import (
    ActionDef,
    Collection,
    CollectionBuilder,
    ConversationPrompt,
    Link,
    PaginationInfo,
    PresentationHints,
    Relationship,
    Resource,
    ResourceBuilder,
    ResourceState,
    StateMachine,
    StateMachineBuilder,
    StateMachineDefinition,
)
from cogmedia.errors import (
    CogmediaError,
    ConflictError,
    ErrorCode,
    InvalidActionError,
    InvalidTransitionError,
    ResourceNotFoundError,
    StateMachineDefinitionError,
    StorageBackendError,
    StorageError,
    ValidationError,
)
from cogmedia.navigation import GraphEdge, GraphNode, Navigator, ResourceGraph
from cogmedia.observability import configure_logging, log_context
from cogmedia.storage import InMemoryStorage, SQLiteStorage, Storage, StorageFactory
from cogmedia.store import PresentationRegistry, PromptRegistry, ResourceStore

__version__ = "0.1.0"

__all__ = [
    "ActionDef",
    "CogmediaError",
    "Collection",
    "CollectionBuilder",
    "ConflictError",
    "ConversationPrompt",
    "EngineConfig",
    "ErrorCode",
    "GraphEdge",
    "GraphNode",
    "InMemoryStorage",
    "InvalidActionError",
    "InvalidTransitionError",
    "Link",
    "Navigator",
    "PaginationInfo",
    "PresentationHints",
    "PresentationRegistry",
    "PromptRegistry",
    "Relationship",
    "Resource",
    "ResourceBuilder",
    "ResourceGraph",
    "ResourceNotFoundError",
    "ResourceState",
    "ResourceStore",
    "SQLiteStorage",
    "StateMachine",
    "StateMachineBuilder",
    "StateMachineDefinition",
    "StateMachineDefinitionError",
    "Storage",
    "StorageBackendError",
    "StorageError",
    "StorageFactory",
    "ValidationError",
    "__version__",
    "configure_logging",
    "load_config",
    "log_context",
]
