"""Core module exports."""

from cogmedia.core.collection import Collection, CollectionBuilder
from cogmedia.core.models import (
    ActionDef,
    ActionPriorities,
    Cardinality,
    ConversationPrompt,
    DisallowedTransition,
    Link,
    PaginationInfo,
    ParameterDef,
    ParameterType,
    PresentationHints,
    PriorityLevel,
    ProgressIndicator,
    ProgressIndicatorType,
    PromptType,
    Relationship,
    ResourceState,
    StateHistoryEntry,
)
from cogmedia.core.resource import Resource, ResourceBuilder
from cogmedia.core.statemachine import (
    StateDefinition,
    StateMachine,
    StateMachineBuilder,
    StateMachineDefinition,
    TransitionDefinition,
    TransitionInfo,
)

__all__ = [
    "ActionDef",
    "ActionPriorities",
    "Cardinality",
    "Collection",
    "CollectionBuilder",
    "ConversationPrompt",
    "DisallowedTransition",
    "Link",
    "PaginationInfo",
    "ParameterDef",
    "ParameterType",
    "PresentationHints",
    "PriorityLevel",
    "ProgressIndicator",
    "ProgressIndicatorType",
    "PromptType",
    "Relationship",
    "Resource",
    "ResourceBuilder",
    "ResourceState",
    "StateDefinition",
    "StateHistoryEntry",
    "StateMachine",
    "StateMachineBuilder",
    "StateMachineDefinition",
    "TransitionDefinition",
    "TransitionInfo",
]
