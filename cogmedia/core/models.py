"""Hypermedia value types shared by resources, collections and the store.

All models use Pydantic for validation and serialization. Field names are
snake_case in Python and camelCase on the wire (``allowedTransitions``,
``pageSize``...); either spelling is accepted on input.

Example:
    >>> action = ActionDef(description="Start working", effect="pending -> inProgress")
    >>> action.to_transfer()
    {'description': 'Start working', 'effect': 'pending -> inProgress'}
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PriorityLevel(str, Enum):
    """Importance used when rendering resources and prompts."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ParameterType(str, Enum):
    """JSON kind of an action parameter."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class Cardinality(str, Enum):
    ONE = "one"
    MANY = "many"


class PromptType(str, Enum):
    """Kind of suggested follow-up attached to a resource."""

    FOLLOW_UP = "follow-up"
    CONFIRMATION = "confirmation"
    EXPLANATION = "explanation"
    SUGGESTION = "suggestion"


class ProgressIndicatorType(str, Enum):
    PERCENTAGE = "percentage"
    FRACTION = "fraction"
    STEPS = "steps"


class HypermediaModel(BaseModel):
    """Base for all wire-facing models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
    )

    def to_transfer(self) -> dict[str, Any]:
        """Serialize with camelCase keys, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ParameterDef(HypermediaModel):
    """Definition of a single action parameter."""

    type: ParameterType = Field(..., description="Expected JSON kind")
    description: str | None = None
    required: bool | None = None
    default: Any = None
    options: list[Any] | None = Field(default=None, description="Enumerated values")
    min: float | None = None
    max: float | None = None
    pattern: str | None = Field(default=None, description="Regex for string values")


class ActionDef(HypermediaModel):
    """An operation advertised on a resource or collection.

    Attributes:
        description: What the action does, in plain words.
        effect: Side effect of performing it (e.g. the state change).
        confirmation: Question to ask before performing it.
        parameters: Named parameters the action accepts.
    """

    description: str = Field(..., description="Human-readable description")
    effect: str | None = None
    confirmation: str | None = None
    parameters: dict[str, ParameterDef] | None = None


class Link(HypermediaModel):
    """A typed, directional relation to another resource or collection."""

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., min_length=1, description="Relation type")
    href: str = Field(..., min_length=1, description="Target path, e.g. /customer/c-1")
    title: str | None = None
    type: str | None = Field(default=None, description="Media type hint")

    @property
    def key(self) -> tuple[str, str]:
        """Identity used for de-duplication."""
        return (self.rel, self.href)

    def target(self) -> tuple[str, str] | None:
        """Split ``/type/id`` into its parts, or None for other shapes."""
        parts = [part for part in self.href.split("/") if part]
        if len(parts) != 2:
            return None
        return parts[0], parts[1]


class Relationship(HypermediaModel):
    """Structured description of a related resource."""

    type: str
    id: str | None = None
    preview: dict[str, Any] | None = None
    cardinality: Cardinality | None = None
    role: str | None = None


class StateHistoryEntry(HypermediaModel):
    """One recorded transition in a resource's status history."""

    model_config = ConfigDict(extra="allow")

    from_: str | None = Field(default=None, alias="from")
    to: str
    timestamp: str
    action: str | None = None
    actor: str | None = None
    reason: str | None = None


class DisallowedTransition(HypermediaModel):
    action: str
    reason: str


class ResourceState(HypermediaModel):
    """Computed view of a governed resource's status."""

    current: str
    description: str | None = None
    allowed_transitions: list[str] = Field(default_factory=list)
    disallowed_transitions: list[DisallowedTransition] | None = None
    history: list[StateHistoryEntry] = Field(default_factory=list)


class ProgressIndicator(HypermediaModel):
    type: ProgressIndicatorType
    value: float
    max: float | None = None
    label: str | None = None


class ActionPriorities(HypermediaModel):
    primary: str | None = None
    secondary: list[str] | None = None


class PresentationHints(HypermediaModel):
    """Advisory display metadata. Never required for correctness."""

    priority: PriorityLevel | None = None
    visualization: str | None = Field(default=None, description="e.g. card, listItem")
    icon: str | None = None
    color: str | None = None
    grouping: str | None = None
    emphasis_properties: list[str] | None = None
    progress_indicator: ProgressIndicator | None = None
    action_priorities: ActionPriorities | None = None
    primary_property: str | None = None
    secondary_property: str | None = None
    metadata: list[str] | None = None

    def merged(self, other: PresentationHints | dict[str, Any]) -> PresentationHints:
        """Return a copy with the fields set on ``other`` layered on top."""
        if isinstance(other, dict):
            other = PresentationHints.model_validate(other)
        updates = other.model_dump(exclude_none=True)
        return self.model_copy(update={k: getattr(other, k) for k in updates})

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ConversationPrompt(HypermediaModel):
    """A suggested follow-up for whoever is reading the resource."""

    type: PromptType
    text: str = Field(..., min_length=1)
    action: str | None = Field(default=None, description="Related action id")
    condition: str | None = None
    priority: PriorityLevel | None = None


class PaginationInfo(HypermediaModel):
    """Page metadata of a collection.

    ``total_pages`` always equals ``ceil(total_items / page_size)``.
    """

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_items: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)

    @field_validator("total_pages")
    @classmethod
    def validate_total_pages(cls, v: int, info: Any) -> int:
        data = info.data
        if "total_items" in data and "page_size" in data:
            expected = math.ceil(data["total_items"] / data["page_size"])
            if v != expected:
                raise ValueError(f"total_pages must be {expected}, got {v}")
        return v

    @classmethod
    def compute(cls, page: int, page_size: int, total_items: int) -> PaginationInfo:
        """Build pagination metadata, deriving the page count."""
        return cls(
            page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=math.ceil(total_items / page_size),
        )
