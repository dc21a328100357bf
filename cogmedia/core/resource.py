"""Resource: the entity every other component passes around.

A Resource pairs an immutable identity (``type`` + ``id``) with an open
property bag and the hypermedia affordances computed for it: actions, state,
relationships, presentation hints, prompts and links.

Example:
    >>> resource = Resource("task-1", "task", {"title": "Write docs"})
    >>> resource.get_link("self").href
    '/task/task-1'
    >>> resource.to_dict()["properties"]
    {'title': 'Write docs'}
"""

from __future__ import annotations

from typing import Any

from cogmedia.core.models import (
    ActionDef,
    ConversationPrompt,
    Link,
    PresentationHints,
    Relationship,
    ResourceState,
)


class Resource:
    """An identified, typed resource with computed hypermedia affordances.

    Only ``properties`` are ever persisted. Everything else is derived by the
    store's enhancement pipeline each time the resource is loaded.

    Attributes:
        id: Identifier, unique within ``type``. Read-only.
        type: Resource type name. Read-only.
    """

    def __init__(
        self,
        id: str,
        type: str,
        properties: dict[str, Any] | None = None,
        actions: dict[str, ActionDef] | None = None,
        links: list[Link] | None = None,
    ) -> None:
        self._id = id
        self._type = type
        self._properties: dict[str, Any] = dict(properties or {})
        self._actions: dict[str, ActionDef] = dict(actions or {})
        self._state: ResourceState | None = None
        self._relationships: dict[str, Relationship] = {}
        self._presentation = PresentationHints()
        self._prompts: list[ConversationPrompt] = []
        self._links: list[Link] = []

        self.add_link(Link(rel="self", href=self.self_href))
        for link in links or []:
            self.add_link(link)

    @property
    def id(self) -> str:
        return self._id

    @property
    def type(self) -> str:
        return self._type

    @property
    def self_href(self) -> str:
        return f"/{self._type}/{self._id}"

    # Properties

    def get_property(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    def set_property(self, name: str, value: Any) -> Resource:
        self._properties[name] = value
        return self

    @property
    def properties(self) -> dict[str, Any]:
        """Copy of the property bag, in insertion order."""
        return dict(self._properties)

    # Actions

    def add_action(self, name: str, action: ActionDef | dict[str, Any]) -> Resource:
        if isinstance(action, dict):
            action = ActionDef.model_validate(action)
        self._actions[name] = action
        return self

    def get_action(self, name: str) -> ActionDef | None:
        return self._actions.get(name)

    def has_action(self, name: str) -> bool:
        return name in self._actions

    @property
    def actions(self) -> dict[str, ActionDef]:
        return dict(self._actions)

    def clear_actions(self) -> Resource:
        self._actions = {}
        return self

    # State

    def set_state(self, state: ResourceState | dict[str, Any]) -> Resource:
        if isinstance(state, dict):
            state = ResourceState.model_validate(state)
        self._state = state
        return self

    @property
    def state(self) -> ResourceState | None:
        return self._state

    @property
    def current_state(self) -> str | None:
        return self._state.current if self._state else None

    # Relationships

    def add_relationship(self, name: str, relationship: Relationship | dict[str, Any]) -> Resource:
        if isinstance(relationship, dict):
            relationship = Relationship.model_validate(relationship)
        self._relationships[name] = relationship
        return self

    def get_relationship(self, name: str) -> Relationship | None:
        return self._relationships.get(name)

    @property
    def relationships(self) -> dict[str, Relationship]:
        return dict(self._relationships)

    # Presentation

    def set_presentation(self, hints: PresentationHints | dict[str, Any]) -> Resource:
        """Merge ``hints`` over the existing presentation hints."""
        self._presentation = self._presentation.merged(hints)
        return self

    @property
    def presentation(self) -> PresentationHints:
        return self._presentation.model_copy()

    # Prompts

    def add_prompt(self, prompt: ConversationPrompt | dict[str, Any]) -> Resource:
        if isinstance(prompt, dict):
            prompt = ConversationPrompt.model_validate(prompt)
        self._prompts.append(prompt)
        return self

    @property
    def prompts(self) -> list[ConversationPrompt]:
        return list(self._prompts)

    # Links

    def add_link(self, link: Link | dict[str, Any]) -> Resource:
        """Append a link unless one with the same (rel, href) exists."""
        if isinstance(link, dict):
            link = Link.model_validate(link)
        if not any(existing.key == link.key for existing in self._links):
            self._links.append(link)
        return self

    def remove_links(self, href: str, rel: str | None = None) -> int:
        """Drop links pointing at ``href`` (only those with ``rel`` if given).

        The ``self`` link is never removed. Returns the number removed.
        """
        kept = [
            link
            for link in self._links
            if link.rel == "self"
            or link.href != href
            or (rel is not None and link.rel != rel)
        ]
        removed = len(self._links) - len(kept)
        self._links = kept
        return removed

    @property
    def links(self) -> list[Link]:
        return list(self._links)

    def get_link(self, rel: str) -> Link | None:
        """First link with the given relation, if any."""
        return next((link for link in self._links if link.rel == rel), None)

    def get_links(self, rel: str) -> list[Link]:
        return [link for link in self._links if link.rel == rel]

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Transfer representation. Empty optional sections are omitted."""
        result: dict[str, Any] = {
            "id": self._id,
            "type": self._type,
            "properties": dict(self._properties),
        }

        if self._actions:
            result["actions"] = {name: a.to_transfer() for name, a in self._actions.items()}
        if self._state is not None:
            result["state"] = self._state.to_transfer()
        if self._relationships:
            result["relationships"] = {
                name: r.to_transfer() for name, r in self._relationships.items()
            }
        if not self._presentation.is_empty():
            result["presentation"] = self._presentation.to_transfer()
        if self._prompts:
            result["prompts"] = [p.to_transfer() for p in self._prompts]
        if self._links:
            result["links"] = [link.to_transfer() for link in self._links]

        return result

    def __repr__(self) -> str:
        return f"Resource({self._type}/{self._id})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]


class ResourceBuilder:
    """Fluent construction of a Resource.

    Example:
        >>> resource = (
        ...     ResourceBuilder.for_("o-1", "order")
        ...     .property("total", 42)
        ...     .action("pay", ActionDef(description="Pay the order"))
        ...     .build()
        ... )
    """

    def __init__(self, id: str, type: str) -> None:
        self._id = id
        self._type = type
        self._properties: dict[str, Any] = {}
        self._actions: dict[str, ActionDef | dict[str, Any]] = {}
        self._links: list[Link | dict[str, Any]] = []
        self._state: ResourceState | dict[str, Any] | None = None
        self._relationships: dict[str, Relationship | dict[str, Any]] = {}
        self._presentation: list[PresentationHints | dict[str, Any]] = []
        self._prompts: list[ConversationPrompt | dict[str, Any]] = []

    @classmethod
    def for_(cls, id: str, type: str) -> ResourceBuilder:
        return cls(id, type)

    def property(self, name: str, value: Any) -> ResourceBuilder:
        self._properties[name] = value
        return self

    def properties(self, props: dict[str, Any]) -> ResourceBuilder:
        self._properties.update(props)
        return self

    def action(self, name: str, action: ActionDef | dict[str, Any]) -> ResourceBuilder:
        self._actions[name] = action
        return self

    def state(self, state: ResourceState | dict[str, Any]) -> ResourceBuilder:
        self._state = state
        return self

    def relationship(self, name: str, relationship: Relationship | dict[str, Any]) -> ResourceBuilder:
        self._relationships[name] = relationship
        return self

    def presentation(self, hints: PresentationHints | dict[str, Any]) -> ResourceBuilder:
        self._presentation.append(hints)
        return self

    def prompt(self, prompt: ConversationPrompt | dict[str, Any]) -> ResourceBuilder:
        self._prompts.append(prompt)
        return self

    def link(self, link: Link | dict[str, Any]) -> ResourceBuilder:
        self._links.append(link)
        return self

    def build(self) -> Resource:
        resource = Resource(self._id, self._type, self._properties)
        for name, action in self._actions.items():
            resource.add_action(name, action)
        for link in self._links:
            resource.add_link(link)
        if self._state is not None:
            resource.set_state(self._state)
        for name, relationship in self._relationships.items():
            resource.add_relationship(name, relationship)
        for hints in self._presentation:
            resource.set_presentation(hints)
        for prompt in self._prompts:
            resource.add_prompt(prompt)
        return resource
