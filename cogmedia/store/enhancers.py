"""The enhancement pipeline that turns stored properties into a Resource.

Nothing computed here is persisted. Every load runs the same stages over a
deep copy of the stored property bag, in a fixed order:

1. standard actions (``get``, ``update``, ``delete``)
2. state-machine actions and the ``state`` section
3. relationship links inferred from ``<type>Id`` properties, then the
   explicit links persisted under ``_links``
4. presentation hints from a PresentationRegistry
5. conversation prompts from a PromptRegistry
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cogmedia.core.models import (
    ActionDef,
    Cardinality,
    ConversationPrompt,
    DisallowedTransition,
    Link,
    PresentationHints,
    PromptType,
    Relationship,
    ResourceState,
    StateHistoryEntry,
)
from cogmedia.core.resource import Resource
from cogmedia.core.statemachine import StateMachine
from cogmedia.observability.logging import structured

logger = logging.getLogger(__name__)

STATUS_PROPERTY = "status"
HISTORY_PROPERTY = "stateHistory"
LINKS_PROPERTY = "_links"

STANDARD_ACTIONS = ("get", "update", "delete")

GENERIC_PROMPT = ConversationPrompt(
    type=PromptType.SUGGESTION,
    text="What actions can I perform on this?",
)


def standard_actions(type: str) -> dict[str, ActionDef]:
    """Actions every resource offers regardless of state."""
    return {
        "get": ActionDef(description=f"Retrieve this {type}"),
        "update": ActionDef(
            description=f"Update this {type}",
            parameters={
                "properties": {
                    "type": "object",
                    "description": "Properties to merge into the resource",
                    "required": True,
                }
            },
        ),
        "delete": ActionDef(
            description=f"Delete this {type}",
            effect="Permanently removes this resource",
            confirmation=f"Are you sure you want to delete this {type}?",
        ),
    }


def collection_actions(type: str) -> dict[str, ActionDef]:
    """Actions attached to every collection of ``type``."""
    return {
        "create": ActionDef(
            description=f"Create a new {type}",
            parameters={
                "properties": {
                    "type": "object",
                    "description": f"Properties of the new {type}",
                    "required": True,
                }
            },
        ),
        "filter": ActionDef(
            description=f"Filter the {type} collection",
            parameters={
                "criteria": {
                    "type": "object",
                    "description": "Property values that must match exactly",
                    "required": True,
                }
            },
        ),
    }


class PresentationRegistry:
    """Presentation hints per resource type, with optional per-status overrides.

    Governed resources always get ``status`` as an emphasized property. Type
    defaults are merged first, then the override for the current status.

    Example:
        >>> registry = PresentationRegistry()
        >>> registry.register("task", {"visualization": "card"})
        >>> registry.register("task", {"icon": "check", "color": "green"}, status="completed")
    """

    def __init__(self) -> None:
        self._defaults: dict[str, PresentationHints] = {}
        self._by_status: dict[tuple[str, str], PresentationHints] = {}

    def register(
        self,
        type: str,
        hints: PresentationHints | dict[str, Any],
        status: str | None = None,
    ) -> PresentationRegistry:
        if isinstance(hints, dict):
            hints = PresentationHints.model_validate(hints)
        if status is None:
            self._defaults[type] = self._defaults.get(type, PresentationHints()).merged(hints)
        else:
            key = (type, status)
            self._by_status[key] = self._by_status.get(key, PresentationHints()).merged(hints)
        return self

    def hints_for(self, type: str, status: str | None = None, governed: bool = False) -> PresentationHints:
        hints = PresentationHints()
        if governed and status is not None:
            hints = hints.merged({"emphasis_properties": [STATUS_PROPERTY]})
        if type in self._defaults:
            hints = hints.merged(self._defaults[type])
        if status is not None and (type, status) in self._by_status:
            hints = hints.merged(self._by_status[(type, status)])
        return hints


class PromptRegistry:
    """Conversation prompts per resource type, optionally tied to a status.

    Every resource gets the generic suggestion first, then the prompts
    registered for its type, then those registered for its current status.
    Prompt text may reference ``{label}``, which is replaced by the
    resource's ``title`` or ``name`` property, or its type.
    """

    def __init__(self, include_generic: bool = True) -> None:
        self.include_generic = include_generic
        self._by_type: dict[str, list[ConversationPrompt]] = {}
        self._by_status: dict[tuple[str, str], list[ConversationPrompt]] = {}

    def register(
        self,
        type: str,
        prompt: ConversationPrompt | dict[str, Any],
        status: str | None = None,
    ) -> PromptRegistry:
        if isinstance(prompt, dict):
            prompt = ConversationPrompt.model_validate(prompt)
        if status is None:
            self._by_type.setdefault(type, []).append(prompt)
        else:
            self._by_status.setdefault((type, status), []).append(prompt)
        return self

    def prompts_for(
        self,
        type: str,
        status: str | None,
        properties: dict[str, Any],
        available_actions: set[str] | None = None,
    ) -> list[ConversationPrompt]:
        """Prompts for a resource, dropping those tied to unavailable actions."""
        candidates: list[ConversationPrompt] = []
        if self.include_generic:
            candidates.append(GENERIC_PROMPT)
        candidates.extend(self._by_type.get(type, []))
        if status is not None:
            candidates.extend(self._by_status.get((type, status), []))

        label = str(properties.get("title") or properties.get("name") or type)
        result = []
        for prompt in candidates:
            if prompt.action and available_actions is not None and prompt.action not in available_actions:
                continue
            if "{label}" in prompt.text:
                prompt = prompt.model_copy(update={"text": prompt.text.replace("{label}", label)})
            result.append(prompt)
        return result


def _history(type: str, id: str, raw: Any) -> list[StateHistoryEntry]:
    if not isinstance(raw, list):
        return []
    entries = []
    for item in raw:
        try:
            entries.append(StateHistoryEntry.model_validate(item))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed history entry on {type}/{id}: {item!r}")
    return entries


def _apply_state_machine(resource: Resource, machine: StateMachine, status: str, history: Any) -> None:
    state_def = machine.state_definition(status)
    if state_def is None:
        logger.warning(f"{resource.type}/{resource.id} has status {status!r} unknown to its state machine")
        resource.set_state(ResourceState(current=status, history=_history(resource.type, resource.id, history)))
        return

    state_actions = machine.allowed_actions(status)
    for name, action in state_actions.items():
        resource.add_action(name, action)

    transitions = machine.transitions_from(status)
    for transition in transitions:
        if transition.action in state_actions:
            continue
        resource.add_action(
            transition.action,
            ActionDef(
                description=transition.description or f"Transition to {transition.target} state",
                effect=f"Changes state from {status} to {transition.target}",
            ),
        )

    available = {t.action for t in transitions}
    disallowed = [
        DisallowedTransition(action=action, reason=f"Not available in state {status}")
        for action in _all_transition_actions(machine)
        if action not in available
    ]

    resource.set_state(
        ResourceState(
            current=status,
            description=state_def.description,
            allowed_transitions=[t.action for t in transitions],
            disallowed_transitions=disallowed or None,
            history=_history(resource.type, resource.id, history),
        )
    )


def _all_transition_actions(machine: StateMachine) -> list[str]:
    seen: dict[str, None] = {}
    for state in machine.states:
        for transition in machine.transitions_from(state):
            seen.setdefault(transition.action, None)
    return list(seen)


def _apply_relationships(resource: Resource, properties: dict[str, Any], suffix: str) -> None:
    for name, value in properties.items():
        if name == "id" or len(name) <= len(suffix) or not name.endswith(suffix):
            continue
        if not isinstance(value, str) or not value:
            continue
        related_type = name[: -len(suffix)]
        resource.add_link(
            Link(rel=related_type, href=f"/{related_type}/{value}", title=f"Related {related_type}")
        )
        resource.add_relationship(
            related_type,
            Relationship(type=related_type, id=value, cardinality=Cardinality.ONE, role=name),
        )


def stored_links(raw: Any) -> list[Link]:
    """Parse the persisted ``_links`` list, skipping malformed entries."""
    if not isinstance(raw, list):
        return []
    links = []
    for item in raw:
        try:
            links.append(Link.model_validate(item))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed stored link: {item!r}")
    return links


def enhance(
    type: str,
    id: str,
    raw: dict[str, Any],
    machine: StateMachine | None = None,
    relationship_suffix: str = "Id",
    presentation: PresentationRegistry | None = None,
    prompts: PromptRegistry | None = None,
) -> Resource:
    """Build a fully enhanced Resource from a stored property bag.

    ``raw`` is deep-copied first and never modified. The reserved
    ``_links`` property is rendered as links and left out of
    ``properties``.
    """
    data = copy.deepcopy(raw)
    explicit_links = data.pop(LINKS_PROPERTY, None)
    resource = Resource(id, type, data)

    for name, action in standard_actions(type).items():
        resource.add_action(name, action)

    status = data.get(STATUS_PROPERTY)
    governed = machine is not None and isinstance(status, str)
    if governed:
        _apply_state_machine(resource, machine, status, data.get(HISTORY_PROPERTY))

    _apply_relationships(resource, data, relationship_suffix)
    for link in stored_links(explicit_links):
        resource.add_link(link)

    if presentation is not None:
        hints = presentation.hints_for(type, status if governed else None, governed=governed)
        if not hints.is_empty():
            resource.set_presentation(hints)

    if prompts is not None:
        for prompt in prompts.prompts_for(
            type,
            status if governed else None,
            data,
            available_actions=set(resource.actions),
        ):
            resource.add_prompt(prompt)

    logger.debug(
        f"Enhanced {type}/{id}",
        extra=structured(
            actions=sorted(resource.actions),
            links=len(resource.links),
            state=resource.current_state,
        ),
    )
    return resource
