"""Per-type state machines governing a resource's ``status``.

A StateMachineDefinition names an initial state and, for each state, the
actions it allows and the transitions those actions trigger. The
StateMachine evaluator is stateless: the current state always comes from the
resource, never from the machine.

Example:
    >>> definition = (
    ...     StateMachineBuilder("pending")
    ...     .state("pending", "Waiting to start")
    ...     .state("inProgress", "Being worked on")
    ...     .state("completed", "Done")
    ...     .transition("pending", "start", "inProgress")
    ...     .transition("inProgress", "complete", "completed")
    ...     .build()
    ... )
    >>> machine = StateMachine(definition)
    >>> machine.target_state("pending", "start")
    'inProgress'
    >>> machine.is_action_allowed("completed", "start")
    False
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import Field, ValidationError as PydanticValidationError, model_validator

from cogmedia.core.models import ActionDef, HypermediaModel
from cogmedia.errors import StateMachineDefinitionError


class TransitionDefinition(HypermediaModel):
    """Target state reached when an action is performed."""

    target: str = Field(..., min_length=1)
    description: str | None = None


class StateDefinition(HypermediaModel):
    """A single state: its allowed actions and the transitions they trigger."""

    name: str | None = None
    description: str | None = None
    allowed_actions: dict[str, ActionDef] = Field(default_factory=dict)
    transitions: dict[str, TransitionDefinition] = Field(default_factory=dict)


class StateMachineDefinition(HypermediaModel):
    """The full definition of a machine for one resource type.

    Validated on construction: the initial state and every transition target
    must name a defined state.
    """

    initial_state: str = Field(..., min_length=1)
    states: dict[str, StateDefinition] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_references(self) -> StateMachineDefinition:
        if self.initial_state not in self.states:
            raise ValueError(f"initial state '{self.initial_state}' is not a defined state")
        for state_name, state in self.states.items():
            for action, transition in state.transitions.items():
                if transition.target not in self.states:
                    raise ValueError(
                        f"transition '{action}' from '{state_name}' targets "
                        f"undefined state '{transition.target}'"
                    )
        return self

    @classmethod
    def parse(cls, definition: StateMachineDefinition | dict[str, Any]) -> StateMachineDefinition:
        """Validate a definition, raising StateMachineDefinitionError on failure."""
        if isinstance(definition, StateMachineDefinition):
            return definition
        try:
            return cls.model_validate(definition)
        except PydanticValidationError as e:
            raise StateMachineDefinitionError(
                f"Invalid state machine definition: {e.errors()[0]['msg']}",
                value=definition,
                cause=e,
            ) from e


@dataclass(frozen=True)
class TransitionInfo:
    """A transition available from some state."""

    action: str
    target: str
    description: str | None = None


class StateMachine:
    """Stateless evaluator over one StateMachineDefinition.

    Every lookup is a dictionary access. Unknown states and actions yield
    empty results; nothing here raises once the definition is valid.
    """

    def __init__(self, definition: StateMachineDefinition | dict[str, Any]) -> None:
        self._definition = StateMachineDefinition.parse(definition)

    @property
    def definition(self) -> StateMachineDefinition:
        return self._definition

    @property
    def initial_state(self) -> str:
        return self._definition.initial_state

    @property
    def states(self) -> list[str]:
        return list(self._definition.states)

    def state_definition(self, state: str) -> StateDefinition | None:
        return self._definition.states.get(state)

    def is_action_allowed(self, state: str, action: str) -> bool:
        """True if ``action`` is allowed or triggers a transition from ``state``."""
        state_def = self.state_definition(state)
        if state_def is None:
            return False
        return action in state_def.allowed_actions or action in state_def.transitions

    def target_state(self, state: str, action: str) -> str | None:
        state_def = self.state_definition(state)
        if state_def is None:
            return None
        transition = state_def.transitions.get(action)
        return transition.target if transition else None

    def allowed_actions(self, state: str) -> dict[str, ActionDef]:
        state_def = self.state_definition(state)
        if state_def is None:
            return {}
        return dict(state_def.allowed_actions)

    def transitions_from(self, state: str) -> list[TransitionInfo]:
        state_def = self.state_definition(state)
        if state_def is None:
            return []
        return [
            TransitionInfo(action=action, target=t.target, description=t.description)
            for action, t in state_def.transitions.items()
        ]

    def has_transition(self, action: str) -> bool:
        """True if ``action`` triggers a transition from any state."""
        return any(action in s.transitions for s in self._definition.states.values())

    def __repr__(self) -> str:
        return f"StateMachine(initial={self.initial_state!r}, states={self.states!r})"


class StateMachineBuilder:
    """Fluent construction of a StateMachineDefinition.

    ``transition()`` also exposes the triggering action as allowed in the
    source state, so simple machines need no separate ``action()`` calls.
    """

    def __init__(self, initial_state: str) -> None:
        self._initial_state = initial_state
        self._states: dict[str, dict[str, Any]] = {}

    def _ensure(self, name: str) -> dict[str, Any]:
        return self._states.setdefault(
            name, {"name": name, "description": None, "allowed_actions": {}, "transitions": {}}
        )

    def state(self, name: str, description: str | None = None) -> StateMachineBuilder:
        self._ensure(name)["description"] = description
        return self

    def action(self, state: str, name: str, action: ActionDef | dict[str, Any]) -> StateMachineBuilder:
        self._ensure(state)["allowed_actions"][name] = action
        return self

    def transition(
        self,
        from_state: str,
        action: str,
        to_state: str,
        description: str | None = None,
    ) -> StateMachineBuilder:
        source = self._ensure(from_state)
        source["transitions"][action] = {"target": to_state, "description": description}
        source["allowed_actions"].setdefault(
            action, {"description": description or f"Transition to {to_state}"}
        )
        return self

    def build(self) -> StateMachineDefinition:
        return StateMachineDefinition.parse(
            {"initial_state": self._initial_state, "states": self._states}
        )
