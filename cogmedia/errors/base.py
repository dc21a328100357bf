"""Custom exception hierarchy for cogmedia.

cogmedia errors carry:
- Structured error codes for programmatic handling
- Context naming the resource and action involved
- Actionable suggestions for recovery

All cogmedia errors inherit from CogmediaError. The core never maps them to
transport status codes; a protocol adapter does that using ``error_code``.

Example:
    try:
        store.perform_action("task", task_id, "archive")
    except InvalidActionError as e:
        print(f"Error: {e}")
        print(f"Suggestions: {e.suggestions}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for cogmedia.

    Error codes are organized by category:
    - E1xx: Lookup errors
    - E2xx: Action errors
    - E3xx: Validation errors
    - E4xx: Conflict errors
    - E5xx: Storage errors
    - E9xx: Unknown/internal errors
    """

    # Lookup errors (E1xx)
    RESOURCE_NOT_FOUND = "E101"

    # Action errors (E2xx)
    INVALID_ACTION = "E201"
    INVALID_TRANSITION = "E202"

    # Validation errors (E3xx)
    VALIDATION_FAILED = "E301"
    INVALID_STATE_MACHINE = "E302"

    # Conflict errors (E4xx)
    CONFLICT = "E401"

    # Storage errors (E5xx)
    STORAGE_FAILED = "E501"
    STORAGE_BACKEND_UNKNOWN = "E502"

    # Unknown/internal errors (E9xx)
    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 200:
            return "lookup"
        elif code_num < 300:
            return "action"
        elif code_num < 400:
            return "validation"
        elif code_num < 500:
            return "conflict"
        elif code_num < 600:
            return "storage"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Structured context describing where an error happened.

    Attributes:
        resource_type: Type of the resource involved.
        resource_id: Identifier of the resource involved.
        action: Action being performed, if any.
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    resource_type: str | None = None
    resource_id: str | None = None
    action: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "action": self.action,
            "extra": self.extra or None,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """Format the error location as a readable string."""
        parts = []
        if self.resource_type:
            resource = self.resource_type
            if self.resource_id:
                resource = f"{resource}/{self.resource_id}"
            parts.append(f"resource={resource}")
        if self.action:
            parts.append(f"action={self.action}")
        return " > ".join(parts) if parts else "unknown location"


class CogmediaError(Exception):
    """Base exception for all cogmedia errors.

    Attributes:
        error_code: Unique ErrorCode for this error type
        message: Human-readable error description
        context: ErrorContext with resource/action details
        suggestions: List of actionable steps to resolve the issue
        cause: The underlying exception (if any)
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]

        location = self.context.format_location()
        if location != "unknown location":
            parts.append(f"at {location}")

        return " | ".join(parts)

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [
            f"Error [{self.error_code.value}]: {self.message}",
        ]

        location = self.context.format_location()
        if location != "unknown location":
            lines.append(f"Location: {location}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "category": self.error_code.category,
            "message": self.message,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class ResourceNotFoundError(CogmediaError):
    """A resource or link target does not exist."""

    error_code = ErrorCode.RESOURCE_NOT_FOUND
    default_message = "Resource not found"
    default_suggestions = [
        "Check the resource type and identifier",
        "List the collection to see which resources exist",
    ]

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        kwargs.setdefault(
            "context",
            ErrorContext(resource_type=resource_type, resource_id=resource_id),
        )
        super().__init__(
            message=message or f"Resource {resource_type}/{resource_id} not found",
            **kwargs,
        )


class InvalidActionError(CogmediaError):
    """The action is unknown or not offered by the resource right now."""

    error_code = ErrorCode.INVALID_ACTION
    default_message = "Action not available"
    default_suggestions = [
        "Read the resource and pick one of its advertised actions",
    ]

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        action: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.action = action
        kwargs.setdefault(
            "context",
            ErrorContext(resource_type=resource_type, resource_id=resource_id, action=action),
        )
        super().__init__(
            message=message or f"Action {action} not available for {resource_type}/{resource_id}",
            **kwargs,
        )


class InvalidTransitionError(InvalidActionError):
    """The governing state machine forbids the action from the current state.

    Subclasses InvalidActionError: a forbidden transition is an unavailable
    action from the caller's point of view.
    """

    error_code = ErrorCode.INVALID_TRANSITION
    default_suggestions = [
        "Check state.allowedTransitions on the resource",
        "Perform an intermediate transition first",
    ]

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        action: str,
        current_state: str | None,
        **kwargs: Any,
    ) -> None:
        self.current_state = current_state
        super().__init__(
            resource_type,
            resource_id,
            action,
            message=(
                f"Action {action} cannot be performed from state "
                f"{current_state!r} for {resource_type}/{resource_id}"
            ),
            **kwargs,
        )


class ValidationError(CogmediaError):
    """Input failed validation.

    Check the 'field' and 'value' attributes for what failed.
    """

    error_code = ErrorCode.VALIDATION_FAILED
    default_message = "Validation failed"
    default_suggestions = [
        "Check the field name and value mentioned in the error",
    ]

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message=message, **kwargs)

    def __str__(self) -> str:
        base = super().__str__()
        if self.field:
            base = f"{base} (field: {self.field})"
        return base

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        result["value"] = repr(self.value)
        return result


class StateMachineDefinitionError(ValidationError):
    """A state machine definition references states that do not exist."""

    error_code = ErrorCode.INVALID_STATE_MACHINE
    default_message = "Invalid state machine definition"
    default_suggestions = [
        "Make sure initial_state names a defined state",
        "Make sure every transition target names a defined state",
    ]


class ConflictError(CogmediaError):
    """The requested change conflicts with how the resource is governed."""

    error_code = ErrorCode.CONFLICT
    default_message = "Conflicting update"
    default_suggestions = [
        "Change status through perform_action instead of update",
    ]


class StorageError(CogmediaError):
    """The storage collaborator failed or rejected the data."""

    error_code = ErrorCode.STORAGE_FAILED
    default_message = "Storage operation failed"


class StorageBackendError(StorageError):
    """No storage backend is registered for the requested name or URL."""

    error_code = ErrorCode.STORAGE_BACKEND_UNKNOWN
    default_message = "Unknown storage backend"
    default_suggestions = [
        "Use a memory:// or sqlite:// URL",
        "Register custom backends with StorageFactory.register_backend()",
    ]
