"""Error hierarchy for cogmedia."""

from cogmedia.errors.base import (
    CogmediaError,
    ConflictError,
    ErrorCode,
    ErrorContext,
    InvalidActionError,
    InvalidTransitionError,
    ResourceNotFoundError,
    StateMachineDefinitionError,
    StorageBackendError,
    StorageError,
    ValidationError,
)

__all__ = [
    "CogmediaError",
    "ConflictError",
    "ErrorCode",
    "ErrorContext",
    "InvalidActionError",
    "InvalidTransitionError",
    "ResourceNotFoundError",
    "StateMachineDefinitionError",
    "StorageBackendError",
    "StorageError",
    "ValidationError",
]
