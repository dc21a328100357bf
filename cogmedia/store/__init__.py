"""Resource store and enhancement pipeline."""

from cogmedia.store.enhancers import (
    PresentationRegistry,
    PromptRegistry,
    collection_actions,
    enhance,
    standard_actions,
)
from cogmedia.store.store import ResourceStore

__all__ = [
    "PresentationRegistry",
    "PromptRegistry",
    "ResourceStore",
    "collection_actions",
    "enhance",
    "standard_actions",
]
