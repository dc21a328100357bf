"""Factory for creating storage backends from names or URLs.

Example:
    >>> from cogmedia.storage import StorageFactory
    >>>
    >>> storage = StorageFactory.from_url("sqlite:///var/lib/cogmedia/resources.db")
    >>> storage = StorageFactory.create("memory", "memory://test")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from cogmedia.errors import StorageBackendError

if TYPE_CHECKING:
    from cogmedia.storage.base import BaseStorage
    from cogmedia.storage.memory import InMemoryStorage

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory to create storage backends.

    Built-in backends are ``memory`` and ``sqlite``. Others can be added with
    register_backend().
    """

    _custom_backends: dict[str, Callable[..., BaseStorage]] = {}

    @classmethod
    def create(cls, backend: str, url: str, **kwargs: Any) -> BaseStorage:
        """Create an unconnected storage backend.

        Args:
            backend: 'memory' (aliases 'inmemory', 'in-memory'), 'sqlite', or
                a registered custom name.
            url: Connection URL for the backend.
            **kwargs: Backend-specific options (``initial_data`` for memory,
                ``timeout`` for sqlite).

        Raises:
            StorageBackendError: If the backend is not known.
        """
        if not backend:
            raise StorageBackendError("Backend type cannot be empty")

        backend_lower = backend.lower().strip()

        if backend_lower in ("memory", "inmemory", "in-memory"):
            from cogmedia.storage.memory import InMemoryStorage

            return InMemoryStorage(url, initial_data=kwargs.get("initial_data"))

        if backend_lower == "sqlite":
            from cogmedia.storage.sqlite import SQLiteStorage

            return SQLiteStorage(url, timeout=kwargs.get("timeout", 30.0))

        if backend_lower in cls._custom_backends:
            return cls._custom_backends[backend_lower](connection_url=url, **kwargs)

        raise StorageBackendError(
            f"Unsupported backend '{backend}'. "
            f"Supported backends: {cls.get_supported_backends()}.",
            backend=backend,
        )

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> BaseStorage:
        """Create a backend by inferring its kind from the URL scheme."""
        if not url:
            raise StorageBackendError("Connection URL cannot be empty")

        url_stripped = url.strip()
        scheme = url_stripped.split("://", 1)[0].lower() if "://" in url_stripped else ""

        if scheme == "memory":
            return cls.create("memory", url_stripped, **kwargs)
        if scheme == "sqlite":
            return cls.create("sqlite", url_stripped, **kwargs)
        if scheme in cls._custom_backends:
            return cls.create(scheme, url_stripped, **kwargs)

        raise StorageBackendError(
            f"Cannot infer backend from URL: '{url}'. "
            "URL must start with 'memory://' or 'sqlite://', or a registered scheme.",
            url=url,
        )

    @classmethod
    def register_backend(cls, name: str, factory_func: Callable[..., BaseStorage]) -> None:
        """Register a custom backend; the name doubles as its URL scheme."""
        if not name:
            raise ValueError("Backend name cannot be empty")
        if not callable(factory_func):
            raise ValueError("Factory function must be callable")

        cls._custom_backends[name.lower()] = factory_func
        logger.info(f"Registered custom storage backend: {name}")

    @classmethod
    def unregister_backend(cls, name: str) -> bool:
        return cls._custom_backends.pop(name.lower(), None) is not None

    @classmethod
    def get_supported_backends(cls) -> list[str]:
        return ["memory", "sqlite"] + list(cls._custom_backends)

    @classmethod
    def create_for_testing(
        cls, initial_data: dict[str, dict[str, dict[str, Any]]] | None = None
    ) -> InMemoryStorage:
        """Connected in-memory storage for unit tests."""
        from cogmedia.storage.memory import InMemoryStorage

        storage = InMemoryStorage("memory://test", initial_data=initial_data)
        storage.connect()
        return storage
