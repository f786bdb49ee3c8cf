"""
Storage backends for RemitLock.

Provides pluggable persistence for lock records, fee accounts and the
circuit breaker.

Configuration via environment:
    REMITLOCK_STORAGE_BACKEND=memory  # or 'redis'
    REMITLOCK_REDIS_URL=redis://localhost:6379/0

Example:
    >>> from remitlock.storage import get_storage, InMemoryStorage
    >>>
    >>> storage = get_storage()
    >>> storage = get_storage("redis", redis_url="redis://localhost:6379/1")
"""

from __future__ import annotations

import os
from typing import Any

from remitlock.storage.base import (
    StorageBackend,
    get_storage_backend,
    list_storage_backends,
    register_storage_backend,
)
from remitlock.storage.memory import InMemoryStorage
from remitlock.storage.redis import RedisStorage


def get_storage(backend_name: str | None = None, **kwargs: Any) -> StorageBackend:
    """
    Get storage backend from environment or by name.

    Args:
        backend_name: Backend name, or None to read from REMITLOCK_STORAGE_BACKEND env
        **kwargs: Passed to the backend constructor

    Returns:
        StorageBackend instance

    Raises:
        ValueError: If backend name is unknown
    """
    if backend_name is None:
        backend_name = os.environ.get("REMITLOCK_STORAGE_BACKEND", "memory")

    backend_class = get_storage_backend(backend_name)

    if backend_class is None:
        available = list_storage_backends()
        raise ValueError(
            f"Unknown storage backend: '{backend_name}'. Available: {', '.join(available)}"
        )

    return backend_class(**kwargs)


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "get_storage",
    "get_storage_backend",
    "list_storage_backends",
    "register_storage_backend",
]
