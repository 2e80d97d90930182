"""Atomic store layer for Warden.

Provides the narrow key-value interface the coordination primitives use:
- RedisAtomicStore: shared store for multi-replica deployments
- InMemoryAtomicStore: single-process store for development and tests
"""

from __future__ import annotations

from warden.config import settings
from warden.store.base import AtomicStore, WindowCount
from warden.store.keys import StoreKeys
from warden.store.memory import InMemoryAtomicStore
from warden.store.redis import RedisAtomicStore, create_redis


def create_store(backend: str | None = None, redis_url: str | None = None) -> AtomicStore:
    """Create an atomic store based on configuration."""
    backend = (backend or settings.store_backend).lower()

    if backend in {"memory", "inmemory", "in_memory"}:
        return InMemoryAtomicStore()

    if backend == "redis":
        return RedisAtomicStore.from_url(redis_url or settings.redis_url)

    raise ValueError("Unsupported store_backend. Supported values: memory, redis.")


__all__ = [
    "AtomicStore",
    "WindowCount",
    "StoreKeys",
    "InMemoryAtomicStore",
    "RedisAtomicStore",
    "create_redis",
    "create_store",
]
