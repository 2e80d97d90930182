"""Atomic store interface.

Every coordination primitive talks to the shared store through this
narrow interface, so the limiter and election logic does not depend on
which concrete store backs it.

Durations are seconds. A TTL of None means the entry never expires.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowCount:
    """Value and remaining lifetime of a counter entry.

    Attributes:
        value: Current counter value.
        ttl: Seconds until the entry expires, or None if it has no expiry.
    """

    value: int
    ttl: float | None


class AtomicStore(ABC):
    """Shared key-value store with atomic single-key operations."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at key, or None if absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl: float | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        """Store value at key.

        Args:
            key: Store key.
            value: Value to store.
            ttl: Optional lifetime in seconds.
            only_if_absent: Only write when the key does not exist.

        Returns:
            True if the value was written.
        """
        raise NotImplementedError

    @abstractmethod
    async def incr_with_window(self, key: str, window: float) -> WindowCount:
        """Atomically increment a counter bound to a fixed window.

        The first increment on a key establishes its TTL of ``window``
        seconds; later increments before expiry add to the same counter
        without touching the TTL.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_counter(self, key: str) -> WindowCount | None:
        """Return the counter at key, or None if absent."""
        raise NotImplementedError

    @abstractmethod
    async def set_counter(self, key: str, value: int, ttl: float) -> None:
        """Overwrite a counter with a fresh TTL."""
        raise NotImplementedError

    @abstractmethod
    async def extend_ttl(self, key: str, ttl: float) -> bool:
        """Reset the TTL of an existing key. Returns False if the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Check store connectivity."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release the store connection."""
        raise NotImplementedError
