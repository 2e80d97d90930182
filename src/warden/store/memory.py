"""In-memory atomic store.

Notes:
- Per-process only: replicas do not share state, so this backend is for
  single-instance deployments and tests.
- Thread-safe: uses a lock around shared state.
- The clock is injectable, which lets tests move time forward without sleeping.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from warden.errors import StoreError
from warden.store.base import AtomicStore, WindowCount


@dataclass
class _Entry:
    value: str
    expires_at: float | None


class InMemoryAtomicStore(AtomicStore):
    """Atomic store keeping entries in a process-local dict."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def _live(self, key: str, now: float) -> _Entry | None:
        """Return the entry at key, dropping it if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    @staticmethod
    def _ttl(entry: _Entry, now: float) -> float | None:
        if entry.expires_at is None:
            return None
        return entry.expires_at - now

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key, self._clock())
            return entry.value if entry else None

    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl: float | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        with self._lock:
            now = self._clock()
            if only_if_absent and self._live(key, now) is not None:
                return False
            expires_at = now + ttl if ttl is not None else None
            self._entries[key] = _Entry(value=value, expires_at=expires_at)
            return True

    async def incr_with_window(self, key: str, window: float) -> WindowCount:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                entry = _Entry(value="0", expires_at=now + window)
                self._entries[key] = entry
            elif entry.expires_at is None:
                entry.expires_at = now + window

            try:
                current = int(entry.value) + 1
            except ValueError as e:
                raise StoreError("incr_with_window", key, "value is not an integer") from e

            entry.value = str(current)
            return WindowCount(value=current, ttl=self._ttl(entry, now))

    async def get_counter(self, key: str) -> WindowCount | None:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                return None
            try:
                return WindowCount(value=int(entry.value), ttl=self._ttl(entry, now))
            except ValueError as e:
                raise StoreError("get_counter", key, "value is not an integer") from e

    async def set_counter(self, key: str, value: int, ttl: float) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=str(value), expires_at=self._clock() + ttl)

    async def extend_ttl(self, key: str, ttl: float) -> bool:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                return False
            entry.expires_at = now + ttl
            return True

    async def delete(self, *keys: str) -> int:
        with self._lock:
            now = self._clock()
            deleted = 0
            for key in keys:
                if self._live(key, now) is not None:
                    del self._entries[key]
                    deleted += 1
            return deleted

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        # No connection to release; entries stay visible to other holders
        return None

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for key in list(self._entries) if self._live(key, now) is not None)
