"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest

from warden.errors import StoreUnavailableError
from warden.store.memory import InMemoryAtomicStore


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UnavailableStore(InMemoryAtomicStore):
    """Store whose every operation fails as if Redis were down."""

    def _fail(self, operation: str, key: str | None = None) -> None:
        raise StoreUnavailableError(operation, key, "connection refused")

    async def get(self, key, *args, **kwargs):
        self._fail("get", key)

    async def set(self, key, *args, **kwargs):
        self._fail("set", key)

    async def incr_with_window(self, key, *args, **kwargs):
        self._fail("incr_with_window", key)

    async def get_counter(self, key, *args, **kwargs):
        self._fail("get_counter", key)

    async def set_counter(self, key, *args, **kwargs):
        self._fail("set_counter", key)

    async def extend_ttl(self, key, *args, **kwargs):
        self._fail("extend_ttl", key)

    async def delete(self, *keys):
        self._fail("delete", keys[0] if keys else None)

    async def ping(self) -> bool:
        return False


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> InMemoryAtomicStore:
    """In-memory store driven by the manual clock."""
    return InMemoryAtomicStore(clock=clock)


@pytest.fixture
def realtime_store() -> InMemoryAtomicStore:
    """In-memory store on the real monotonic clock, for timer-driven code."""
    return InMemoryAtomicStore()


@pytest.fixture
def unavailable_store() -> UnavailableStore:
    return UnavailableStore()
