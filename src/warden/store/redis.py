"""Redis implementation of the atomic store.

Uses the redis-py asyncio client. Windowed counters are maintained by a
small Lua script so that increment and TTL setup happen atomically.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from warden.errors import StoreError, StoreUnavailableError
from warden.store.base import AtomicStore, WindowCount

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Increment and make sure the key carries a TTL. A key without expiry
# (pttl == -1) gets the window as well, so counters can never become immortal.
INCR_WITH_WINDOW_SCRIPT = """
local current = redis.call("incr", KEYS[1])
local ttl = redis.call("pttl", KEYS[1])
if ttl < 0 then
    redis.call("pexpire", KEYS[1], ARGV[1])
    ttl = tonumber(ARGV[1])
end
return {current, ttl}
"""


def create_redis(url: str) -> Redis:
    """Create a Redis client with connection pooling."""
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
    )


def _to_ms(seconds: float) -> int:
    return max(1, int(seconds * 1000))


def _from_ms(ttl_ms: int) -> float | None:
    # -1: no expiry, -2: missing key
    if ttl_ms < 0:
        return None
    return ttl_ms / 1000


def _decode(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes) else value


@contextmanager
def _translate_errors(operation: str, key: str | None = None) -> Iterator[None]:
    """Map redis-py exceptions onto the store error hierarchy."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        raise StoreUnavailableError(operation, key, str(e)) from e
    except RedisError as e:
        raise StoreError(operation, key, str(e)) from e


class RedisAtomicStore(AtomicStore):
    """Atomic store backed by a shared Redis instance.

    Args:
        client: redis.asyncio client. Responses may be bytes or str.
        owns_client: Close the client on close(). Set to False when the
            client is shared with other components.
    """

    def __init__(self, client: Redis, owns_client: bool = True):
        self.client = client
        self._owns_client = owns_client
        self._incr_script = client.register_script(INCR_WITH_WINDOW_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> RedisAtomicStore:
        """Create a store with its own connection pool."""
        return cls(create_redis(url))

    async def get(self, key: str) -> str | None:
        with _translate_errors("get", key):
            value = await self.client.get(key)
        return _decode(value)

    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl: float | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        with _translate_errors("set", key):
            result = await self.client.set(
                key,
                value,
                px=_to_ms(ttl) if ttl is not None else None,
                nx=only_if_absent,
            )
        return bool(result)

    async def incr_with_window(self, key: str, window: float) -> WindowCount:
        with _translate_errors("incr_with_window", key):
            current, ttl_ms = await self._incr_script(keys=[key], args=[_to_ms(window)])
        return WindowCount(value=int(current), ttl=_from_ms(int(ttl_ms)))

    async def get_counter(self, key: str) -> WindowCount | None:
        with _translate_errors("get_counter", key):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.get(key)
                pipe.pttl(key)
                value, ttl_ms = await pipe.execute()

        value = _decode(value)
        if value is None:
            return None
        try:
            return WindowCount(value=int(value), ttl=_from_ms(int(ttl_ms)))
        except ValueError as e:
            raise StoreError("get_counter", key, f"not an integer: {value!r}") from e

    async def set_counter(self, key: str, value: int, ttl: float) -> None:
        with _translate_errors("set_counter", key):
            await self.client.set(key, str(value), px=_to_ms(ttl))

    async def extend_ttl(self, key: str, ttl: float) -> bool:
        with _translate_errors("extend_ttl", key):
            result = await self.client.pexpire(key, _to_ms(ttl))
        return bool(result)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _translate_errors("delete", keys[0]):
            return int(await self.client.delete(*keys))

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except RedisError:
            return False

    async def close(self) -> None:
        """Close Redis connections."""
        if self._owns_client:
            await self.client.aclose()
