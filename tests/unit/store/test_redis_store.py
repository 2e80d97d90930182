"""Tests for the Redis store adapter with a mocked client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from warden.errors import StoreError, StoreUnavailableError
from warden.store.redis import RedisAtomicStore


@pytest.fixture
def script() -> AsyncMock:
    return AsyncMock(return_value=[3, 9500])


@pytest.fixture
def client(script: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.register_script = MagicMock(return_value=script)
    client.get = AsyncMock(return_value=b"owner-1")
    client.set = AsyncMock(return_value=True)
    client.pexpire = AsyncMock(return_value=1)
    client.delete = AsyncMock(return_value=2)
    client.aclose = AsyncMock()
    return client


class TestRedisAtomicStore:
    """Tests for RedisAtomicStore command mapping."""

    async def test_get_decodes_bytes(self, client: MagicMock) -> None:
        store = RedisAtomicStore(client)

        assert await store.get("k") == "owner-1"
        client.get.assert_awaited_once_with("k")

    async def test_set_maps_ttl_and_nx(self, client: MagicMock) -> None:
        """TTL seconds become PX milliseconds."""
        store = RedisAtomicStore(client)

        assert await store.set("k", "v", ttl=2.5, only_if_absent=True) is True
        client.set.assert_awaited_once_with("k", "v", px=2500, nx=True)

    async def test_set_without_ttl(self, client: MagicMock) -> None:
        store = RedisAtomicStore(client)
        client.set.return_value = None

        assert await store.set("k", "v", only_if_absent=True) is False
        client.set.assert_awaited_once_with("k", "v", px=None, nx=True)

    async def test_incr_with_window_runs_script(
        self, client: MagicMock, script: AsyncMock
    ) -> None:
        store = RedisAtomicStore(client)

        count = await store.incr_with_window("c", 10)

        script.assert_awaited_once_with(keys=["c"], args=[10000])
        assert count.value == 3
        assert count.ttl == pytest.approx(9.5)

    async def test_set_counter(self, client: MagicMock) -> None:
        store = RedisAtomicStore(client)

        await store.set_counter("c", 0, 20)
        client.set.assert_awaited_once_with("c", "0", px=20000)

    async def test_extend_ttl(self, client: MagicMock) -> None:
        store = RedisAtomicStore(client)

        assert await store.extend_ttl("k", 1) is True
        client.pexpire.assert_awaited_once_with("k", 1000)

    async def test_delete(self, client: MagicMock) -> None:
        store = RedisAtomicStore(client)

        assert await store.delete("a", "b") == 2
        assert await store.delete() == 0
        client.delete.assert_awaited_once_with("a", "b")

    async def test_connection_error_is_unavailable(self, client: MagicMock) -> None:
        """Connection failures map to StoreUnavailableError with the cause chained."""
        client.get.side_effect = RedisConnectionError("refused")
        store = RedisAtomicStore(client)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.get("k")

        assert exc_info.value.operation == "get"
        assert exc_info.value.key == "k"
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    async def test_response_error_is_store_error(self, client: MagicMock) -> None:
        client.set.side_effect = ResponseError("WRONGTYPE")
        store = RedisAtomicStore(client)

        with pytest.raises(StoreError) as exc_info:
            await store.set("k", "v")

        assert not isinstance(exc_info.value, StoreUnavailableError)

    async def test_close_only_owned_client(self, client: MagicMock) -> None:
        await RedisAtomicStore(client, owns_client=False).close()
        client.aclose.assert_not_awaited()

        await RedisAtomicStore(client).close()
        client.aclose.assert_awaited_once()
