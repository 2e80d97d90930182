"""Integration test fixtures using Docker.

Runs the store, limiter and election code against a real Redis container.
Every test here is skipped when Docker is not available.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio

from tests.integration.docker_utils import RedisService, get_docker_client, run_redis
from warden.store.redis import RedisAtomicStore, create_redis


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = get_docker_client()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def redis_container(docker_client) -> Iterator[RedisService]:
    """Start Redis container for the test session."""
    with run_redis(docker_client) as redis:
        yield redis


@pytest.fixture(scope="session")
def redis_url(redis_container: RedisService) -> str:
    return redis_container.url()


@pytest_asyncio.fixture
async def redis_client(redis_url: str):
    """Create a Redis client for tests, flushing the database afterwards."""
    client = create_redis(redis_url)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()
    await client.aclose()


@pytest_asyncio.fixture
async def redis_store(redis_client) -> AsyncIterator[RedisAtomicStore]:
    """Atomic store sharing the test client. The client outlives the store."""
    store = RedisAtomicStore(redis_client, owns_client=False)
    yield store
    await store.close()


async def _wait_for_redis(client, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
