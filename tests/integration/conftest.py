"""Pytest fixtures for Redis integration tests."""

import os
import uuid
from typing import AsyncGenerator

import pytest
import redis.asyncio as redis

from luncher.sync.redis_client import RedisGateway


@pytest.fixture
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    """Redis client for direct store operations.

    Yields a connected client for test setup and assertions.
    """
    client = redis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=int(os.getenv("REDIS_DB", "0")),
        decode_responses=True,
        socket_connect_timeout=2
    )

    try:
        await client.ping()
    except (redis.ConnectionError, redis.TimeoutError, OSError):
        await client.aclose()
        pytest.skip("Redis not available")

    yield client

    await client.aclose()


@pytest.fixture
async def key_prefix(redis_client: redis.Redis) -> AsyncGenerator[str, None]:
    """Unique key namespace per test, removed afterwards."""
    prefix = f"luncher-test-{uuid.uuid4().hex[:8]}:"

    yield prefix

    keys = [key async for key in redis_client.scan_iter(match=f"{prefix}*")]
    if keys:
        await redis_client.delete(*keys)


@pytest.fixture
def make_gateway(redis_client: redis.Redis, key_prefix: str):
    """Helper fixture to build a RedisGateway for a given user."""
    def _make(user_id: str) -> RedisGateway:
        return RedisGateway(user_id=user_id, key_prefix=key_prefix, client=redis_client)

    return _make
