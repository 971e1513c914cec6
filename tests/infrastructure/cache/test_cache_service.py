"""Tests for the Redis access-state cache"""

import json
from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as redis

from ifarm.application.services.access_state import AccessState
from ifarm.application.use_cases.access.check_access import access_state_cache_key
from ifarm.infrastructure.cache.redis_cache import CacheService


@pytest.fixture
async def cache_service():
    """Cache service with a mocked Redis client"""
    return CacheService(redis_client=AsyncMock())


@pytest.fixture
async def disconnected_cache():
    return CacheService()


@pytest.mark.asyncio
async def test_cache_get_hit(cache_service):
    """Test cache get when key exists"""
    cache_service.redis.get = AsyncMock(return_value='{"tenant_id": "t1", "timezone": "Africa/Kampala"}')

    result = await cache_service.get("authz_state:t1:u1:v3")

    assert result == {"tenant_id": "t1", "timezone": "Africa/Kampala"}
    cache_service.redis.get.assert_called_once_with("authz_state:t1:u1:v3")


@pytest.mark.asyncio
async def test_cache_get_miss(cache_service):
    cache_service.redis.get = AsyncMock(return_value=None)

    assert await cache_service.get("missing_key") is None


@pytest.mark.asyncio
async def test_cache_get_undecodable_value_is_a_miss(cache_service):
    cache_service.redis.get = AsyncMock(return_value="{not json")

    assert await cache_service.get("broken") is None


@pytest.mark.asyncio
async def test_cache_set_serializes_access_state(cache_service):
    """Access state snapshots are stored as JSON with the given TTL"""
    cache_service.redis.setex = AsyncMock()
    state = AccessState(tenant_id="t1", timezone="Africa/Kampala", authz_version=4)
    key = access_state_cache_key("t1", "u1", 4)

    result = await cache_service.set(key, state.to_dict(), ttl=120)

    assert result is True
    stored_key, ttl, payload = cache_service.redis.setex.call_args[0]
    assert stored_key == "authz_state:t1:u1:v4"
    assert ttl == 120
    assert AccessState.from_dict(json.loads(payload)) == state


@pytest.mark.asyncio
async def test_cache_set_default_ttl(cache_service):
    cache_service.redis.setex = AsyncMock()

    await cache_service.set("key1", {"data": 1})

    assert cache_service.redis.setex.call_args[0][1] == 300


@pytest.mark.asyncio
async def test_cache_delete_success(cache_service):
    cache_service.redis.delete = AsyncMock()

    result = await cache_service.delete("test_key")

    assert result is True
    cache_service.redis.delete.assert_called_once_with("test_key")


@pytest.mark.asyncio
async def test_cache_unavailable_degrades_to_miss(disconnected_cache):
    """An unconnected cache never raises"""
    assert disconnected_cache.is_available() is False
    assert await disconnected_cache.get("any_key") is None
    assert await disconnected_cache.set("any_key", {"data": "value"}) is False
    assert await disconnected_cache.delete("any_key") is False


@pytest.mark.asyncio
async def test_cache_connect_success():
    with patch("redis.asyncio.Redis") as mock_redis_class:
        mock_client = AsyncMock()
        mock_redis_class.return_value = mock_client

        cache = CacheService()
        await cache.connect()

        assert cache.is_available() is True
        mock_client.ping.assert_called_once()


@pytest.mark.asyncio
async def test_cache_connect_failure():
    """Connection failures leave the service usable as a permanent miss"""
    with patch("redis.asyncio.Redis") as mock_redis_class:
        mock_client = AsyncMock()
        mock_client.ping = AsyncMock(side_effect=redis.ConnectionError("Connection refused"))
        mock_redis_class.return_value = mock_client

        cache = CacheService()
        await cache.connect()

        assert cache.is_available() is False
        assert cache.redis is None


@pytest.mark.asyncio
async def test_cache_disconnect(cache_service):
    client = cache_service.redis

    await cache_service.disconnect()

    client.aclose.assert_called_once()
    assert cache_service.is_available() is False


@pytest.mark.asyncio
async def test_cache_error_handling_on_get(cache_service):
    cache_service.redis.get = AsyncMock(side_effect=redis.RedisError("Redis error"))

    assert await cache_service.get("test_key") is None


@pytest.mark.asyncio
async def test_cache_error_handling_on_set(cache_service):
    cache_service.redis.setex = AsyncMock(side_effect=redis.TimeoutError("timed out"))

    assert await cache_service.set("test_key", {"data": "value"}) is False
