"""Redis-backed cache for access state snapshots"""
from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from ifarm.infrastructure.config.settings import get_settings
from ifarm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class CacheService:
    """
    Async Redis cache service with TTL support.

    Entries are keyed by tenant, user and the tenant's authz_version, so a
    write that bumps the version makes older snapshots unreachable; the TTL
    only bounds how long they linger. When Redis is down every call degrades
    to a miss and callers fall back to the database.
    """

    def __init__(self, redis_client: redis.Redis | None = None):
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

    async def connect(self):
        """Establish Redis connection (call on app startup)"""
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password or None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                )
                await self.redis.ping()
                self._connected = True
                logger.info(
                    f"Redis cache connected: {self.settings.redis_host}:{self.settings.redis_port}"
                )
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning(
                    f"Redis connection failed: {e}. Access state will be loaded from the database."
                )
                self._connected = False
                self.redis = None

    async def disconnect(self):
        """Close Redis connection (call on app shutdown)"""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis cache disconnected")

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def get(self, key: str) -> Any | None:
        """Deserialized value, or None on miss or when Redis is unavailable"""
        if not self.is_available() or self.redis is None:
            return None

        redis_client = self.redis
        try:
            value = await redis_client.get(key)
            if value:
                logger.debug(f"Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"Cache MISS: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        if not self.is_available() or self.redis is None:
            return False

        redis_client = self.redis
        try:
            await redis_client.setex(key, ttl, json.dumps(value))
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        if not self.is_available() or self.redis is None:
            return False

        redis_client = self.redis
        try:
            await redis_client.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except redis.RedisError as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

