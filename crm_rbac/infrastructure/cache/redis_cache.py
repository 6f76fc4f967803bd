"""Redis-backed cache for resolved role permission sets"""
from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from crm_rbac.infrastructure.config.settings import Settings, get_settings
from crm_rbac.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class CacheService:
    """
    Async Redis cache with TTL support.

    Holds one entry per (tenant, role reference): the sorted permission ids
    the role grants. Every failure is logged and reported as a miss, so the
    caller falls back to the store and authorization never depends on Redis
    being up.
    """

    KEY_PREFIX = "permissions"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ):
        """
        Args:
            redis_client: Optional Redis client (for testing/DI); when given,
                the service is considered connected.
            settings: Overrides the process settings.
        """
        self.settings = settings or get_settings()
        self.redis = redis_client
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish the Redis connection (call on startup)"""
        if self.redis is not None or not self.settings.redis_enabled:
            return
        client = redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=self.settings.redis_password or None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(
                "Redis connection failed: %s. Permission cache disabled, "
                "falling back to database lookups.",
                e,
            )
            await client.aclose()
            return
        self.redis = client
        self._connected = True
        logger.info(
            "Redis cache connected: %s:%s", self.settings.redis_host, self.settings.redis_port
        )

    async def disconnect(self) -> None:
        """Close the Redis connection (call on shutdown)"""
        if self.redis is not None:
            await self.redis.aclose()
            logger.info("Redis cache disconnected")
        self.redis = None
        self._connected = False

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    @classmethod
    def permission_key(cls, tenant_id: str, role_ref: str) -> str:
        return f"{cls.KEY_PREFIX}:{tenant_id}:{role_ref}"

    async def get(self, key: str) -> Any | None:
        """Return the cached JSON value, or None on miss or error"""
        if not self.is_available() or self.redis is None:
            return None

        redis_client = self.redis  # Local variable for type narrowing
        try:
            value = await redis_client.get(key)
        except redis.RedisError as e:
            logger.error("Cache get error for key %s: %s", key, e)
            return None
        if value is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a JSON-serializable value; ttl defaults to cache_ttl_permissions"""
        if not self.is_available() or self.redis is None:
            return False

        ttl = ttl or self.settings.cache_ttl_permissions
        redis_client = self.redis
        try:
            await redis_client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as e:
            logger.error("Cache set error for key %s: %s", key, e)
            return False
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching pattern

        Args:
            pattern: Redis pattern (e.g., "permissions:tenant-123:*")

        Returns:
            Number of keys deleted
        """
        if not self.is_available() or self.redis is None:
            return 0

        redis_client = self.redis
        try:
            # Cursor-based scan so large keyspaces don't block Redis
            deleted = 0
            async for key in redis_client.scan_iter(match=pattern):
                await redis_client.delete(key)
                deleted += 1
        except redis.RedisError as e:
            logger.error("Cache delete pattern error for %s: %s", pattern, e)
            return 0

        if deleted > 0:
            logger.info("Cache INVALIDATE: %s (%d keys deleted)", pattern, deleted)
        return deleted

    async def get_role_permissions(self, tenant_id: str, role_ref: str) -> list[str] | None:
        cached = await self.get(self.permission_key(tenant_id, role_ref))
        if cached is None:
            return None
        return list(cached)

    async def set_role_permissions(
        self, tenant_id: str, role_ref: str, permission_ids: list[str]
    ) -> bool:
        return await self.set(self.permission_key(tenant_id, role_ref), sorted(permission_ids))

    async def invalidate_tenant(self, tenant_id: str) -> int:
        """Drop every cached permission set of a tenant"""
        return await self.delete_pattern(self.permission_key(tenant_id, "*"))

    async def invalidate_all(self) -> int:
        """Drop every cached permission set (platform roles are shared by all tenants)"""
        return await self.delete_pattern(f"{self.KEY_PREFIX}:*")
