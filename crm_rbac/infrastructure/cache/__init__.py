from crm_rbac.infrastructure.cache.invalidation import (
    ALL_TENANTS,
    has_uncommitted_writes,
    invalidate_on_commit,
)
from crm_rbac.infrastructure.cache.redis_cache import CacheService

__all__ = ["ALL_TENANTS", "CacheService", "has_uncommitted_writes", "invalidate_on_commit"]
