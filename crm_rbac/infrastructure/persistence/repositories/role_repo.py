from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.infrastructure.cache.invalidation import ALL_TENANTS, invalidate_on_commit
from crm_rbac.infrastructure.cache.redis_cache import CacheService
from crm_rbac.infrastructure.config.settings import get_settings
from crm_rbac.infrastructure.persistence.models.role import Role
from crm_rbac.infrastructure.persistence.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """
    Repository for Role operations.

    When a cache is wired in, every update or delete drops the tenant's
    cached permission sets once the transaction commits.
    """

    def __init__(self, db: AsyncSession, cache_service: CacheService | None = None):
        super().__init__(db, Role)
        self.cache = cache_service
        self.platform_tenant_id = get_settings().platform_tenant_id

    async def get_by_id_and_tenant(self, role_id: str, tenant_id: str) -> Role | None:
        """Get role by ID scoped to a tenant"""
        result = await self.db.execute(
            select(Role).where(Role.id == role_id, Role.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_by_name_and_tenant(self, name: str, tenant_id: str) -> Role | None:
        result = await self.db.execute(
            select(Role).where(Role.name == name, Role.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_system_role(self, tenant_id: str, kind: str) -> Role | None:
        """Get the built-in role implementing `kind` in a tenant"""
        result = await self.db.execute(
            select(Role).where(
                Role.tenant_id == tenant_id,
                Role.kind == kind,
                Role.is_system_role.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_by_tenant(self, tenant_id: str) -> list[Role]:
        """Get all roles for a tenant, oldest first"""
        result = await self.db.execute(
            select(Role)
            .where(Role.tenant_id == tenant_id)
            .order_by(Role.created_at, Role.name)
        )
        return list(result.scalars().all())

    async def get_all_tenants(self) -> list[Role]:
        """Get roles across every tenant"""
        result = await self.db.execute(
            select(Role).order_by(Role.tenant_id, Role.created_at, Role.name)
        )
        return list(result.scalars().all())

    async def _invalidate(self, role: Role) -> None:
        # Platform roles back principals of every tenant
        tenant_id = ALL_TENANTS if role.tenant_id == self.platform_tenant_id else role.tenant_id
        invalidate_on_commit(self.db, self.cache, tenant_id)

    async def _on_after_update(self, obj: Role) -> None:
        await super()._on_after_update(obj)
        await self._invalidate(obj)

    async def _on_before_delete(self, obj: Role) -> None:
        await super()._on_before_delete(obj)
        await self._invalidate(obj)
