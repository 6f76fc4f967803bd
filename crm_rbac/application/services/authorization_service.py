from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.application.interfaces import IRoleRepository
from crm_rbac.application.services.rbac_definitions import PLATFORM_OVERRIDE_PERMISSION
from crm_rbac.domain.entities import Principal
from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.exceptions import PermissionDeniedError, UnauthorizedException
from crm_rbac.domain.hierarchy import PLATFORM_ROLE_KIND, assignable_roles, hierarchy_rank
from crm_rbac.infrastructure.cache.invalidation import has_uncommitted_writes
from crm_rbac.infrastructure.cache.redis_cache import CacheService
from crm_rbac.infrastructure.config.settings import get_settings
from crm_rbac.infrastructure.persistence.models import Role
from crm_rbac.infrastructure.persistence.repositories import RoleRepository
from crm_rbac.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class AuthorizationService:
    """
    Centralized permission checking with optional Redis caching.
    Follow principle: "Check permissions, not roles"

    Query methods never raise for a missing or unknown principal; they
    answer False (or empty). Mutating services turn a False into an
    explicit PermissionDeniedError via require_permission().
    """

    def __init__(
        self,
        db: AsyncSession,
        role_repo: IRoleRepository | None = None,
        cache_service: CacheService | None = None,
    ):
        self.db = db
        self.role_repo = role_repo or RoleRepository(db, cache_service)
        self.cache = cache_service
        self.settings = get_settings()

    async def resolve_role(self, principal: Principal | None) -> Role | None:
        """
        Find the role a principal presents, within the principal's tenant.

        A role_id wins over a role_kind; a bare kind resolves to the tenant's
        system role of that kind. The platform role kind is also looked up
        in the platform tenant, where its role lives.
        """
        if principal is None:
            return None

        tenants = [principal.tenant_id]
        if (
            principal.role_kind == PLATFORM_ROLE_KIND
            and principal.tenant_id != self.settings.platform_tenant_id
        ):
            tenants.append(self.settings.platform_tenant_id)

        for tenant_id in tenants:
            if principal.role_id:
                role = await self.role_repo.get_by_id_and_tenant(principal.role_id, tenant_id)
            else:
                assert principal.role_kind is not None
                role = await self.role_repo.get_system_role(tenant_id, principal.role_kind.value)
            if role is not None:
                return role
        return None

    async def get_principal_permissions(self, principal: Principal | None) -> list[str]:
        """
        Sorted permission ids granted by the principal's role.

        Uses the Redis cache when available (TTL: cache_ttl_permissions).
        A session holding uncommitted writes bypasses the cache both ways,
        so cached sets only ever come from committed rows.
        """
        if principal is None:
            return []

        cache = self.cache if self._cache_usable() else None
        if cache is not None:
            cached = await cache.get_role_permissions(principal.tenant_id, principal.role_ref)
            if cached is not None:
                return cached

        role = await self.resolve_role(principal)
        if role is None:
            logger.debug(
                "No role %s in tenant %s for user %s",
                principal.role_ref,
                principal.tenant_id,
                principal.user_id,
            )
            return []

        permissions = role.permission_ids
        if cache is not None:
            await cache.set_role_permissions(
                principal.tenant_id, principal.role_ref, permissions
            )
        return permissions

    async def has_permission(self, principal: Principal | None, permission_id: str) -> bool:
        if principal is None:
            return False
        return permission_id in await self.get_principal_permissions(principal)

    async def has_any_permission(
        self, principal: Principal | None, permission_ids: Iterable[str]
    ) -> bool:
        if principal is None:
            return False
        granted = set(await self.get_principal_permissions(principal))
        return any(pid in granted for pid in permission_ids)

    async def has_all_permissions(
        self, principal: Principal | None, permission_ids: Iterable[str]
    ) -> bool:
        if principal is None:
            return False
        granted = set(await self.get_principal_permissions(principal))
        return all(pid in granted for pid in permission_ids)

    async def has_platform_override(self, principal: Principal | None) -> bool:
        """Whether the principal may bypass system-role locks and tenant scoping"""
        return await self.has_permission(principal, PLATFORM_OVERRIDE_PERMISSION)

    async def require_permission(self, principal: Principal | None, permission_id: str) -> None:
        """Raise exception if principal lacks permission"""
        if principal is None:
            raise UnauthorizedException()
        if not await self.has_permission(principal, permission_id):
            logger.warning(
                "Permission denied: user %s (tenant %s) lacks %s",
                principal.user_id,
                principal.tenant_id,
                permission_id,
            )
            raise PermissionDeniedError(
                f"User {principal.user_id} lacks permission {permission_id}",
                permission=permission_id,
            )

    @staticmethod
    def has_role(principal: Principal | None, role_kind: RoleKind) -> bool:
        if principal is None:
            return False
        return principal.role_kind == role_kind

    @staticmethod
    def can_manage_user(caller: Principal | None, target: Principal | None) -> bool:
        """
        Whether `caller` may change `target`'s roles.

        The platform role manages everyone. Otherwise both must share a
        tenant and the caller must strictly outrank the target; peers never
        manage each other. A target without a built-in kind ranks 0.
        """
        if caller is None or target is None:
            return False
        if caller.role_kind is None:
            return False
        if caller.role_kind == PLATFORM_ROLE_KIND:
            return True
        if caller.tenant_id != target.tenant_id:
            return False
        # Users holding only a custom role rank below every built-in kind
        target_rank = 0 if target.role_kind is None else hierarchy_rank(target.role_kind)
        return hierarchy_rank(caller.role_kind) > target_rank

    @staticmethod
    def get_available_roles(caller: Principal | None) -> list[RoleKind]:
        """Role kinds the caller may assign to other users"""
        if caller is None or caller.role_kind is None:
            return []
        return assignable_roles(caller.role_kind)

    def _cache_usable(self) -> bool:
        if self.cache is None or not self.cache.is_available():
            return False
        return not has_uncommitted_writes(self.db)
