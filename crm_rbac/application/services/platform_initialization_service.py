"""
Platform and tenant initialization for RBAC.

Sets up:
- The permission catalog
- The platform super_admin role
- Each tenant's system roles (admin, manager, agent, engineer, customer)

Every step is idempotent: existing permissions and roles are left alone,
so re-running only fills gaps. Each role created is audited as
role_created by the system actor.
"""
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.application.services.audit_service import AuditLogService
from crm_rbac.application.services.rbac_definitions import (
    PLATFORM_ROLE,
    SYSTEM_PERMISSIONS,
    TENANT_SYSTEM_ROLES,
    RoleData,
)
from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.exceptions import ValidationException
from crm_rbac.infrastructure.config.settings import Settings, get_settings
from crm_rbac.infrastructure.persistence.models import Permission, Role
from crm_rbac.infrastructure.persistence.repositories import PermissionRepository, RoleRepository
from crm_rbac.shared.enums import SYSTEM_ACTOR_ID, AuditAction, AuditResource
from crm_rbac.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class InitializationResult(TypedDict):
    """Result of platform or tenant initialization"""

    permissions_created: int
    roles_created: int


class PlatformInitializationService:
    """Seeds the catalog and the built-in roles"""

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.permission_repo = PermissionRepository(db)
        self.role_repo = RoleRepository(db)
        self.audit = AuditLogService(db, settings=self.settings)

    async def seed_permission_catalog(self) -> int:
        """Register missing permissions; returns how many were created"""
        existing = await self.permission_repo.get_existing_ids(p[0] for p in SYSTEM_PERMISSIONS)
        created = 0
        for permission_id, name, description, category, resource, action in SYSTEM_PERMISSIONS:
            if permission_id in existing:
                continue
            await self.permission_repo.create(
                Permission(
                    id=permission_id,
                    name=name,
                    description=description,
                    category=category.value,
                    resource=resource,
                    action=action,
                )
            )
            created += 1

        if created:
            logger.info("Registered %d permission(s)", created)
        return created

    async def initialize_platform(self) -> InitializationResult:
        """Catalog plus the platform tenant's super_admin role"""
        permissions_created = await self.seed_permission_catalog()
        created = await self._ensure_system_role(
            self.settings.platform_tenant_id, RoleKind.SUPER_ADMIN, PLATFORM_ROLE
        )
        return {"permissions_created": permissions_created, "roles_created": int(created)}

    async def initialize_tenant(self, tenant_id: str) -> InitializationResult:
        """
        Catalog plus a tenant's system roles.

        Raises:
            ValidationException: If tenant_id is empty or the platform tenant
        """
        if not tenant_id:
            raise ValidationException("tenant_id is required", field="tenant_id")
        if tenant_id == self.settings.platform_tenant_id:
            raise ValidationException(
                "The platform tenant only holds the super_admin role; use initialize_platform()",
                field="tenant_id",
            )

        permissions_created = await self.seed_permission_catalog()
        roles_created = 0
        for kind, role_data in TENANT_SYSTEM_ROLES.items():
            if await self._ensure_system_role(tenant_id, kind, role_data):
                roles_created += 1

        logger.info("Tenant %s initialized: %d system role(s) created", tenant_id, roles_created)
        return {"permissions_created": permissions_created, "roles_created": roles_created}

    async def _ensure_system_role(self, tenant_id: str, kind: RoleKind, role_data: RoleData) -> bool:
        if await self.role_repo.get_system_role(tenant_id, kind.value) is not None:
            return False

        role = Role(
            tenant_id=tenant_id,
            name=role_data["name"],
            description=role_data["description"],
            kind=kind.value,
            is_system_role=True,
        )
        role.set_permissions(role_data["permissions"])
        await self.role_repo.create(role)

        await self.audit.record_mutation(
            actor_user_id=SYSTEM_ACTOR_ID,
            tenant_id=tenant_id,
            action=AuditAction.ROLE_CREATED.value,
            resource_type=AuditResource.ROLE.value,
            resource_id=role.id,
            details={
                "name": role.name,
                "kind": kind,
                "permissions": role.permission_ids,
                "system_role": True,
            },
        )
        return True
