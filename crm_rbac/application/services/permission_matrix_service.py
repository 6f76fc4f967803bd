from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.application.schemas import PermissionMatrix, RoleRead
from crm_rbac.application.services.permission_catalog import PermissionCatalogService
from crm_rbac.application.services.role_service import RoleService
from crm_rbac.domain.entities import Principal
from crm_rbac.domain.exceptions import UnauthorizedException
from crm_rbac.shared.enums import AuditAction
from crm_rbac.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class PermissionMatrixService:
    """
    Role × permission grid over the role store and the catalog.

    The grid is derived on demand and never stored. Edits are translated
    into ordinary RoleService.update_role calls so they take the same
    guards and leave the same audit trail as direct role updates.
    """

    def __init__(
        self,
        db: AsyncSession,
        role_service: RoleService | None = None,
        catalog: PermissionCatalogService | None = None,
    ) -> None:
        self.db = db
        self.role_service = role_service or RoleService(db)
        self.catalog = catalog or self.role_service.catalog

    async def build_matrix(
        self, caller: Principal | None, tenant_id: str | None = None
    ) -> PermissionMatrix:
        """Grid for `tenant_id` (default: the caller's tenant), scoped like list_roles"""
        if caller is None:
            raise UnauthorizedException()
        roles = await self.role_service.list_roles(caller, tenant_id or caller.tenant_id)
        permissions = await self.catalog.list_permissions()

        matrix: dict[str, dict[str, bool]] = {}
        for role in roles:
            granted = set(role.permissions)
            matrix[role.id] = {p.id: p.id in granted for p in permissions}

        return PermissionMatrix(roles=roles, permissions=permissions, matrix=matrix)

    async def toggle_permission(
        self,
        role_id: str,
        permission_id: str,
        granted: bool,
        caller: Principal | None,
        *,
        expected_version: int | None = None,
    ) -> RoleRead:
        """Set one cell: exactly one guarded role update and one audit entry"""
        role = await self.role_service.get_role(role_id, caller)
        permissions = set(role.permissions)
        if granted:
            permissions.add(permission_id)
        else:
            permissions.discard(permission_id)

        return await self.role_service.update_role(
            role_id,
            {"permissions": sorted(permissions)},
            caller,
            expected_version=expected_version,
            action=AuditAction.PERMISSION_MATRIX_UPDATED,
            audit_details={"permission_id": permission_id, "granted": granted},
        )

    async def apply_matrix_changes(
        self,
        changes: Mapping[str, Mapping[str, bool]],
        caller: Principal | None,
    ) -> list[RoleRead]:
        """
        Save a batch of cell edits, one role update per role that changes.

        Args:
            changes: {role_id: {permission_id: granted}}

        Returns:
            The updated roles; roles whose grid row is unchanged are skipped
        """
        updated: list[RoleRead] = []
        for role_id, cells in changes.items():
            role = await self.role_service.get_role(role_id, caller)
            current = set(role.permissions)
            wanted = set(current)
            for permission_id, granted in cells.items():
                if granted:
                    wanted.add(permission_id)
                else:
                    wanted.discard(permission_id)
            if wanted == current:
                continue

            updated.append(
                await self.role_service.update_role(
                    role_id,
                    {"permissions": sorted(wanted)},
                    caller,
                    expected_version=role.version,
                    action=AuditAction.PERMISSION_MATRIX_UPDATED,
                    audit_details={
                        "granted": sorted(wanted - current),
                        "revoked": sorted(current - wanted),
                    },
                )
            )
        logger.info(
            "Matrix save by %s updated %d role(s)", caller.user_id if caller else None, len(updated)
        )
        return updated
