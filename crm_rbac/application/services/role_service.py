"""
Role store service.

Every mutation follows the same write path: resolve the target within the
caller's tenant scope, check the guards, mutate and flush, append the audit
entry, return. The caller owns the transaction; a failed audit append
rolls the session back (see AuditLogService.record_mutation).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from crm_rbac.application.interfaces import IRoleRepository, IUserRoleRepository
from crm_rbac.application.schemas import (
    BulkAssignmentResult,
    RoleCreate,
    RoleRead,
    RoleUpdate,
    UserRoleAssignmentRead,
)
from crm_rbac.application.services.audit_service import AuditLogService
from crm_rbac.application.services.authorization_service import AuthorizationService
from crm_rbac.application.services.permission_catalog import PermissionCatalogService
from crm_rbac.application.services.rbac_definitions import PLATFORM_OVERRIDE_PERMISSION
from crm_rbac.domain.entities import Principal
from crm_rbac.domain.enums import PermissionCategory, RoleKind
from crm_rbac.domain.exceptions import (
    AuditWriteError,
    ConflictError,
    CrmRbacException,
    ImmutableResourceError,
    PermissionDeniedError,
    ResourceInUseError,
    ResourceNotFoundException,
    UnauthorizedException,
    ValidationException,
)
from crm_rbac.infrastructure.cache.redis_cache import CacheService
from crm_rbac.infrastructure.persistence.models import Role, UserRoleAssignment
from crm_rbac.infrastructure.persistence.repositories import RoleRepository, UserRoleRepository
from crm_rbac.shared.enums import AuditAction, AuditResource
from crm_rbac.shared.telemetry.logging import get_logger
from crm_rbac.shared.utils import ensure_utc, utc_now

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

MANAGE_ROLES = "manage_roles"
MANAGE_USERS = "manage_users"


def _coerce(schema: type[SchemaT], data: SchemaT | Mapping[str, Any]) -> SchemaT:
    """Validate inbound data, mapping pydantic errors to ValidationException"""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise ValidationException(f"Invalid {field}: {error['msg']}", field=field) from e


def _require_principal(caller: Principal | None) -> Principal:
    if not isinstance(caller, Principal):
        raise UnauthorizedException()
    return caller


class RoleService:
    """Tenant-scoped role store with guarded, audited mutations"""

    def __init__(
        self,
        db: AsyncSession,
        *,
        role_repo: IRoleRepository | None = None,
        user_role_repo: IUserRoleRepository | None = None,
        authorization_service: AuthorizationService | None = None,
        catalog: PermissionCatalogService | None = None,
        audit_service: AuditLogService | None = None,
        cache_service: CacheService | None = None,
    ) -> None:
        self.db = db
        if cache_service is None and authorization_service is not None:
            cache_service = authorization_service.cache
        self.role_repo = role_repo or RoleRepository(db, cache_service)
        self.user_role_repo = user_role_repo or UserRoleRepository(db)
        self.authz = authorization_service or AuthorizationService(
            db, role_repo=self.role_repo, cache_service=cache_service
        )
        self.catalog = catalog or PermissionCatalogService(db)
        self.audit = audit_service or AuditLogService(db, authorization_service=self.authz)

    # Reads

    async def list_roles(self, caller: Principal | None, tenant_id: str | None = None) -> list[RoleRead]:
        """
        Roles visible to the caller.

        Platform administrators get every tenant (or `tenant_id` when given).
        Everyone else only ever sees their own tenant's roles.
        """
        caller = _require_principal(caller)
        if await self.authz.has_platform_override(caller):
            if tenant_id is None:
                roles = await self.role_repo.get_all_tenants()
            else:
                roles = await self.role_repo.get_by_tenant(tenant_id)
        else:
            roles = await self.role_repo.get_by_tenant(caller.tenant_id)
        return [RoleRead.model_validate(role) for role in roles]

    async def get_role(self, role_id: str, caller: Principal | None) -> RoleRead:
        caller = _require_principal(caller)
        override = await self.authz.has_platform_override(caller)
        role = await self._get_visible_role(role_id, caller, override)
        return RoleRead.model_validate(role)

    async def get_users_by_role(self, role_id: str, caller: Principal | None) -> list[str]:
        """Ids of users holding an unexpired assignment of the role"""
        caller = _require_principal(caller)
        override = await self.authz.has_platform_override(caller)
        role = await self._get_visible_role(role_id, caller, override)
        if not override and not await self.authz.has_any_permission(
            caller, (MANAGE_USERS, MANAGE_ROLES)
        ):
            raise PermissionDeniedError(
                "Listing role members requires manage_users or manage_roles",
                resource=AuditResource.ROLE.value,
            )
        return await self.user_role_repo.get_user_ids_for_role(role.id, utc_now())

    # Role mutations

    async def create_role(
        self,
        data: RoleCreate | Mapping[str, Any],
        caller: Principal | None,
        *,
        audit_details: dict[str, Any] | None = None,
    ) -> RoleRead:
        """
        Create a custom role in the caller's tenant (or `data.tenant_id`).

        Raises:
            PermissionDeniedError: Caller lacks manage_roles, targets another
                tenant without the platform override, or grants system permissions
            ValidationException: Unknown permission ids or duplicate name
        """
        caller = _require_principal(caller)
        data = _coerce(RoleCreate, data)

        await self._require_manage_roles(caller, "create role")
        override = await self.authz.has_platform_override(caller)

        tenant_id = data.tenant_id or caller.tenant_id
        if tenant_id != caller.tenant_id and not override:
            self._log_denied(caller, "create role in another tenant", tenant_id)
            raise PermissionDeniedError(
                "Creating roles in another tenant requires the platform override",
                permission=PLATFORM_OVERRIDE_PERMISSION,
                resource=AuditResource.ROLE.value,
            )

        await self.catalog.ensure_valid(data.permissions)
        await self._guard_system_permissions(caller, data.permissions, override)
        await self._ensure_unique_name(data.name, tenant_id)

        role = Role(
            tenant_id=tenant_id,
            name=data.name,
            description=data.description,
            kind=None,
            is_system_role=False,
        )
        role.set_permissions(data.permissions)
        await self.role_repo.create(role)

        await self._record(
            caller,
            AuditAction.ROLE_CREATED,
            role,
            {
                "name": role.name,
                "permissions": role.permission_ids,
                **(audit_details or {}),
            },
        )
        logger.info("Role %s (%s) created in tenant %s by %s", role.id, role.name, tenant_id, caller.user_id)
        return RoleRead.model_validate(role)

    async def create_role_from_template(
        self,
        template_id: str,
        name: str,
        tenant_id: str | None,
        caller: Principal | None,
    ) -> RoleRead:
        """Create a custom role seeded with a template's description and permissions"""
        template = self.catalog.get_template(template_id)
        data = _coerce(
            RoleCreate,
            {
                "name": name,
                "description": template.description,
                "permissions": template.permissions,
                "tenant_id": tenant_id,
            },
        )
        return await self.create_role(data, caller, audit_details={"template_id": template.id})

    async def update_role(
        self,
        role_id: str,
        patch: RoleUpdate | Mapping[str, Any],
        caller: Principal | None,
        *,
        expected_version: int | None = None,
        action: AuditAction = AuditAction.ROLE_UPDATED,
        audit_details: dict[str, Any] | None = None,
    ) -> RoleRead:
        """
        Merge `patch` into a role and bump updated_at.

        Checks run in order: visibility (NotFound), system-role lock
        (ImmutableResource), manage_roles (PermissionDenied), version
        (Conflict), payload (Validation).
        """
        caller = _require_principal(caller)
        override = await self.authz.has_platform_override(caller)
        role = await self._get_visible_role(role_id, caller, override)

        if role.is_system_role and not override:
            self._log_denied(caller, "update system role", role.id)
            raise ImmutableResourceError("role", role.id, "system roles cannot be modified")
        await self._require_manage_roles(caller, "update role", role.id)

        if expected_version is not None and expected_version != role.version:
            raise ConflictError("role", role.id, expected_version, role.version)

        patch = _coerce(RoleUpdate, patch)
        changes: dict[str, Any] = {}

        if patch.name is not None and patch.name != role.name:
            await self._ensure_unique_name(patch.name, role.tenant_id)
            changes["name"] = {"from": role.name, "to": patch.name}
        if patch.description is not None and patch.description != role.description:
            changes["description"] = {"from": role.description, "to": patch.description}
        if patch.permissions is not None:
            current = set(role.permission_ids)
            wanted = set(patch.permissions)
            await self.catalog.ensure_valid(patch.permissions)
            await self._guard_system_permissions(caller, wanted - current, override)
            if wanted != current:
                changes["permissions"] = {
                    "added": sorted(wanted - current),
                    "removed": sorted(current - wanted),
                }

        if "name" in changes:
            role.name = patch.name
        if "description" in changes:
            role.description = patch.description
        if "permissions" in changes:
            role.set_permissions(patch.permissions)
        # Touch the row so the version check and bump always run
        role.updated_at = utc_now()

        try:
            await self.role_repo.update(role)
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning("Concurrent update of role %s rejected", role_id)
            raise ConflictError("role", role_id, expected_version) from e

        details: dict[str, Any] = {"name": role.name, "changes": changes, **(audit_details or {})}
        if role.is_system_role:
            details["system_role_override"] = True
        await self._record(caller, action, role, details)

        logger.info(
            "Role %s updated by %s (%s)", role.id, caller.user_id, ", ".join(changes) or "no changes"
        )
        return RoleRead.model_validate(role)

    async def delete_role(self, role_id: str, caller: Principal | None) -> None:
        """
        Delete a custom role.

        Raises:
            ImmutableResourceError: The role is a system role
            ResourceInUseError: Unexpired assignments still reference it
        """
        caller = _require_principal(caller)
        override = await self.authz.has_platform_override(caller)
        role = await self._get_visible_role(role_id, caller, override)

        if role.is_system_role:
            self._log_denied(caller, "delete system role", role.id)
            raise ImmutableResourceError("role", role.id, "system roles cannot be deleted")
        await self._require_manage_roles(caller, "delete role", role.id)

        now = utc_now()
        references = await self.user_role_repo.count_active_for_role(role.id, now)
        if references:
            raise ResourceInUseError("role", role.id, references)
        await self.user_role_repo.delete_expired_for_role(role.id, now)

        snapshot = {"name": role.name, "permissions": role.permission_ids}
        await self.role_repo.delete(role)
        await self._record(caller, AuditAction.ROLE_DELETED, role, snapshot)
        logger.info("Role %s (%s) deleted by %s", role_id, snapshot["name"], caller.user_id)

    # User-role assignments

    async def assign_role(
        self,
        caller: Principal | None,
        target: Principal | None,
        role_id: str,
        expires_at: datetime | None = None,
    ) -> UserRoleAssignmentRead:
        """
        Give `target` the role, guarded by the hierarchy.

        Requires manage_users, can_manage_user(caller, target), a role in the
        target's tenant, and for built-in roles a kind the caller may assign.
        """
        caller = _require_principal(caller)
        role = await self._check_assignment(caller, target, role_id, "assign role")
        assert target is not None

        now = utc_now()
        if expires_at is not None and ensure_utc(expires_at) <= now:
            raise ValidationException("expires_at must be in the future", field="expires_at")

        assignment = await self.user_role_repo.get_assignment(target.user_id, role.id)
        if assignment is not None:
            if assignment.expires_at is None or ensure_utc(assignment.expires_at) > now:
                raise ValidationException(
                    f"User {target.user_id} already holds role {role.id}", field="role_id"
                )
            # Renew a lapsed assignment in place
            assignment.assigned_by = caller.user_id
            assignment.assigned_at = now
            assignment.expires_at = expires_at
            await self.user_role_repo.update(assignment)
        else:
            assignment = UserRoleAssignment(
                tenant_id=target.tenant_id,
                user_id=target.user_id,
                role_id=role.id,
                assigned_by=caller.user_id,
                assigned_at=now,
                expires_at=expires_at,
            )
            await self.user_role_repo.create(assignment)

        await self._record_user(
            caller,
            AuditAction.ROLE_ASSIGNED,
            target,
            {"role_id": role.id, "role_name": role.name, "expires_at": expires_at},
        )
        logger.info("Role %s assigned to %s by %s", role.id, target.user_id, caller.user_id)
        return UserRoleAssignmentRead.model_validate(assignment)

    async def remove_role(
        self, caller: Principal | None, target: Principal | None, role_id: str
    ) -> None:
        """Take the role away from `target`, under the same guards as assign_role"""
        caller = _require_principal(caller)
        role = await self._check_assignment(caller, target, role_id, "remove role")
        assert target is not None

        assignment = await self.user_role_repo.get_assignment(target.user_id, role.id)
        if assignment is None:
            raise ResourceNotFoundException("user_role", f"{target.user_id}:{role.id}")

        await self.user_role_repo.delete(assignment)
        await self._record_user(
            caller,
            AuditAction.ROLE_REMOVED,
            target,
            {"role_id": role.id, "role_name": role.name},
        )
        logger.info("Role %s removed from %s by %s", role.id, target.user_id, caller.user_id)

    async def bulk_assign_role(
        self,
        caller: Principal | None,
        targets: Sequence[Principal],
        role_id: str,
        expires_at: datetime | None = None,
    ) -> BulkAssignmentResult:
        """
        assign_role for each target; per-user failures are collected.

        An audit failure aborts the whole batch since the session was rolled back.
        """
        result = BulkAssignmentResult()
        for target in targets:
            try:
                await self.assign_role(caller, target, role_id, expires_at)
            except AuditWriteError:
                raise
            except CrmRbacException as e:
                result.failed[target.user_id] = e.error_code
            else:
                result.succeeded.append(target.user_id)
        return result

    async def bulk_remove_role(
        self,
        caller: Principal | None,
        targets: Sequence[Principal],
        role_id: str,
    ) -> BulkAssignmentResult:
        result = BulkAssignmentResult()
        for target in targets:
            try:
                await self.remove_role(caller, target, role_id)
            except AuditWriteError:
                raise
            except CrmRbacException as e:
                result.failed[target.user_id] = e.error_code
            else:
                result.succeeded.append(target.user_id)
        return result

    # Helpers

    async def _get_visible_role(self, role_id: str, caller: Principal, override: bool) -> Role:
        """Resolve a role in the caller's scope; out-of-scope looks exactly like missing"""
        if override:
            role = await self.role_repo.get_by_id(role_id)
        else:
            role = await self.role_repo.get_by_id_and_tenant(role_id, caller.tenant_id)
        if role is None:
            raise ResourceNotFoundException("role", role_id)
        return role

    async def _require_manage_roles(
        self, caller: Principal, operation: str, resource_id: str | None = None
    ) -> None:
        if not await self.authz.has_permission(caller, MANAGE_ROLES):
            self._log_denied(caller, operation, resource_id)
            raise PermissionDeniedError(
                f"{operation.capitalize()} requires {MANAGE_ROLES}",
                permission=MANAGE_ROLES,
                resource=AuditResource.ROLE.value,
            )

    async def _guard_system_permissions(
        self, caller: Principal, permission_ids: Any, override: bool
    ) -> None:
        """Only the platform override may hand out system-category permissions"""
        if override:
            return
        categories = await self.catalog.get_categories(permission_ids)
        system_ids = sorted(
            pid for pid, category in categories.items() if category == PermissionCategory.SYSTEM
        )
        if system_ids:
            self._log_denied(caller, "grant system permissions", ",".join(system_ids))
            raise PermissionDeniedError(
                f"Granting system permissions requires the platform override: {', '.join(system_ids)}",
                permission=PLATFORM_OVERRIDE_PERMISSION,
                resource=AuditResource.PERMISSION.value,
            )

    async def _ensure_unique_name(self, name: str, tenant_id: str) -> None:
        if await self.role_repo.get_by_name_and_tenant(name, tenant_id) is not None:
            raise ValidationException(f"A role named '{name}' already exists", field="name")

    async def _check_assignment(
        self,
        caller: Principal,
        target: Principal | None,
        role_id: str,
        operation: str,
    ) -> Role:
        if not isinstance(target, Principal):
            raise ValidationException("A target user is required", field="target")
        if not await self.authz.has_permission(caller, MANAGE_USERS):
            self._log_denied(caller, operation, target.user_id)
            raise PermissionDeniedError(
                f"{operation.capitalize()} requires {MANAGE_USERS}",
                permission=MANAGE_USERS,
                resource=AuditResource.USER.value,
            )
        if not self.authz.can_manage_user(caller, target):
            self._log_denied(caller, operation, target.user_id)
            raise PermissionDeniedError(
                f"User {caller.user_id} cannot manage user {target.user_id}",
                resource=AuditResource.USER.value,
            )

        role = await self.role_repo.get_by_id_and_tenant(role_id, target.tenant_id)
        if role is None:
            raise ResourceNotFoundException("role", role_id)
        if role.kind is not None and RoleKind(role.kind) not in self.authz.get_available_roles(caller):
            self._log_denied(caller, operation, role.id)
            raise PermissionDeniedError(
                f"Role kind '{role.kind}' cannot be assigned by user {caller.user_id}",
                resource=AuditResource.ROLE.value,
            )
        return role

    async def _record(
        self,
        caller: Principal,
        action: AuditAction,
        role: Role,
        details: dict[str, Any],
    ) -> int:
        return await self._append(
            caller,
            action,
            AuditResource.ROLE,
            resource_id=role.id,
            tenant_id=role.tenant_id,
            details=details,
        )

    async def _record_user(
        self,
        caller: Principal,
        action: AuditAction,
        target: Principal,
        details: dict[str, Any],
    ) -> int:
        return await self._append(
            caller,
            action,
            AuditResource.USER,
            resource_id=target.user_id,
            tenant_id=target.tenant_id,
            details=details,
        )

    async def _append(
        self,
        caller: Principal,
        action: AuditAction,
        resource_type: AuditResource,
        *,
        resource_id: str,
        tenant_id: str,
        details: dict[str, Any],
    ) -> int:
        return await self.audit.record_mutation(
            actor_user_id=caller.user_id,
            tenant_id=tenant_id,
            action=action.value,
            resource_type=resource_type.value,
            resource_id=resource_id,
            details=details,
            caller=caller,
        )

    @staticmethod
    def _log_denied(caller: Principal, operation: str, resource_id: str | None) -> None:
        logger.warning(
            "Denied %s on %s for user %s (tenant %s)",
            operation,
            resource_id,
            caller.user_id,
            caller.tenant_id,
        )
