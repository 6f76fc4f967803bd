"""
Permission catalog: the single source of truth for valid permission ids.

Permission ids are validated here before any role's permission set is
persisted, whether the set comes from a create, an update or a template.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.application.interfaces import IPermissionRepository
from crm_rbac.application.schemas import PermissionRead, PermissionValidationResult, RoleTemplate
from crm_rbac.application.services.rbac_definitions import ROLE_TEMPLATES
from crm_rbac.domain.enums import PermissionCategory
from crm_rbac.domain.exceptions import ResourceNotFoundException, ValidationException
from crm_rbac.infrastructure.persistence.repositories import PermissionRepository


class PermissionCatalogService:
    """Read-only access to registered permissions and role templates"""

    def __init__(
        self,
        db: AsyncSession,
        permission_repo: IPermissionRepository | None = None,
    ) -> None:
        self.db = db
        self.permission_repo = permission_repo or PermissionRepository(db)

    async def list_permissions(self) -> list[PermissionRead]:
        permissions = await self.permission_repo.list_all()
        return [PermissionRead.model_validate(p) for p in permissions]

    async def get_permission(self, permission_id: str) -> PermissionRead:
        permission = await self.permission_repo.get_by_id(permission_id)
        if permission is None:
            raise ResourceNotFoundException("permission", permission_id)
        return PermissionRead.model_validate(permission)

    async def list_by_category(self) -> dict[PermissionCategory, list[PermissionRead]]:
        """Group permissions by category; every category is present, possibly empty"""
        grouped: dict[PermissionCategory, list[PermissionRead]] = {
            category: [] for category in PermissionCategory
        }
        for permission in await self.list_permissions():
            grouped[permission.category].append(permission)
        return grouped

    async def validate_permission_ids(
        self, permission_ids: Iterable[str]
    ) -> PermissionValidationResult:
        """
        Check ids against the catalog.

        Returns:
            valid: True when every id is registered
            invalid: Unknown ids, in input order, without duplicates
        """
        requested = list(dict.fromkeys(permission_ids))
        existing = await self.permission_repo.get_existing_ids(requested)
        invalid = [pid for pid in requested if pid not in existing]
        return PermissionValidationResult(valid=not invalid, invalid=invalid)

    async def ensure_valid(self, permission_ids: Iterable[str]) -> None:
        """
        Raises:
            ValidationException: If any id is not registered
        """
        result = await self.validate_permission_ids(permission_ids)
        if not result.valid:
            raise ValidationException(
                f"Unknown permission ids: {', '.join(result.invalid)}",
                field="permissions",
                invalid=result.invalid,
            )

    async def describe_permission(self, permission_id: str) -> str:
        """Human-readable description, or the id itself when unknown"""
        permission = await self.permission_repo.get_by_id(permission_id)
        return permission.description if permission else permission_id

    async def get_categories(self, permission_ids: Iterable[str]) -> dict[str, PermissionCategory]:
        """Category of each registered id among `permission_ids`"""
        wanted = set(permission_ids)
        return {
            p.id: p.category for p in await self.list_permissions() if p.id in wanted
        }

    @staticmethod
    def list_templates() -> list[RoleTemplate]:
        return [
            RoleTemplate(id=template_id, **template)
            for template_id, template in ROLE_TEMPLATES.items()
        ]

    @staticmethod
    def get_template(template_id: str) -> RoleTemplate:
        template = ROLE_TEMPLATES.get(template_id)
        if template is None:
            raise ResourceNotFoundException("role_template", template_id)
        return RoleTemplate(id=template_id, **template)
