"""
Repository interfaces (ports) for the application layer.

These protocols are the abstract storage contract the services depend on.
Any durable store satisfying them preserves the engine's invariants:
tenant scoping, system-role immutability, append-only audit.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from crm_rbac.infrastructure.persistence.models import (
        AuditLogEntry,
        Permission,
        Role,
        UserRoleAssignment,
    )


class IPermissionRepository(Protocol):
    """Protocol for the global permission catalog (DIP)"""

    async def get_by_id(self, id: str) -> Permission | None:
        ...

    async def list_all(self) -> list[Permission]:
        ...

    async def get_existing_ids(self, permission_ids: Iterable[str]) -> set[str]:
        ...

    async def create(self, obj: Permission) -> Permission:
        ...


class IRoleRepository(Protocol):
    """Protocol for the tenant-scoped role store (DIP)"""

    async def get_by_id(self, id: str) -> Role | None:
        ...

    async def get_by_id_and_tenant(self, role_id: str, tenant_id: str) -> Role | None:
        ...

    async def get_by_name_and_tenant(self, name: str, tenant_id: str) -> Role | None:
        ...

    async def get_system_role(self, tenant_id: str, kind: str) -> Role | None:
        ...

    async def get_by_tenant(self, tenant_id: str) -> list[Role]:
        ...

    async def get_all_tenants(self) -> list[Role]:
        ...

    async def create(self, obj: Role) -> Role:
        ...

    async def update(self, obj: Role) -> Role:
        ...

    async def delete(self, obj: Role) -> None:
        ...


class IUserRoleRepository(Protocol):
    """Protocol for user ←→ role assignments (DIP)"""

    async def get_assignment(self, user_id: str, role_id: str) -> UserRoleAssignment | None:
        ...

    async def count_active_for_role(self, role_id: str, now: datetime) -> int:
        ...

    async def delete_expired_for_role(self, role_id: str, now: datetime) -> int:
        ...

    async def get_user_ids_for_role(self, role_id: str, now: datetime) -> list[str]:
        ...

    async def create(self, obj: UserRoleAssignment) -> UserRoleAssignment:
        ...

    async def update(self, obj: UserRoleAssignment) -> UserRoleAssignment:
        ...

    async def delete(self, obj: UserRoleAssignment) -> None:
        ...


class IAuditLogRepository(Protocol):
    """Protocol for the append-only audit log (DIP)"""

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        ...

    async def query(
        self,
        *,
        user_id: str | None = None,
        action: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        tenant_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        ...
