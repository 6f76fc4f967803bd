"""Tests for the permission matrix builder"""

import pytest
from sqlalchemy import select

from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.exceptions import (
    ConflictError,
    ImmutableResourceError,
    PermissionDeniedError,
    ResourceNotFoundException,
    ValidationException,
)
from crm_rbac.infrastructure.persistence.models import AuditLogEntry


@pytest.fixture
async def support_role(role_service, admin):
    return await role_service.create_role(
        {"name": "Support", "permissions": ["read", "manage_tickets"]}, admin
    )


async def actions_for(db, resource_id: str) -> list[str]:
    result = await db.execute(
        select(AuditLogEntry.action)
        .where(AuditLogEntry.resource_id == resource_id)
        .order_by(AuditLogEntry.id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_matrix_is_a_pure_derivation_of_role_permissions(matrix_service, role_service, admin, support_role):
    matrix = await matrix_service.build_matrix(admin)

    assert len(matrix.permissions) == 19
    assert {r.tenant_id for r in matrix.roles} == {"techcorp"}
    for role in matrix.roles:
        stored = set((await role_service.get_role(role.id, admin)).permissions)
        for permission in matrix.permissions:
            assert matrix.matrix[role.id][permission.id] == (permission.id in stored)


@pytest.mark.asyncio
async def test_matrix_never_crosses_tenants(matrix_service, other_admin, support_role):
    matrix = await matrix_service.build_matrix(other_admin)

    assert support_role.id not in matrix.matrix
    assert {r.tenant_id for r in matrix.roles} == {"globex"}


@pytest.mark.asyncio
async def test_super_admin_builds_matrix_for_requested_tenant(matrix_service, super_admin, support_role):
    matrix = await matrix_service.build_matrix(super_admin, tenant_id="techcorp")

    assert matrix.is_granted(support_role.id, "manage_tickets") is True
    assert matrix.is_granted(support_role.id, "manage_sales") is False


@pytest.mark.asyncio
async def test_toggle_routes_through_role_update(seeded_db, matrix_service, admin, support_role):
    updated = await matrix_service.toggle_permission(support_role.id, "manage_complaints", True, admin)

    assert updated.permissions == ["manage_complaints", "manage_tickets", "read"]
    matrix = await matrix_service.build_matrix(admin)
    assert matrix.matrix[support_role.id]["manage_complaints"] is True
    assert await actions_for(seeded_db, support_role.id) == ["role_created", "permission_matrix_updated"]


@pytest.mark.asyncio
async def test_toggle_off(matrix_service, admin, support_role):
    updated = await matrix_service.toggle_permission(support_role.id, "manage_tickets", False, admin)

    assert updated.permissions == ["read"]


@pytest.mark.asyncio
async def test_toggle_on_system_role_is_immutable(matrix_service, admin, system_role_ids):
    with pytest.raises(ImmutableResourceError):
        await matrix_service.toggle_permission(system_role_ids[RoleKind.AGENT], "delete", True, admin)


@pytest.mark.asyncio
async def test_toggle_requires_manage_roles(matrix_service, manager, support_role):
    with pytest.raises(PermissionDeniedError):
        await matrix_service.toggle_permission(support_role.id, "delete", True, manager)


@pytest.mark.asyncio
async def test_toggle_unknown_permission(matrix_service, admin, support_role):
    with pytest.raises(ValidationException):
        await matrix_service.toggle_permission(support_role.id, "levitate", True, admin)


@pytest.mark.asyncio
async def test_toggle_with_stale_version(matrix_service, admin, support_role):
    await matrix_service.toggle_permission(support_role.id, "write", True, admin)

    with pytest.raises(ConflictError):
        await matrix_service.toggle_permission(
            support_role.id, "delete", True, admin, expected_version=support_role.version
        )


@pytest.mark.asyncio
async def test_toggle_foreign_role_is_not_found(matrix_service, other_admin, support_role):
    with pytest.raises(ResourceNotFoundException):
        await matrix_service.toggle_permission(support_role.id, "write", True, other_admin)


@pytest.mark.asyncio
async def test_apply_matrix_changes_updates_changed_roles_only(seeded_db, matrix_service, role_service, admin, support_role):
    billing = await role_service.create_role({"name": "Billing", "permissions": ["read"]}, admin)

    updated = await matrix_service.apply_matrix_changes(
        {
            support_role.id: {"manage_tickets": False, "manage_complaints": True},
            billing.id: {"read": True},
        },
        admin,
    )

    assert [r.id for r in updated] == [support_role.id]
    assert updated[0].permissions == ["manage_complaints", "read"]
    assert await actions_for(seeded_db, billing.id) == ["role_created"]

    result = await seeded_db.execute(
        select(AuditLogEntry).where(
            AuditLogEntry.resource_id == support_role.id,
            AuditLogEntry.action == "permission_matrix_updated",
        )
    )
    entry = result.scalar_one()
    assert entry.details["granted"] == ["manage_complaints"]
    assert entry.details["revoked"] == ["manage_tickets"]
