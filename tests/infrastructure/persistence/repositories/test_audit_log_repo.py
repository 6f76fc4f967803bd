"""Test audit log repository and the immutability of stored records"""

import pytest
from sqlalchemy import select

from crm_rbac.domain.exceptions import ImmutableResourceError
from crm_rbac.infrastructure.persistence.models import AuditLogEntry, Permission
from crm_rbac.infrastructure.persistence.repositories import AuditLogRepository


@pytest.fixture
async def audit_repo(test_db):
    """Audit log repository fixture"""
    return AuditLogRepository(test_db)


@pytest.fixture
async def stored_entry(audit_repo, test_db):
    entry = await audit_repo.append(
        AuditLogEntry(
            tenant_id="techcorp",
            actor_user_id="admin_techcorp_1",
            action="role_created",
            resource_type="role",
            resource_id="role-1",
            details={"name": "Support"},
        )
    )
    await test_db.commit()
    return entry


@pytest.mark.asyncio
async def test_append_assigns_increasing_ids(audit_repo, stored_entry):
    second = await audit_repo.append(
        AuditLogEntry(
            tenant_id="techcorp",
            actor_user_id="admin_techcorp_1",
            action="role_deleted",
            resource_type="role",
            resource_id="role-1",
        )
    )

    assert stored_entry.id is not None
    assert second.id > stored_entry.id
    assert second.details == {}
    assert second.created_at is not None


@pytest.mark.asyncio
async def test_repository_refuses_update_and_delete(audit_repo, stored_entry):
    with pytest.raises(ImmutableResourceError):
        await audit_repo.update(stored_entry)
    with pytest.raises(ImmutableResourceError):
        await audit_repo.delete(stored_entry)


@pytest.mark.asyncio
async def test_orm_refuses_modified_entry(test_db, stored_entry):
    """Changing a loaded entry fails at flush time"""
    stored_entry.action = "role_updated"

    with pytest.raises(ImmutableResourceError):
        await test_db.flush()
    await test_db.rollback()

    result = await test_db.execute(select(AuditLogEntry.action))
    assert result.scalars().all() == ["role_created"]


@pytest.mark.asyncio
async def test_orm_refuses_deleted_entry(test_db, stored_entry):
    await test_db.delete(stored_entry)

    with pytest.raises(ImmutableResourceError):
        await test_db.flush()
    await test_db.rollback()

    result = await test_db.execute(select(AuditLogEntry.id))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_query_filters_and_orders(audit_repo, stored_entry):
    await audit_repo.append(
        AuditLogEntry(
            tenant_id="globex",
            actor_user_id="admin_globex_1",
            action="role_created",
            resource_type="role",
            resource_id="role-2",
        )
    )

    everything = await audit_repo.query()
    techcorp = await audit_repo.query(tenant_id="techcorp")
    by_resource = await audit_repo.query(resource_type="role", resource_id="role-2")

    assert [e.resource_id for e in everything] == ["role-2", "role-1"]
    assert [e.id for e in techcorp] == [stored_entry.id]
    assert [e.tenant_id for e in by_resource] == ["globex"]


@pytest.mark.asyncio
async def test_permissions_are_immutable(test_db):
    permission = Permission(
        id="read",
        name="Read",
        description="View and read data",
        category="core",
        resource="*",
        action="read",
    )
    test_db.add(permission)
    await test_db.commit()

    permission.description = "Something else"
    with pytest.raises(ImmutableResourceError):
        await test_db.flush()
    await test_db.rollback()

    await test_db.delete(permission)
    with pytest.raises(ImmutableResourceError):
        await test_db.flush()
    await test_db.rollback()
