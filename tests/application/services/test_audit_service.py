"""Tests for the audit log service"""

from datetime import UTC, datetime

import pytest
from freezegun import freeze_time

from crm_rbac.application.schemas import AuditLogCreate, AuditLogFilter
from crm_rbac.domain.entities import Principal
from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.exceptions import PermissionDeniedError, UnauthorizedException, ValidationException


def entry(**overrides) -> AuditLogCreate:
    data = {
        "tenant_id": "techcorp",
        "actor_user_id": "admin_techcorp_1",
        "action": "role_updated",
        "resource_type": "role",
        "resource_id": "role-1",
    }
    data.update(overrides)
    return AuditLogCreate(**data)


@pytest.mark.asyncio
async def test_append_assigns_increasing_ids(audit_service):
    first = await audit_service.append(entry())
    second = await audit_service.append(entry())

    assert second > first


@pytest.mark.asyncio
async def test_query_returns_newest_first(audit_service):
    ids = [await audit_service.append(entry(resource_id=f"role-{i}")) for i in range(3)]

    results = await audit_service.query({"action": "role_updated"})

    assert [r.id for r in results] == list(reversed(ids))


@pytest.mark.asyncio
async def test_query_filters(audit_service):
    await audit_service.append(entry(actor_user_id="u1", action="role_created"))
    await audit_service.append(entry(actor_user_id="u2", action="role_deleted", tenant_id="globex"))
    await audit_service.append(entry(actor_user_id="u1", action="role_assigned", resource_type="user"))

    by_user = await audit_service.query(AuditLogFilter(user_id="u1"))
    by_tenant = await audit_service.query({"tenant_id": "globex", "user_id": "u2"})
    by_resource = await audit_service.query({"resource_type": "user", "user_id": "u1"})

    assert {r.action for r in by_user} == {"role_created", "role_assigned"}
    assert [r.action for r in by_tenant] == ["role_deleted"]
    assert [r.action for r in by_resource] == ["role_assigned"]


@pytest.mark.asyncio
async def test_query_by_date_range(audit_service):
    with freeze_time("2026-01-01 09:00:00"):
        await audit_service.append(entry(actor_user_id="clock", resource_id="january"))
    with freeze_time("2026-02-01 09:00:00"):
        await audit_service.append(entry(actor_user_id="clock", resource_id="february"))
    with freeze_time("2026-03-01 09:00:00"):
        await audit_service.append(entry(actor_user_id="clock", resource_id="march"))

    results = await audit_service.query(
        {
            "user_id": "clock",
            "start_date": datetime(2026, 1, 15, tzinfo=UTC),
            "end_date": datetime(2026, 2, 15, tzinfo=UTC),
        }
    )

    assert [r.resource_id for r in results] == ["february"]


@pytest.mark.asyncio
async def test_inverted_date_range_is_rejected(audit_service):
    with pytest.raises(ValidationException):
        await audit_service.query(
            {"start_date": datetime(2026, 2, 1, tzinfo=UTC), "end_date": datetime(2026, 1, 1, tzinfo=UTC)}
        )


@pytest.mark.asyncio
async def test_limit_is_capped(audit_service):
    for i in range(5):
        await audit_service.append(entry(actor_user_id="pager", resource_id=str(i)))

    page = await audit_service.query({"user_id": "pager", "limit": 2, "skip": 1})

    assert [r.resource_id for r in page] == ["3", "2"]


@pytest.mark.asyncio
async def test_details_are_sanitized(audit_service):
    entry_id = await audit_service.append(
        entry(
            actor_user_id="sanitizer",
            details={
                "password": "hunter2",
                "when": datetime(2026, 1, 1, tzinfo=UTC),
                "kind": RoleKind.AGENT,
                "nested": {"Token": "abc", "ids": {"b", "a"}},
            },
        )
    )

    [stored] = await audit_service.query({"user_id": "sanitizer"})

    assert stored.id == entry_id
    assert stored.details == {
        "password": "[REDACTED]",
        "when": "2026-01-01T00:00:00+00:00",
        "kind": "agent",
        "nested": {"Token": "[REDACTED]", "ids": ["a", "b"]},
    }


@pytest.mark.asyncio
async def test_malformed_entry_is_rejected(audit_service):
    with pytest.raises(ValidationException):
        await audit_service.append({"tenant_id": "techcorp", "action": "role_created"})


@pytest.mark.asyncio
async def test_query_visible_scopes_to_caller_tenant(audit_service, admin):
    await audit_service.append(entry(actor_user_id="viewer-test", tenant_id="techcorp"))
    await audit_service.append(entry(actor_user_id="viewer-test", tenant_id="globex"))

    own = await audit_service.query_visible(admin, {"user_id": "viewer-test"})
    foreign = await audit_service.query_visible(admin, {"user_id": "viewer-test", "tenant_id": "globex"})

    assert [r.tenant_id for r in own] == ["techcorp"]
    assert foreign == []


@pytest.mark.asyncio
async def test_query_visible_for_platform_admin_spans_tenants(audit_service, super_admin):
    await audit_service.append(entry(actor_user_id="viewer-test", tenant_id="techcorp"))
    await audit_service.append(entry(actor_user_id="viewer-test", tenant_id="globex"))

    results = await audit_service.query_visible(super_admin, {"user_id": "viewer-test"})

    assert {r.tenant_id for r in results} == {"techcorp", "globex"}


@pytest.mark.asyncio
async def test_query_visible_requires_management_permission(audit_service, agent):
    with pytest.raises(PermissionDeniedError):
        await audit_service.query_visible(agent)
    with pytest.raises(UnauthorizedException):
        await audit_service.query_visible(None)


@pytest.mark.asyncio
async def test_seeding_is_audited_by_system_actor(audit_service):
    results = await audit_service.query({"user_id": "system", "tenant_id": "techcorp"})

    assert len(results) == 5
    assert {r.action for r in results} == {"role_created"}
    assert {r.details["kind"] for r in results} == {"admin", "manager", "agent", "engineer", "customer"}
