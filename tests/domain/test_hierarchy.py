"""Tests for the role hierarchy table"""

import pytest

from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.hierarchy import ASSIGNABLE_ROLES, ROLE_HIERARCHY, assignable_roles, hierarchy_rank


def test_every_role_kind_is_ranked():
    assert set(ROLE_HIERARCHY) == set(RoleKind)
    assert set(ASSIGNABLE_ROLES) == set(RoleKind)


@pytest.mark.parametrize(
    "kind,rank",
    [
        (RoleKind.SUPER_ADMIN, 6),
        (RoleKind.ADMIN, 5),
        (RoleKind.MANAGER, 4),
        (RoleKind.AGENT, 3),
        (RoleKind.ENGINEER, 3),
        (RoleKind.CUSTOMER, 1),
    ],
)
def test_hierarchy_rank(kind, rank):
    assert hierarchy_rank(kind) == rank


def test_admin_cannot_assign_admin_or_super_admin():
    available = assignable_roles(RoleKind.ADMIN)

    assert RoleKind.ADMIN not in available
    assert RoleKind.SUPER_ADMIN not in available
    assert set(available) == {
        RoleKind.MANAGER,
        RoleKind.AGENT,
        RoleKind.ENGINEER,
        RoleKind.CUSTOMER,
    }


def test_manager_assigns_agent_and_customer_only():
    assert assignable_roles(RoleKind.MANAGER) == [RoleKind.AGENT, RoleKind.CUSTOMER]


@pytest.mark.parametrize("kind", [RoleKind.AGENT, RoleKind.ENGINEER, RoleKind.CUSTOMER])
def test_lower_kinds_assign_nothing(kind):
    assert assignable_roles(kind) == []


def test_assignable_kinds_always_rank_below_assigner():
    for kind, assignable in ASSIGNABLE_ROLES.items():
        for target in assignable:
            assert hierarchy_rank(target) < hierarchy_rank(kind)


def test_hierarchy_table_is_read_only():
    with pytest.raises(TypeError):
        ROLE_HIERARCHY[RoleKind.CUSTOMER] = 10
