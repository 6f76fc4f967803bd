"""Tests for the Principal entity"""

import pytest

from crm_rbac.domain.entities import Principal
from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.exceptions import UnauthorizedException


def test_principal_with_role_kind():
    principal = Principal(user_id="u1", tenant_id="techcorp", role_kind=RoleKind.AGENT)

    assert principal.role_ref == "kind:agent"
    assert principal.role_id is None


def test_role_id_takes_precedence_in_role_ref():
    principal = Principal(
        user_id="u1", tenant_id="techcorp", role_kind=RoleKind.AGENT, role_id="role-123"
    )

    assert principal.role_ref == "role-123"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"user_id": "", "tenant_id": "techcorp", "role_kind": RoleKind.ADMIN},
        {"user_id": "u1", "tenant_id": "", "role_kind": RoleKind.ADMIN},
        {"user_id": "u1", "tenant_id": "techcorp"},
        {"user_id": "u1", "tenant_id": "techcorp", "role_kind": "admin"},
    ],
)
def test_malformed_principal_is_unauthorized(kwargs):
    with pytest.raises(UnauthorizedException) as exc_info:
        Principal(**kwargs)

    assert exc_info.value.error_code == "UNAUTHORIZED"


def test_principal_is_immutable():
    principal = Principal(user_id="u1", tenant_id="techcorp", role_kind=RoleKind.AGENT)

    with pytest.raises(AttributeError):
        principal.tenant_id = "globex"


def test_from_claims_reads_token_style_keys():
    principal = Principal.from_claims(
        {
            "sub": "manager_techcorp_1",
            "tenant_id": "techcorp",
            "role": "manager",
            "ip_address": "10.0.0.1",
        }
    )

    assert principal.user_id == "manager_techcorp_1"
    assert principal.role_kind is RoleKind.MANAGER
    assert principal.ip_address == "10.0.0.1"


def test_from_claims_prefers_user_id_over_sub():
    principal = Principal.from_claims(
        {"user_id": "u1", "sub": "ignored", "tenant_id": "techcorp", "role_id": "r1"}
    )

    assert principal.user_id == "u1"
    assert principal.role_id == "r1"
    assert principal.role_kind is None


@pytest.mark.parametrize(
    "claims",
    [
        None,
        {},
        {"sub": "u1", "tenant_id": "techcorp", "role": "root"},
        {"sub": "u1", "role": "admin"},
        {"tenant_id": "techcorp", "role": "admin"},
    ],
)
def test_from_claims_rejects_malformed_claims(claims):
    with pytest.raises(UnauthorizedException):
        Principal.from_claims(claims)
