"""Tests for domain exceptions"""

from crm_rbac.domain.exceptions import (
    ConflictError,
    CrmRbacException,
    ImmutableResourceError,
    PermissionDeniedError,
    ResourceInUseError,
    ResourceNotFoundException,
    ValidationException,
)


def test_to_dict_shape():
    error = PermissionDeniedError("nope", permission="manage_roles", resource="role")

    assert error.to_dict() == {
        "error": "PERMISSION_DENIED",
        "message": "nope",
        "details": {"permission": "manage_roles", "resource": "role"},
    }


def test_all_errors_share_base_class():
    errors = [
        ResourceNotFoundException("role", "r1"),
        ValidationException("bad", field="permissions", invalid=["x"]),
        ImmutableResourceError("role", "r1", "system roles cannot be modified"),
        ResourceInUseError("role", "r1", 2),
        ConflictError("role", "r1", expected_version=1, actual_version=2),
    ]

    for error in errors:
        assert isinstance(error, CrmRbacException)


def test_not_found_message_does_not_mention_tenant():
    error = ResourceNotFoundException("role", "r1")

    assert error.message == "role not found: r1"
    assert "tenant" not in str(error.to_dict())


def test_validation_details_list_invalid_ids():
    error = ValidationException("bad ids", field="permissions", invalid=["bogus"])

    assert error.error_code == "VALIDATION_ERROR"
    assert error.details == {"field": "permissions", "invalid": ["bogus"]}
