"""
Shared enumerations for the RBAC engine.

Note: RoleKind and PermissionCategory are in crm_rbac/domain/enums.py as they're domain concepts.
"""

from enum import Enum


class AuditAction(str, Enum):
    """Known audit action vocabulary for privileged mutations"""

    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    PERMISSION_MATRIX_UPDATED = "permission_matrix_updated"
    ROLE_ASSIGNED = "role_assigned"
    ROLE_REMOVED = "role_removed"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]


class AuditResource(str, Enum):
    """Resource types recorded on audit entries"""

    ROLE = "role"
    USER = "user"
    PERMISSION = "permission"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [resource.value for resource in cls]


# Actor recorded for bootstrap operations that have no human caller
SYSTEM_ACTOR_ID = "system"
