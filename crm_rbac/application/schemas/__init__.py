from crm_rbac.application.schemas.audit import AuditLogCreate, AuditLogFilter, AuditLogRead
from crm_rbac.application.schemas.permission import (
    PermissionRead,
    PermissionValidationResult,
    RoleTemplate,
)
from crm_rbac.application.schemas.role import (
    BulkAssignmentResult,
    PermissionMatrix,
    RoleCreate,
    RoleRead,
    RoleUpdate,
    UserRoleAssignmentRead,
)

__all__ = [
    "AuditLogCreate",
    "AuditLogFilter",
    "AuditLogRead",
    "BulkAssignmentResult",
    "PermissionMatrix",
    "PermissionRead",
    "PermissionValidationResult",
    "RoleCreate",
    "RoleRead",
    "RoleTemplate",
    "RoleUpdate",
    "UserRoleAssignmentRead",
]
