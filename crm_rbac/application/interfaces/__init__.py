"""
Application layer interfaces (ports).

These protocols define the contracts between the application layer
and the infrastructure layer, following the Dependency Inversion Principle.
"""

from crm_rbac.application.interfaces.repositories import (
    IAuditLogRepository,
    IPermissionRepository,
    IRoleRepository,
    IUserRoleRepository,
)

__all__ = [
    "IAuditLogRepository",
    "IPermissionRepository",
    "IRoleRepository",
    "IUserRoleRepository",
]
