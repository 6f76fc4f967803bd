""" Repository module for the persistence layer. """

from crm_rbac.infrastructure.persistence.repositories.audit_log_repo import AuditLogRepository
from crm_rbac.infrastructure.persistence.repositories.base import BaseRepository
from crm_rbac.infrastructure.persistence.repositories.permission_repo import PermissionRepository
from crm_rbac.infrastructure.persistence.repositories.role_repo import RoleRepository
from crm_rbac.infrastructure.persistence.repositories.user_role_repo import UserRoleRepository

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "PermissionRepository",
    "RoleRepository",
    "UserRoleRepository",
]
