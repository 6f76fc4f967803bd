from crm_rbac.infrastructure.persistence.models.audit_log import AuditLogEntry
# Mixins for model composition
from crm_rbac.infrastructure.persistence.models.mixins import (
    CuidMixin, MultiTenantModel, TenantMixin, TimestampMixin)
from crm_rbac.infrastructure.persistence.models.permission import Permission
from crm_rbac.infrastructure.persistence.models.role import Role, RolePermission
from crm_rbac.infrastructure.persistence.models.user_role import UserRoleAssignment

__all__ = [
    # Models
    "Permission",
    "Role",
    "RolePermission",
    "UserRoleAssignment",
    "AuditLogEntry",
    # Mixins
    "CuidMixin",
    "TenantMixin",
    "TimestampMixin",
    "MultiTenantModel",
]
