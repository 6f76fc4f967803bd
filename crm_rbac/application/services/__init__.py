from crm_rbac.application.services.audit_service import AuditLogService
from crm_rbac.application.services.authorization_service import AuthorizationService
from crm_rbac.application.services.permission_catalog import PermissionCatalogService
from crm_rbac.application.services.permission_matrix_service import PermissionMatrixService
from crm_rbac.application.services.platform_initialization_service import (
    PlatformInitializationService,
)
from crm_rbac.application.services.role_service import RoleService

__all__ = [
    "AuditLogService",
    "AuthorizationService",
    "PermissionCatalogService",
    "PermissionMatrixService",
    "PlatformInitializationService",
    "RoleService",
]
