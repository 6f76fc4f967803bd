"""
Domain layer - Enterprise Business Rules.

Contains the principal entity, role kinds, the role hierarchy and the
exceptions describing rule violations. Independent of persistence.
"""

from crm_rbac.domain.entities import Principal
from crm_rbac.domain.enums import PermissionCategory, RoleKind, TemplateCategory
from crm_rbac.domain.hierarchy import assignable_roles, hierarchy_rank

__all__ = [
    "Principal",
    "RoleKind",
    "PermissionCategory",
    "TemplateCategory",
    "hierarchy_rank",
    "assignable_roles",
]
