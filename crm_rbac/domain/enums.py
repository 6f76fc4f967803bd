"""Domain enumerations for the RBAC engine."""

from enum import Enum


class RoleKind(str, Enum):
    """Built-in role kinds, from most to least privileged"""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"
    ENGINEER = "engineer"
    CUSTOMER = "customer"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [kind.value for kind in cls]


class PermissionCategory(str, Enum):
    """Permission category enumeration"""

    CORE = "core"
    MODULE = "module"
    ADMINISTRATIVE = "administrative"
    SYSTEM = "system"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [category.value for category in cls]


class TemplateCategory(str, Enum):
    """Role template category enumeration"""

    BUSINESS = "business"
    TECHNICAL = "technical"
    ADMINISTRATIVE = "administrative"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [category.value for category in cls]
