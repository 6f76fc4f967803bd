"""
Built-in RBAC definitions: the permission catalog, the system roles every
tenant receives, and the role templates offered for new custom roles.
"""
from typing import TypedDict

from crm_rbac.domain.enums import PermissionCategory, RoleKind, TemplateCategory


class RoleData(TypedDict):
    """Type definition for system role configuration"""

    name: str
    description: str
    permissions: list[str]


class TemplateData(TypedDict):
    """Type definition for role template configuration"""

    name: str
    description: str
    permissions: list[str]
    category: TemplateCategory


# Holding this permission is the platform override: it bypasses the
# system-role lock and tenant scoping on mutations.
PLATFORM_OVERRIDE_PERMISSION = "platform_admin"

_CORE = PermissionCategory.CORE
_MODULE = PermissionCategory.MODULE
_ADMIN = PermissionCategory.ADMINISTRATIVE
_SYSTEM = PermissionCategory.SYSTEM

# (id, name, description, category, resource, action)
SYSTEM_PERMISSIONS: list[tuple[str, str, str, PermissionCategory, str, str]] = [
    # Core permissions
    ("read", "Read", "View and read data", _CORE, "*", "read"),
    ("write", "Write", "Create and edit data", _CORE, "*", "write"),
    ("delete", "Delete", "Delete data", _CORE, "*", "delete"),
    # Module permissions
    ("manage_customers", "Manage Customers", "Manage customer data and relationships", _MODULE, "customers", "manage"),
    ("manage_sales", "Manage Sales", "Manage sales processes and deals", _MODULE, "sales", "manage"),
    ("manage_tickets", "Manage Tickets", "Manage support tickets and issues", _MODULE, "tickets", "manage"),
    ("manage_complaints", "Manage Complaints", "Handle customer complaints", _MODULE, "complaints", "manage"),
    ("manage_contracts", "Manage Contracts", "Manage service contracts and agreements", _MODULE, "contracts", "manage"),
    ("manage_products", "Manage Products", "Manage product catalog and inventory", _MODULE, "products", "manage"),
    ("manage_job_works", "Manage Job Works", "Manage job work orders and tasks", _MODULE, "job_works", "manage"),
    # Administrative permissions
    ("manage_users", "Manage Users", "Manage user accounts and access", _ADMIN, "users", "manage"),
    ("manage_roles", "Manage Roles", "Manage roles and permissions", _ADMIN, "roles", "manage"),
    ("view_analytics", "View Analytics", "Access analytics and reports", _ADMIN, "analytics", "view"),
    ("manage_settings", "Manage Settings", "Configure system settings", _ADMIN, "settings", "manage"),
    ("manage_companies", "Manage Companies", "Manage company information", _ADMIN, "companies", "manage"),
    # System permissions
    ("platform_admin", "Platform Admin", "Platform administration access", _SYSTEM, "platform", "admin"),
    ("super_admin", "Super Admin", "Full system administration", _SYSTEM, "system", "admin"),
    ("manage_tenants", "Manage Tenants", "Manage tenant accounts", _SYSTEM, "tenants", "manage"),
    ("system_monitoring", "System Monitoring", "Monitor system health and performance", _SYSTEM, "system", "monitor"),
]

ALL_PERMISSION_IDS = [p[0] for p in SYSTEM_PERMISSIONS]
TENANT_PERMISSION_IDS = [p[0] for p in SYSTEM_PERMISSIONS if p[3] != _SYSTEM]


# The platform role lives in the platform tenant; the rest are seeded per tenant
PLATFORM_ROLE: RoleData = {
    "name": "Super Administrator",
    "description": "Full platform administration with all permissions",
    "permissions": ALL_PERMISSION_IDS,
}

TENANT_SYSTEM_ROLES: dict[RoleKind, RoleData] = {
    RoleKind.ADMIN: {
        "name": "Administrator",
        "description": "Tenant administrator with full tenant permissions",
        "permissions": TENANT_PERMISSION_IDS,
    },
    RoleKind.MANAGER: {
        "name": "Manager",
        "description": "Business operations manager with analytics access",
        "permissions": [
            "read",
            "write",
            "manage_customers",
            "manage_sales",
            "manage_tickets",
            "manage_complaints",
            "manage_contracts",
            "view_analytics",
        ],
    },
    RoleKind.AGENT: {
        "name": "Agent",
        "description": "Customer service agent with basic operations",
        "permissions": ["read", "write", "manage_customers", "manage_tickets", "manage_complaints"],
    },
    RoleKind.ENGINEER: {
        "name": "Engineer",
        "description": "Technical engineer with product and job work access",
        "permissions": ["read", "write", "manage_products", "manage_job_works", "manage_tickets"],
    },
    RoleKind.CUSTOMER: {
        "name": "Customer",
        "description": "Customer with read-only access to own data",
        "permissions": ["read"],
    },
}


ROLE_TEMPLATES: dict[str, TemplateData] = {
    "business_admin": {
        "name": "Business Administrator",
        "description": "Complete business operations management",
        "permissions": [
            "read",
            "write",
            "delete",
            "manage_customers",
            "manage_sales",
            "manage_contracts",
            "view_analytics",
            "manage_companies",
        ],
        "category": TemplateCategory.BUSINESS,
    },
    "sales_manager": {
        "name": "Sales Manager",
        "description": "Sales operations and customer management",
        "permissions": [
            "read",
            "write",
            "manage_customers",
            "manage_sales",
            "manage_contracts",
            "view_analytics",
        ],
        "category": TemplateCategory.BUSINESS,
    },
    "support_agent": {
        "name": "Support Agent",
        "description": "Customer support and ticket management",
        "permissions": ["read", "write", "manage_customers", "manage_tickets", "manage_complaints"],
        "category": TemplateCategory.BUSINESS,
    },
    "technical_lead": {
        "name": "Technical Lead",
        "description": "Technical operations and product management",
        "permissions": ["read", "write", "manage_products", "manage_job_works", "manage_tickets"],
        "category": TemplateCategory.TECHNICAL,
    },
    "system_admin": {
        "name": "System Administrator",
        "description": "System administration and user management",
        "permissions": ["read", "write", "delete", "manage_users", "manage_roles", "manage_settings"],
        "category": TemplateCategory.ADMINISTRATIVE,
    },
}
