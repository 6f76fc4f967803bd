from pydantic import BaseModel, ConfigDict, Field

from crm_rbac.domain.enums import PermissionCategory, TemplateCategory


class PermissionRead(BaseModel):
    """Schema for a registered permission"""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Stable permission id (e.g., 'manage_contracts')")
    name: str
    description: str
    category: PermissionCategory
    resource: str = Field(..., description="Target resource (e.g., 'contracts', '*')")
    action: str = Field(..., description="Action verb (e.g., 'manage', 'read')")


class PermissionValidationResult(BaseModel):
    """Outcome of checking a set of permission ids against the catalog"""

    valid: bool
    invalid: list[str] = Field(default_factory=list)


class RoleTemplate(BaseModel):
    """Immutable blueprint used to seed new custom roles"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    permissions: list[str]
    category: TemplateCategory
