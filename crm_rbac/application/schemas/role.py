from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from crm_rbac.application.schemas.permission import PermissionRead
from crm_rbac.domain.enums import RoleKind


def _normalize_name(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("name must not be blank")
    return value


def _dedupe(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    return list(dict.fromkeys(value))


class RoleCreate(BaseModel):
    """Schema for creating a custom role"""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    description: str = Field("", description="Role description")
    permissions: list[str] = Field(
        default_factory=list, description="Permission ids granted by this role"
    )
    tenant_id: str | None = Field(
        None, description="Owning tenant; defaults to the caller's tenant"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class RoleUpdate(BaseModel):
    """Schema for patching a role; omitted fields stay unchanged"""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    permissions: list[str] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return _normalize_name(v)

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: list[str] | None) -> list[str] | None:
        return _dedupe(v)


class RoleRead(BaseModel):
    """Schema for role response"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: str
    kind: RoleKind | None = None
    is_system_role: bool
    permissions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("permission_ids", "permissions"),
    )
    version: int
    created_at: datetime
    updated_at: datetime


class PermissionMatrix(BaseModel):
    """Derived role × permission grid; never a source of truth"""

    roles: list[RoleRead]
    permissions: list[PermissionRead]
    matrix: dict[str, dict[str, bool]]

    def is_granted(self, role_id: str, permission_id: str) -> bool:
        return self.matrix.get(role_id, {}).get(permission_id, False)


class UserRoleAssignmentRead(BaseModel):
    """Schema for a user ←→ role assignment"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    user_id: str
    role_id: str
    assigned_by: str | None = None
    assigned_at: datetime
    expires_at: datetime | None = None


class BulkAssignmentResult(BaseModel):
    """Per-user outcome of a bulk assign/remove"""

    succeeded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(
        default_factory=dict, description="user_id -> error code"
    )
