from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AuditLogCreate(BaseModel):
    """Schema for appending an audit entry"""

    tenant_id: str = Field(..., min_length=1)
    actor_user_id: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1, description="e.g. 'role_created'")
    resource_type: str = Field(..., min_length=1, description="e.g. 'role', 'user'")
    resource_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


class AuditLogRead(BaseModel):
    """Schema for a stored audit entry"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    actor_user_id: str
    action: str
    resource_type: str
    resource_id: str | None = None
    details: dict[str, Any]
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime


class AuditLogFilter(BaseModel):
    """Query filters; every field is optional and combined with AND"""

    user_id: str | None = None
    action: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    tenant_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    skip: int = Field(0, ge=0)
    limit: int | None = Field(None, ge=1, description="Defaults to audit_query_limit")

    @model_validator(mode="after")
    def validate_date_range(self) -> "AuditLogFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self
