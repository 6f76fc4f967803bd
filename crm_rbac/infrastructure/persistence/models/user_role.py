from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from crm_rbac.infrastructure.persistence.database import Base
from crm_rbac.infrastructure.persistence.models.mixins import CuidMixin, TenantMixin
from crm_rbac.shared.utils import utc_now


class UserRoleAssignment(CuidMixin, TenantMixin, Base):
    """
    Many-to-many: users ←→ roles.

    Users live in the identity service, so user_id and assigned_by are
    plain ids. The role foreign key is RESTRICT: a role referenced by an
    assignment cannot be dropped out from under it.
    """

    __tablename__ = "user_role"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # Role assignment metadata
    assigned_by: Mapped[str | None] = mapped_column(String, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_role"),
        Index("ix_user_role_lookup", "tenant_id", "user_id"),
    )
