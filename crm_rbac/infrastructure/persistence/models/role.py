from collections.abc import Iterable

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_rbac.infrastructure.persistence.database import Base
from crm_rbac.infrastructure.persistence.models.mixins import (
    CuidMixin,
    MultiTenantModel,
    TenantMixin,
)


class Role(MultiTenantModel, Base):
    """
    Tenant-scoped roles (e.g., 'admin', 'Sales Team Lead').

    Inherits from MultiTenantModel:
        - id: CUID primary key
        - tenant_id: Owning tenant (or the platform sentinel)
        - created_at: Creation timestamp
        - updated_at: Last update timestamp

    `version` is the optimistic lock: a flush against a stale version
    raises StaleDataError.
    """

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String, nullable=False)  # Display name
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str | None] = mapped_column(
        String, nullable=True
    )  # Built-in role kind for system roles, e.g. 'admin'
    is_system_role: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )  # System roles cannot be modified or deleted
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    permission_links: Mapped[list["RolePermission"]] = relationship(
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_role_tenant_name"),
        Index("ix_role_tenant_kind", "tenant_id", "kind"),
    )

    @property
    def permission_ids(self) -> list[str]:
        return sorted(link.permission_id for link in self.permission_links)

    def set_permissions(self, permission_ids: Iterable[str]) -> None:
        """Replace the granted permission set, keeping unchanged links."""
        wanted = set(permission_ids)
        self.permission_links = [
            link for link in self.permission_links if link.permission_id in wanted
        ]
        existing = {link.permission_id for link in self.permission_links}
        for permission_id in sorted(wanted - existing):
            self.permission_links.append(
                RolePermission(tenant_id=self.tenant_id, permission_id=permission_id)
            )

    def __repr__(self) -> str:
        return f"<Role {self.name!r} tenant={self.tenant_id!r} system={self.is_system_role}>"


class RolePermission(CuidMixin, TenantMixin, Base):
    """
    Many-to-many: roles ←→ permissions.

    Inherits from:
        - CuidMixin: CUID primary key
        - TenantMixin: Tenant id (copied from the role)
    """

    __tablename__ = "role_permission"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[str] = mapped_column(
        String, ForeignKey("permission.id"), nullable=False
    )

    role: Mapped[Role] = relationship(back_populates="permission_links")

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permission_lookup", "tenant_id", "role_id"),
    )
