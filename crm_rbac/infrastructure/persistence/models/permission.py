from typing import Any

from sqlalchemy import Connection, String, Text, event
from sqlalchemy.orm import Mapped, Mapper, mapped_column

from crm_rbac.domain.exceptions import ImmutableResourceError
from crm_rbac.infrastructure.persistence.database import Base


class Permission(Base):
    """
    Globally defined permission (e.g., 'manage_contracts').

    Permissions are not tenant-scoped. The id is the stable string
    identifier referenced by roles; the catalog is the single source of
    truth for valid ids.
    """

    __tablename__ = "permission"

    id: Mapped[str] = mapped_column(String, primary_key=True)  # e.g., 'manage_contracts'
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(
        String, nullable=False, index=True
    )  # core | module | administrative | system
    resource: Mapped[str] = mapped_column(String, nullable=False)  # e.g., 'contracts', '*'
    action: Mapped[str] = mapped_column(String, nullable=False)  # e.g., 'manage', 'read'

    def __repr__(self) -> str:
        return f"<Permission {self.id!r} ({self.category})>"


# Permissions are effectively immutable once registered
@event.listens_for(Permission, "before_update")
def prevent_permission_updates(
    _mapper: Mapper[Any],
    _connection: Connection,
    target: Permission,
) -> None:
    raise ImmutableResourceError("permission", target.id, "registered permissions cannot change")


@event.listens_for(Permission, "before_delete")
def prevent_permission_deletes(
    _mapper: Mapper[Any],
    _connection: Connection,
    target: Permission,
) -> None:
    raise ImmutableResourceError("permission", target.id, "registered permissions cannot be removed")
