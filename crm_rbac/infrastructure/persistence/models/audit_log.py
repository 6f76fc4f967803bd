from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Connection, DateTime, Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, Mapper, mapped_column
from sqlalchemy.sql import func

from crm_rbac.domain.exceptions import ImmutableResourceError
from crm_rbac.infrastructure.persistence.database import Base
from crm_rbac.shared.utils import utc_now


class AuditLogEntry(Base):
    """
    Append-only record of a privileged action.

    The autoincrementing id gives a total order consistent with append
    time; queries sort on it. Entries are never updated or deleted:
    corrections are new entries.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    actor_user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String, nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_audit_log_tenant_created", "tenant_id", "created_at"),
        Index("ix_audit_log_resource", "resource_type", "resource_id"),
    )


# Prevent updates and deletes at ORM level (the audit trail is immutable)
@event.listens_for(AuditLogEntry, "before_update")
def prevent_audit_updates(
    _mapper: Mapper[Any],
    _connection: Connection,
    target: AuditLogEntry,
) -> None:
    raise ImmutableResourceError(
        "audit_log", str(target.id), "audit entries are append-only; append a correcting entry"
    )


@event.listens_for(AuditLogEntry, "before_delete")
def prevent_audit_deletes(
    _mapper: Mapper[Any],
    _connection: Connection,
    target: AuditLogEntry,
) -> None:
    raise ImmutableResourceError(
        "audit_log", str(target.id), "audit entries are append-only; append a correcting entry"
    )
