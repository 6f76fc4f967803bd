from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.domain.exceptions import ImmutableResourceError
from crm_rbac.infrastructure.persistence.models.audit_log import AuditLogEntry
from crm_rbac.infrastructure.persistence.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLogEntry]):
    """
    Append-only repository for audit entries.

    update() and delete() are refused here as well as at the ORM level.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, AuditLogEntry)

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Insert an entry; the storage layer assigns the increasing id"""
        return await self.create(entry)

    async def update(self, obj: AuditLogEntry) -> AuditLogEntry:
        raise ImmutableResourceError("audit_log", str(obj.id), "audit entries are append-only")

    async def delete(self, obj: AuditLogEntry) -> None:
        raise ImmutableResourceError("audit_log", str(obj.id), "audit entries are append-only")

    async def query(
        self,
        *,
        user_id: str | None = None,
        action: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        tenant_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        """Filtered entries, newest first"""
        query: Select[tuple[AuditLogEntry]] = select(AuditLogEntry)

        if user_id is not None:
            query = query.where(AuditLogEntry.actor_user_id == user_id)
        if action is not None:
            query = query.where(AuditLogEntry.action == action)
        if resource_type is not None:
            query = query.where(AuditLogEntry.resource_type == resource_type)
        if resource_id is not None:
            query = query.where(AuditLogEntry.resource_id == resource_id)
        if tenant_id is not None:
            query = query.where(AuditLogEntry.tenant_id == tenant_id)
        if start_date is not None:
            query = query.where(AuditLogEntry.created_at >= start_date)
        if end_date is not None:
            query = query.where(AuditLogEntry.created_at <= end_date)

        query = query.order_by(AuditLogEntry.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
