"""
Audit log service.

Appends immutable entries for every privileged mutation and answers
filtered queries, newest first. There is no update or delete:
corrections are made by appending a clarifying entry.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.application.interfaces import IAuditLogRepository
from crm_rbac.application.schemas import AuditLogCreate, AuditLogFilter, AuditLogRead
from crm_rbac.domain.entities import Principal
from crm_rbac.domain.exceptions import (
    AuditWriteError,
    PermissionDeniedError,
    UnauthorizedException,
    ValidationException,
)
from crm_rbac.infrastructure.config.settings import Settings, get_settings
from crm_rbac.infrastructure.persistence.models import AuditLogEntry
from crm_rbac.infrastructure.persistence.repositories import AuditLogRepository
from crm_rbac.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from crm_rbac.application.services.authorization_service import AuthorizationService

logger = get_logger(__name__)

# Permissions that let a tenant-scoped caller read its tenant's audit trail
AUDIT_VIEW_PERMISSIONS = ("manage_users", "manage_roles")

SENSITIVE_FIELDS = {
    "password",
    "hashed_password",
    "secret",
    "api_key",
    "token",
    "credentials",
    "client_secret",
    "refresh_token",
    "access_token",
}


class AuditLogService:
    """Append-only audit trail for privileged actions"""

    def __init__(
        self,
        db: AsyncSession,
        audit_repo: IAuditLogRepository | None = None,
        authorization_service: "AuthorizationService | None" = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.audit_repo = audit_repo or AuditLogRepository(db)
        self._authz = authorization_service
        self.settings = settings or get_settings()

    @property
    def authz(self) -> "AuthorizationService":
        if self._authz is None:
            from crm_rbac.application.services.authorization_service import AuthorizationService

            self._authz = AuthorizationService(self.db)
        return self._authz

    async def append(self, entry: AuditLogCreate | Mapping[str, Any]) -> int:
        """
        Store an entry and return its id.

        Ids come from the storage layer and increase with append order.

        Raises:
            ValidationException: If the entry is malformed
        """
        if not isinstance(entry, AuditLogCreate):
            try:
                entry = AuditLogCreate.model_validate(entry)
            except ValidationError as e:
                raise ValidationException(f"Invalid audit entry: {e.errors()[0]['msg']}") from e

        row = AuditLogEntry(
            tenant_id=entry.tenant_id,
            actor_user_id=entry.actor_user_id,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            details=self._sanitize_details(entry.details),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )
        await self.audit_repo.append(row)

        logger.debug(
            "Audit entry %s: %s %s/%s by %s",
            row.id,
            entry.action,
            entry.resource_type,
            entry.resource_id,
            entry.actor_user_id,
        )
        return row.id

    async def record_mutation(
        self,
        *,
        actor_user_id: str,
        tenant_id: str,
        action: str,
        resource_type: str,
        resource_id: str | None,
        details: dict[str, Any] | None = None,
        caller: Principal | None = None,
    ) -> int:
        """
        Append the entry for a mutation already flushed in this session.

        If the entry cannot be written the whole session is rolled back, so
        the mutation never lands without its audit record.

        Raises:
            AuditWriteError: If the append failed (the mutation is undone)
        """
        try:
            return await self.append(
                AuditLogCreate(
                    tenant_id=tenant_id,
                    actor_user_id=actor_user_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    details=details or {},
                    ip_address=caller.ip_address if caller else None,
                    user_agent=caller.user_agent if caller else None,
                )
            )
        except Exception as e:
            logger.error(
                "Audit write failed for %s on %s/%s: %s; rolling back",
                action,
                resource_type,
                resource_id,
                e,
            )
            await self.db.rollback()
            raise AuditWriteError(action, resource_id, str(e)) from e

    async def query(
        self, filters: AuditLogFilter | Mapping[str, Any] | None = None
    ) -> list[AuditLogRead]:
        """
        Filtered entries sorted newest first.

        Raises:
            ValidationException: If the filters are malformed (e.g. inverted date range)
        """
        filters = self._coerce_filters(filters)
        limit = min(
            filters.limit or self.settings.audit_query_limit,
            self.settings.audit_query_max_limit,
        )
        entries = await self.audit_repo.query(
            user_id=filters.user_id,
            action=filters.action,
            resource_type=filters.resource_type,
            resource_id=filters.resource_id,
            tenant_id=filters.tenant_id,
            start_date=filters.start_date,
            end_date=filters.end_date,
            skip=filters.skip,
            limit=limit,
        )
        return [AuditLogRead.model_validate(e) for e in entries]

    async def query_visible(
        self,
        caller: Principal | None,
        filters: AuditLogFilter | Mapping[str, Any] | None = None,
    ) -> list[AuditLogRead]:
        """
        Query restricted to what the caller may see.

        Platform administrators see every tenant. Anyone else needs
        manage_users or manage_roles and only sees their own tenant; asking
        for another tenant yields nothing.
        """
        if caller is None:
            raise UnauthorizedException()
        filters = self._coerce_filters(filters)

        if await self.authz.has_platform_override(caller):
            return await self.query(filters)

        if not await self.authz.has_any_permission(caller, AUDIT_VIEW_PERMISSIONS):
            logger.warning(
                "Audit view denied for user %s (tenant %s)", caller.user_id, caller.tenant_id
            )
            raise PermissionDeniedError(
                "Viewing the audit log requires manage_users or manage_roles",
                resource="audit_log",
            )

        if filters.tenant_id is not None and filters.tenant_id != caller.tenant_id:
            return []
        return await self.query(filters.model_copy(update={"tenant_id": caller.tenant_id}))

    @staticmethod
    def _coerce_filters(filters: AuditLogFilter | Mapping[str, Any] | None) -> AuditLogFilter:
        if isinstance(filters, AuditLogFilter):
            return filters
        try:
            return AuditLogFilter.model_validate(dict(filters or {}))
        except ValidationError as e:
            raise ValidationException(f"Invalid audit filters: {e.errors()[0]['msg']}") from e

    @classmethod
    def _sanitize_details(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        """
        Sanitize structured details for storage.

        Redacts sensitive keys and renders values JSON-friendly.
        """
        return {
            key: "[REDACTED]" if key.lower() in SENSITIVE_FIELDS else cls._sanitize_value(value)
            for key, value in data.items()
        }

    @classmethod
    def _sanitize_value(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return cls._sanitize_details(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, (set, frozenset)):
            return sorted(cls._sanitize_value(v) for v in value)
        if isinstance(value, (list, tuple)):
            return [cls._sanitize_value(v) for v in value]
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        return str(value)
