from datetime import datetime

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.infrastructure.persistence.models.user_role import UserRoleAssignment
from crm_rbac.infrastructure.persistence.repositories.base import BaseRepository


def _active(now: datetime):
    return or_(UserRoleAssignment.expires_at.is_(None), UserRoleAssignment.expires_at > now)


class UserRoleRepository(BaseRepository[UserRoleAssignment]):
    """Repository for user ←→ role assignments"""

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserRoleAssignment)

    async def get_assignment(self, user_id: str, role_id: str) -> UserRoleAssignment | None:
        result = await self.db.execute(
            select(UserRoleAssignment).where(
                UserRoleAssignment.user_id == user_id,
                UserRoleAssignment.role_id == role_id,
            )
        )
        return result.scalar_one_or_none()

    async def count_active_for_role(self, role_id: str, now: datetime) -> int:
        """Number of unexpired assignments referencing a role"""
        result = await self.db.execute(
            select(func.count())
            .select_from(UserRoleAssignment)
            .where(UserRoleAssignment.role_id == role_id, _active(now))
        )
        return int(result.scalar_one())

    async def delete_expired_for_role(self, role_id: str, now: datetime) -> int:
        """Drop expired assignments so they don't block role deletion"""
        result = await self.db.execute(
            delete(UserRoleAssignment).where(
                UserRoleAssignment.role_id == role_id,
                UserRoleAssignment.expires_at.is_not(None),
                UserRoleAssignment.expires_at <= now,
            )
        )
        return result.rowcount or 0

    async def get_user_ids_for_role(self, role_id: str, now: datetime) -> list[str]:
        result = await self.db.execute(
            select(UserRoleAssignment.user_id)
            .where(UserRoleAssignment.role_id == role_id, _active(now))
            .order_by(UserRoleAssignment.assigned_at, UserRoleAssignment.user_id)
        )
        return list(result.scalars().all())
