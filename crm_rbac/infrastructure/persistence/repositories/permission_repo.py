from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.infrastructure.persistence.models.permission import Permission
from crm_rbac.infrastructure.persistence.repositories.base import BaseRepository


class PermissionRepository(BaseRepository[Permission]):
    """Repository for the global permission catalog"""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Permission)

    async def list_all(self) -> list[Permission]:
        """All registered permissions ordered by category then id"""
        result = await self.db.execute(
            select(Permission).order_by(Permission.category, Permission.id)
        )
        return list(result.scalars().all())

    async def get_existing_ids(self, permission_ids: Iterable[str]) -> set[str]:
        """Return the subset of ids that are registered"""
        wanted = set(permission_ids)
        if not wanted:
            return set()
        result = await self.db.execute(select(Permission.id).where(Permission.id.in_(wanted)))
        return set(result.scalars().all())
