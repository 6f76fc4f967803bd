from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_rbac.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Base repository implementing common CRUD operations.

    Repositories flush but never commit: the caller owns the unit of work.
    Subclasses override the lifecycle hooks (e.g. for cache invalidation)
    and should call super() to keep the chain intact.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Get a single record by ID"""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == id))
        return result.scalar_one_or_none()

    async def create(self, obj: ModelType) -> ModelType:
        """Add and flush a new record, then run the create hook"""
        self.db.add(obj)
        await self.db.flush()
        await self._on_after_create(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """Flush pending changes of a tracked record, then run the update hook"""
        await self.db.flush()
        await self._on_after_update(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        """Run the delete hook, then delete and flush"""
        await self._on_before_delete(obj)
        await self.db.delete(obj)
        await self.db.flush()

    # Lifecycle hooks - override in subclasses
    async def _on_after_create(self, obj: ModelType) -> None:
        pass

    async def _on_after_update(self, obj: ModelType) -> None:
        pass

    async def _on_before_delete(self, obj: ModelType) -> None:
        pass
