"""
Base repository shared by the task and authorization stores.
"""

from typing import Generic, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskguard.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Usage:
        class TaskRepository(BaseRepository[Task]):
            model = Task

        repo = TaskRepository(db)
        task = await repo.get_by_id(task_id)
    """

    model: Type[ModelT]

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self) -> Select:
        return select(self.model)

    async def get_by_id(self, id: str) -> ModelT | None:
        stmt = self._base_query().where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, entity: ModelT) -> ModelT:
        """Persist a new entity; ids and timestamps are set by the flush."""
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.flush()
