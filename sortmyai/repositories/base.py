"""
Base repository shared by the single-key tables (users, conversations,
messages).
"""
from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Primary-key lookups and inserts for one model.

    Repositories flush but never commit; the calling service decides the
    transaction boundary.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def create(self, **kwargs) -> ModelType:
        """
        Insert a record and flush it, so constraint violations surface here.

        Example:
            ```python
            user = await user_repo.create(id="uid-1", username="ada")
            ```
        """
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def get(self, id: str) -> Optional[ModelType]:
        return await self.db.get(self.model, id)

    async def get_many(self, ids: List[str]) -> List[ModelType]:
        """Records for the given ids, in no particular order; unknown ids are skipped."""
        if not ids:
            return []

        result = await self.db.execute(
            select(self.model).where(self.model.id.in_(set(ids)))
        )
        return list(result.scalars().all())

    async def exists(self, id: str) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(self.model.id == id)
        )
        return result.scalar_one() > 0
