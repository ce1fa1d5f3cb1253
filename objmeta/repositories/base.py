"""
Base Repository

Generic CRUD helpers shared by all repositories.
Repositories flush but never commit: the session's owner decides.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from objmeta.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Repository base class.

    Subclasses set `model` to the ORM class they manage.

    Example usage:
        class VersionRepository(BaseRepository[Version]):
            model = Version
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: Any) -> ModelT | None:
        """Get an entity by primary key."""
        return await self.session.get(self.model, id)

    async def get(self, **filters: Any) -> ModelT | None:
        """Get a single entity matching all keyword filters."""
        query = select(self.model).filter_by(**filters)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, entity: ModelT) -> ModelT:
        """Add an entity and flush so generated columns are populated."""
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity: ModelT) -> None:
        """Delete an entity."""
        await self.session.delete(entity)
        await self.session.flush()
