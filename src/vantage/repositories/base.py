"""Base repository with common CRUD operations."""

from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Generic async repository for SQLAlchemy models.

    Repositories only flush; committing is left to the caller's transaction scope.
    """

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, pk_field: str, pk_value: Any) -> T | None:
        """Get a single record by a unique field."""
        stmt = select(self.model_class).where(
            getattr(self.model_class, pk_field) == pk_value
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        """Create and persist a new record."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_all(self) -> list[T]:
        result = await self.session.execute(select(self.model_class))
        return list(result.scalars().all())
