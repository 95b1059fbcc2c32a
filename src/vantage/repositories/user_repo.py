"""Repository for User and ApiKey records."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.user import ApiKeyRow, UserRow
from vantage.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRow)

    async def get(self, user_id: str) -> UserRow | None:
        return await self.get_by_id("user_id", user_id)


class ApiKeyRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApiKeyRow)

    async def get(self, key_id: str) -> ApiKeyRow | None:
        return await self.get_by_id("key_id", key_id)

    async def get_by_hash(self, key_hash: str) -> ApiKeyRow | None:
        stmt = select(ApiKeyRow).where(
            ApiKeyRow.key_hash == key_hash,
            ApiKeyRow.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
