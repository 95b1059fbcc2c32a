"""Team repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.team import TeamRow
from vantage.repositories.base import BaseRepository


class TeamRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, TeamRow)

    async def get_many(self, team_ids: list[int]) -> list[TeamRow]:
        if not team_ids:
            return []
        stmt = select(TeamRow).where(TeamRow.id.in_(team_ids))
        result = await self.session.execute(stmt)
        rows = {row.id: row for row in result.scalars().all()}
        return [rows[team_id] for team_id in team_ids if team_id in rows]

    async def get_by_uuid(self, uuid: str) -> TeamRow | None:
        return await self.get_by_id("uuid", uuid)
