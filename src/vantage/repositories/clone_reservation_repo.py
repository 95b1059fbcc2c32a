"""Repository for identity slots held by pending clone jobs."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.clone_reservation import CloneReservationRow
from vantage.repositories.base import BaseRepository


class CloneReservationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, CloneReservationRow)

    async def get_by_identity(self, name: str, version: str | None) -> CloneReservationRow | None:
        stmt = select(CloneReservationRow).where(
            CloneReservationRow.name == name,
            CloneReservationRow.version_key == (version or ""),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def reserve(self, job_id: str, name: str, version: str | None) -> CloneReservationRow:
        return await self.create(job_id=job_id, name=name, version=version, version_key=version or "")

    async def release(self, job_id: str) -> None:
        await self.session.execute(delete(CloneReservationRow).where(CloneReservationRow.job_id == job_id))
