"""(name, version) uniqueness and latest-version bookkeeping."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.project import ProjectRow
from vantage.errors.exceptions import DuplicateIdentityError
from vantage.repositories.clone_reservation_repo import CloneReservationRepository
from vantage.repositories.project_repo import ProjectRepository

logger = logging.getLogger(__name__)


def normalize_identity(name: str | None, version: str | None) -> tuple[str | None, str | None]:
    """Trim both parts; blank becomes None."""
    name = (name or "").strip() or None
    version = (version or "").strip() or None
    return name, version


class IdentityRegistry:
    """Answers who holds a (name, version) slot and which version of a name is latest.

    Pending clone jobs hold their target slot through a reservation, so a slot
    counts as taken by either a project row or a reservation.
    """

    def __init__(self, session: AsyncSession):
        self.projects = ProjectRepository(session)
        self.reservations = CloneReservationRepository(session)

    async def check_name_version_free(
        self, name: str | None, version: str | None, exclude_id: int | None = None
    ) -> bool:
        name, version = normalize_identity(name, version)
        if name is None:
            return True
        holder = await self.projects.get_by_identity(name, version)
        if holder is not None and holder.id != exclude_id:
            return False
        return await self.reservations.get_by_identity(name, version) is None

    async def assert_name_version_free(
        self, name: str | None, version: str | None, exclude_id: int | None = None
    ) -> None:
        if not await self.check_name_version_free(name, version, exclude_id):
            logger.info("Identity %s@%s already taken", name, version)
            raise DuplicateIdentityError(*normalize_identity(name, version))

    async def resolve_latest(self, name: str, for_update: bool = False) -> ProjectRow | None:
        return await self.projects.get_latest(name, for_update=for_update)

    async def clear_latest(self, name: str, exclude_id: int | None = None) -> None:
        """Release the latest marker held by any other version of ``name``.

        Must run before the new holder's flag is written so the per-name
        latest index never sees two holders.
        """
        cleared = await self.projects.clear_latest(name, exclude_id=exclude_id)
        if cleared:
            logger.info("Cleared latest marker on %d previous version(s) of %s", cleared, name)
