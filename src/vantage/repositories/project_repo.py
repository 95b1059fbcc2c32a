"""Project repository."""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.job import JobRow
from vantage.db.models.project import ProjectRow
from vantage.db.models.team import TeamRow
from vantage.repositories.base import BaseRepository


class ProjectRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ProjectRow)

    async def get(self, project_id: int) -> ProjectRow | None:
        return await self.get_by_id("id", project_id)

    async def get_by_uuid(self, uuid: str) -> ProjectRow | None:
        return await self.get_by_id("uuid", uuid)

    async def get_by_identity(self, name: str, version: str | None) -> ProjectRow | None:
        stmt = select(ProjectRow).where(
            ProjectRow.name == name,
            ProjectRow.version_key == (version or ""),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest(self, name: str, for_update: bool = False) -> ProjectRow | None:
        stmt = select(ProjectRow).where(ProjectRow.name == name, ProjectRow.is_latest.is_(True))
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def clear_latest(self, name: str, exclude_id: int | None = None) -> int:
        """Unset ``is_latest`` on every other version of ``name``. Returns rows changed."""
        stmt = (
            update(ProjectRow)
            .where(ProjectRow.name == name, ProjectRow.is_latest.is_(True))
            .values(is_latest=False)
            .execution_options(synchronize_session="fetch")
        )
        if exclude_id is not None:
            stmt = stmt.where(ProjectRow.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def get_parent_id(self, project_id: int) -> int | None:
        stmt = select(ProjectRow.parent_id).where(ProjectRow.id == project_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_active_children(self, parent_id: int) -> int:
        stmt = select(func.count()).select_from(ProjectRow).where(
            ProjectRow.parent_id == parent_id,
            ProjectRow.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_projects(
        self,
        name: str | None = None,
        classifier: str | None = None,
        tag: str | None = None,
        parent_id: int | None = None,
        exclude_ids: list[int] | None = None,
        not_assigned_to_team_id: int | None = None,
        exclude_inactive: bool = False,
        only_root: bool = False,
    ) -> list[ProjectRow]:
        """List projects matching every given filter, ordered by name then version."""
        stmt = select(ProjectRow)
        if parent_id is not None:
            stmt = stmt.where(ProjectRow.parent_id == parent_id)
        if exclude_ids:
            stmt = stmt.where(ProjectRow.id.not_in(exclude_ids))
        if not_assigned_to_team_id is not None:
            stmt = stmt.where(~ProjectRow.access_teams.any(TeamRow.id == not_assigned_to_team_id))
        if name is not None:
            stmt = stmt.where(ProjectRow.name == name)
        if classifier is not None:
            stmt = stmt.where(ProjectRow.classifier == classifier)
        if exclude_inactive:
            stmt = stmt.where(ProjectRow.is_active.is_(True))
        if only_root:
            stmt = stmt.where(ProjectRow.parent_id.is_(None))
        stmt = stmt.order_by(ProjectRow.name, ProjectRow.version_key)
        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())
        if tag is not None:
            # Tags live in a JSON column, so they are matched here rather than in SQL
            rows = [row for row in rows if any(item.get("name") == tag for item in row.tags or [])]
        return rows

    async def collect_descendant_ids(self, project_id: int) -> list[list[int]]:
        """Return descendant ids grouped by depth, nearest generation first."""
        levels: list[list[int]] = []
        frontier = [project_id]
        seen = {project_id}
        while frontier:
            stmt = select(ProjectRow.id).where(ProjectRow.parent_id.in_(frontier))
            result = await self.session.execute(stmt)
            children = [child_id for child_id in result.scalars().all() if child_id not in seen]
            if not children:
                break
            seen.update(children)
            levels.append(children)
            frontier = children
        return levels

    async def delete_recursively(self, project: ProjectRow) -> int:
        """Delete ``project`` and every descendant, deepest generation first.

        Jobs that referenced a deleted project keep their history with the
        project reference cleared. Returns the number of projects removed.
        """
        levels = await self.collect_descendant_ids(project.id)
        all_ids = [project.id] + [pid for level in levels for pid in level]

        await self.session.execute(
            update(JobRow)
            .where(JobRow.project_id.in_(all_ids))
            .values(project_id=None)
            .execution_options(synchronize_session=False)
        )

        for level in reversed(levels):
            result = await self.session.execute(select(ProjectRow).where(ProjectRow.id.in_(level)))
            for row in result.scalars().all():
                await self.session.delete(row)
            await self.session.flush()

        await self.session.delete(project)
        await self.session.flush()
        return len(all_ids)
