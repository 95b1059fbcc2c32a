"""Parent/child integrity checks."""

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.project import ProjectRow
from vantage.errors.exceptions import HierarchyViolationError, NotFoundError
from vantage.models.principal import Principal
from vantage.repositories.project_repo import ProjectRepository
from vantage.services.access_control import AccessControlEvaluator

INACTIVE_PARENT = "An inactive Parent cannot be selected as parent"
SELF_PARENT = "A project cannot select itself as a parent"
CYCLIC_PARENT = "The new parent project cannot be a child of the current project."
ACTIVE_CHILDREN = "Project cannot be set to inactive if active children are present."


class HierarchyValidator:
    def __init__(self, session: AsyncSession, access: AccessControlEvaluator):
        self.projects = ProjectRepository(session)
        self.access = access

    async def resolve_parent(
        self,
        parent_uuid: str,
        principal: Principal,
        project: ProjectRow | None = None,
    ) -> ProjectRow:
        """Load and vet a proposed parent for ``project`` (None while creating).

        Checks run in order: existence, access, activity, then cycle freedom.
        """
        parent = await self.projects.get_by_uuid(parent_uuid)
        if parent is None:
            raise NotFoundError("Parent project", message="The UUID of the parent project could not be found.")
        self.access.require_access(principal, parent, "Access to the specified parent project is forbidden")
        # Keeping an existing parent that has since been deactivated is allowed
        unchanged = project is not None and project.parent_id == parent.id
        if not parent.is_active and not unchanged:
            raise HierarchyViolationError(INACTIVE_PARENT)
        if project is not None:
            await self.assert_no_cycle(project, parent)
        return parent

    async def assert_no_cycle(self, project: ProjectRow, parent: ProjectRow) -> None:
        """Walk the ancestor chain of ``parent``; meeting ``project`` means a cycle."""
        if parent.id == project.id:
            raise HierarchyViolationError(SELF_PARENT)
        visited = {parent.id}
        ancestor_id = parent.parent_id
        while ancestor_id is not None:
            if ancestor_id == project.id:
                raise HierarchyViolationError(CYCLIC_PARENT)
            if ancestor_id in visited:
                # Pre-existing loop above the proposed parent; refuse to attach to it
                raise HierarchyViolationError(CYCLIC_PARENT)
            visited.add(ancestor_id)
            ancestor_id = await self.projects.get_parent_id(ancestor_id)

    async def assert_no_active_children_on_deactivation(
        self, project: ProjectRow, new_is_active: bool | None
    ) -> None:
        if project.is_active and new_is_active is False:
            if await self.projects.count_active_children(project.id):
                raise HierarchyViolationError(ACTIVE_CHILDREN)
