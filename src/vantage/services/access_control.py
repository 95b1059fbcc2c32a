"""Portfolio access control.

When portfolio access control is enabled, a project is visible to a principal
that bypasses ACLs, shares at least one team with the project, or when the
project has no teams at all (projects created before ACLs were switched on
stay globally visible).
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.config import settings
from vantage.db.models.project import ProjectRow
from vantage.db.models.team import TeamRow
from vantage.errors.exceptions import AuthorizationError, LatestConflictError, ValidationError
from vantage.models.principal import Principal
from vantage.models.project import TeamSelector
from vantage.repositories.team_repo import TeamRepository
from vantage.services.identity_registry import IdentityRegistry

logger = logging.getLogger(__name__)


class AccessControlEvaluator:
    def __init__(self, session: AsyncSession, enabled: bool | None = None):
        self.teams = TeamRepository(session)
        self.registry = IdentityRegistry(session)
        self.enabled = settings.portfolio_access_control if enabled is None else enabled

    def has_access(self, principal: Principal, project: ProjectRow) -> bool:
        if not self.enabled:
            return True
        if principal.can_bypass_portfolio_acl:
            return True
        project_team_ids = {team.id for team in project.access_teams}
        if not project_team_ids:
            return True
        return bool(project_team_ids & principal.team_ids)

    def require_access(
        self,
        principal: Principal,
        project: ProjectRow,
        message: str = "Access to the specified project is forbidden",
    ) -> None:
        if not self.has_access(principal, project):
            logger.warning("Principal %s denied access to project %s", principal.name, project.uuid)
            raise AuthorizationError(message)

    async def resolve_chosen_teams(
        self, principal: Principal, requested: list[TeamSelector] | None
    ) -> list[TeamRow]:
        """Map requested team selectors to persistent teams the principal may assign."""
        requested = requested or []
        for index, chosen in enumerate(requested):
            if chosen.uuid is None and chosen.name is None:
                raise ValidationError(
                    f"accessTeams must either specify a UUID or a name, but the team at index {index} has neither."
                )
        if not requested:
            return []

        if principal.has_access_management:
            visible = [(team.id, team.uuid, team.name) for team in await self.teams.list_all()]
        else:
            visible = [(team.id, team.uuid, team.name) for team in principal.teams]
        by_uuid = {team_uuid: team_id for team_id, team_uuid, _ in visible}
        by_name = {team_name: team_id for team_id, _, team_name in visible}

        chosen_ids: list[int] = []
        for chosen in requested:
            team_id = by_uuid.get(chosen.uuid, by_name.get(chosen.name))
            if team_id is None:
                label = f"UUID {chosen.uuid}" if chosen.uuid is not None else f"name {chosen.name}"
                raise ValidationError(
                    f"The team with {label} can not be assigned because it does not exist, "
                    "or is not accessible to the authenticated principal."
                )
            if team_id not in chosen_ids:
                chosen_ids.append(team_id)

        # Principal snapshots are detached; attach the rows of this session instead
        return await self.teams.get_many(chosen_ids)

    async def guard_latest_transition(
        self,
        principal: Principal,
        name: str,
        currently_latest: bool,
        becoming_latest: bool,
        exclude_id: int | None = None,
    ) -> None:
        """Refuse to supersede a latest version the principal cannot access.

        The current holder is re-read with a row lock so it cannot change
        between this check and the write that follows in the same transaction.
        """
        if not becoming_latest or currently_latest:
            return
        holder = await self.registry.resolve_latest(name, for_update=True)
        if holder is None or holder.id == exclude_id:
            return
        if not self.has_access(principal, holder):
            logger.warning(
                "Principal %s may not supersede latest version %s of %s", principal.name, holder.uuid, name
            )
            raise LatestConflictError()

    async def grant_creator_access(self, project: ProjectRow, principal: Principal) -> None:
        """Give the creating principal's teams access to a new project that got none."""
        if not self.enabled or project.access_teams or not principal.teams:
            return
        project.access_teams = await self.teams.get_many([team.id for team in principal.teams])
