"""The acting identity of a request, detached from any database session."""

from pydantic import BaseModel, ConfigDict

from vantage.models.enums import Permission, PrincipalKind


class TeamRef(BaseModel):
    """Snapshot of a team membership. Re-fetch by ``id`` before attaching to a row."""

    model_config = ConfigDict(frozen=True)

    id: int
    uuid: str
    name: str


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: PrincipalKind
    subject: str
    name: str
    teams: tuple[TeamRef, ...] = ()
    permissions: frozenset[Permission] = frozenset()

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions

    @property
    def has_access_management(self) -> bool:
        return Permission.ACCESS_MANAGEMENT in self.permissions

    @property
    def can_bypass_portfolio_acl(self) -> bool:
        return Permission.PORTFOLIO_ACCESS_CONTROL_BYPASS in self.permissions

    @property
    def team_ids(self) -> set[int]:
        return {team.id for team in self.teams}
