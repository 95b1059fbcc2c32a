"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from vantage.db.models.team import TeamRow, team_members
from vantage.db.models.user import ApiKeyRow, UserRow
from vantage.db.models.project import ProjectPropertyRow, ProjectRow, project_access_teams
from vantage.db.models.job import JobRow
from vantage.db.models.clone_reservation import CloneReservationRow

__all__ = [
    "TeamRow",
    "team_members",
    "UserRow",
    "ApiKeyRow",
    "ProjectRow",
    "ProjectPropertyRow",
    "project_access_teams",
    "JobRow",
    "CloneReservationRow",
]
