"""Portfolio ACL evaluation, team selection and the latest-version guard."""

import pytest

from vantage.errors.exceptions import AuthorizationError, LatestConflictError, ValidationError
from vantage.models.enums import Permission
from vantage.models.project import TeamSelector
from vantage.services.access_control import AccessControlEvaluator


@pytest.mark.asyncio
async def test_everything_visible_when_disabled(db_session, portfolio, principal_for):
    owners = await portfolio.team("owners")
    project = await portfolio.project("app", access_teams=[owners])

    assert AccessControlEvaluator(db_session, enabled=False).has_access(principal_for(), project)


@pytest.mark.asyncio
async def test_team_membership_decides_visibility(db_session, portfolio, principal_for):
    owners = await portfolio.team("owners")
    outsiders = await portfolio.team("outsiders")
    project = await portfolio.project("app", access_teams=[owners])
    access = AccessControlEvaluator(db_session, enabled=True)

    assert access.has_access(principal_for(teams=[owners]), project)
    assert not access.has_access(principal_for(teams=[outsiders]), project)
    assert not access.has_access(principal_for(), project)


@pytest.mark.asyncio
async def test_project_without_teams_stays_visible(db_session, portfolio, principal_for):
    project = await portfolio.project("app")

    assert AccessControlEvaluator(db_session, enabled=True).has_access(principal_for(), project)


@pytest.mark.asyncio
async def test_bypass_permission_sees_everything(db_session, portfolio, principal_for):
    owners = await portfolio.team("owners")
    project = await portfolio.project("app", access_teams=[owners])
    auditor = principal_for(permissions={Permission.VIEW_PORTFOLIO, Permission.PORTFOLIO_ACCESS_CONTROL_BYPASS})

    assert AccessControlEvaluator(db_session, enabled=True).has_access(auditor, project)


@pytest.mark.asyncio
async def test_require_access_raises_forbidden(db_session, portfolio, principal_for):
    owners = await portfolio.team("owners")
    project = await portfolio.project("app", access_teams=[owners])

    with pytest.raises(AuthorizationError) as exc_info:
        AccessControlEvaluator(db_session, enabled=True).require_access(principal_for(), project)
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_team_selector_needs_uuid_or_name(db_session, principal_for):
    access = AccessControlEvaluator(db_session, enabled=True)

    with pytest.raises(ValidationError, match="index 1"):
        await access.resolve_chosen_teams(principal_for(), [TeamSelector(name="a"), TeamSelector()])


@pytest.mark.asyncio
async def test_own_teams_resolve_by_uuid_or_name(db_session, portfolio, principal_for):
    red = await portfolio.team("red")
    blue = await portfolio.team("blue")
    principal = principal_for(teams=[red, blue])

    teams = await AccessControlEvaluator(db_session, enabled=True).resolve_chosen_teams(
        principal, [TeamSelector(uuid=blue.uuid), TeamSelector(name="red"), TeamSelector(name="blue")]
    )
    assert [team.name for team in teams] == ["blue", "red"]


@pytest.mark.asyncio
async def test_foreign_team_needs_access_management(db_session, portfolio, principal_for):
    await portfolio.team("red")
    access = AccessControlEvaluator(db_session, enabled=True)

    with pytest.raises(ValidationError, match="can not be assigned"):
        await access.resolve_chosen_teams(principal_for(), [TeamSelector(name="red")])

    admin = principal_for(permissions={Permission.PORTFOLIO_MANAGEMENT, Permission.ACCESS_MANAGEMENT})
    teams = await access.resolve_chosen_teams(admin, [TeamSelector(name="red")])
    assert [team.name for team in teams] == ["red"]


@pytest.mark.asyncio
async def test_latest_guard_blocks_inaccessible_holder(db_session, portfolio, principal_for):
    owners = await portfolio.team("owners")
    outsiders = await portfolio.team("outsiders")
    await portfolio.project("app", "1.0", is_latest=True, access_teams=[owners])
    access = AccessControlEvaluator(db_session, enabled=True)

    with pytest.raises(LatestConflictError) as exc_info:
        await access.guard_latest_transition(
            principal_for(teams=[outsiders]), "app", currently_latest=False, becoming_latest=True
        )
    assert exc_info.value.code == "LATEST_CONFLICT"
    assert exc_info.value.status_code == 403

    await access.guard_latest_transition(
        principal_for(teams=[owners]), "app", currently_latest=False, becoming_latest=True
    )


@pytest.mark.asyncio
async def test_latest_guard_ignores_non_transitions(db_session, portfolio, principal_for):
    owners = await portfolio.team("owners")
    await portfolio.project("app", "1.0", is_latest=True, access_teams=[owners])
    access = AccessControlEvaluator(db_session, enabled=True)

    await access.guard_latest_transition(principal_for(), "app", currently_latest=False, becoming_latest=False)
    await access.guard_latest_transition(principal_for(), "app", currently_latest=True, becoming_latest=True)
