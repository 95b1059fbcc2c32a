"""Clone handoff over HTTP and at the service layer."""

import pytest
from sqlalchemy import func, select

from vantage.db.models import CloneReservationRow, JobRow, ProjectRow
from vantage.errors.exceptions import InternalError
from vantage.models.clone import CloneProjectRequest
from vantage.services.clone_handoff import CloneHandoffService


class _BrokenDispatcher:
    async def dispatch(self, job_type, job_id, payload):
        raise ConnectionError("queue unavailable")


async def _count_projects(session_factory, name: str) -> int:
    async with session_factory() as fresh:
        result = await fresh.execute(select(func.count()).select_from(ProjectRow).where(ProjectRow.name == name))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_clone_handoff_returns_token_without_writing_project(
    client, manager_headers, portfolio, dispatcher, session_factory
):
    source = await portfolio.project("app", "1.0")

    response = await client.put(
        "/api/v1/projects/clone",
        json={"project": source.uuid, "version": "2.0", "includeTags": True},
        headers=manager_headers,
    )
    assert response.status_code == 200
    token = response.json()["token"]
    assert token.startswith("job_")

    assert await _count_projects(session_factory, "app") == 1
    assert [(job_type, job_id) for job_type, job_id, _ in dispatcher.dispatched] == [("clone_project", token)]
    payload = dispatcher.dispatched[0][2]
    assert payload["source_project_id"] == source.id
    assert payload["request"]["include_tags"] is True

    job = await client.get(f"/api/v1/jobs/{token}", headers=manager_headers)
    assert job.status_code == 200
    assert job.json()["status"] == "queued"
    assert job.json()["job_type"] == "clone_project"
    assert job.json()["project_uuid"] == source.uuid


@pytest.mark.asyncio
async def test_clone_to_existing_identity_conflicts(client, manager_headers, portfolio, dispatcher):
    source = await portfolio.project("app", "1.0")
    await portfolio.project("app", "2.0")

    response = await client.put(
        "/api/v1/projects/clone", json={"project": source.uuid, "version": "2.0"}, headers=manager_headers
    )
    assert response.status_code == 409
    assert dispatcher.dispatched == []


@pytest.mark.asyncio
async def test_pending_clone_holds_target_identity(client, manager_headers, portfolio):
    source = await portfolio.project("app", "1.0")
    first = await client.put(
        "/api/v1/projects/clone", json={"project": source.uuid, "version": "2.0"}, headers=manager_headers
    )
    assert first.status_code == 200

    second = await client.put(
        "/api/v1/projects/clone", json={"project": source.uuid, "version": "2.0"}, headers=manager_headers
    )
    assert second.status_code == 409

    create = await client.put("/api/v1/projects", json={"name": "app", "version": "2.0"}, headers=manager_headers)
    assert create.status_code == 409


@pytest.mark.asyncio
async def test_clone_of_unknown_project_is_not_found(client, manager_headers):
    response = await client.put(
        "/api/v1/projects/clone",
        json={"project": "00000000-0000-0000-0000-000000000000", "version": "2.0"},
        headers=manager_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_clone_of_inaccessible_project_is_forbidden(client, portfolio, acl_enabled):
    owners = await portfolio.team("owners")
    await portfolio.user("outsider")
    source = await portfolio.project("app", "1.0", access_teams=[owners])

    response = await client.put(
        "/api/v1/projects/clone",
        json={"project": source.uuid, "version": "2.0"},
        headers=portfolio.bearer("outsider"),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_failed_dispatch_fails_job_and_frees_identity(db_session, portfolio, principal_for, session_factory):
    source = await portfolio.project("app", "1.0")
    service = CloneHandoffService(
        db_session, principal_for(), _BrokenDispatcher(), "trc_test", access_control_enabled=False
    )

    with pytest.raises(InternalError):
        await service.initiate_clone(CloneProjectRequest(project=source.uuid, version="2.0"))

    async with session_factory() as fresh:
        job = (await fresh.execute(select(JobRow))).scalar_one()
        assert job.status == "failed"
        assert job.errors[0]["code"] == "DISPATCH_FAILED"
        reservations = (await fresh.execute(select(CloneReservationRow))).scalars().all()
        assert reservations == []


@pytest.mark.asyncio
async def test_clone_cannot_supersede_inaccessible_latest(client, portfolio, dispatcher, session_factory, acl_enabled):
    owners = await portfolio.team("owners")
    mine = await portfolio.team("mine")
    await portfolio.user("bob", teams=[mine])
    await portfolio.project("app", "1.0", is_latest=True, access_teams=[owners])
    source = await portfolio.project("app", "0.9", access_teams=[mine])

    response = await client.put(
        "/api/v1/projects/clone",
        json={"project": source.uuid, "version": "2.0", "makeCloneLatest": True},
        headers=portfolio.bearer("bob"),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "LATEST_CONFLICT"
    assert dispatcher.dispatched == []

    async with session_factory() as fresh:
        assert (await fresh.execute(select(func.count()).select_from(JobRow))).scalar_one() == 0
        assert (await fresh.execute(select(func.count()).select_from(CloneReservationRow))).scalar_one() == 0
