"""Error envelope rendering."""

import pytest
from httpx import ASGITransport, AsyncClient

from vantage.repositories.project_repo import ProjectRepository


@pytest.mark.asyncio
async def test_unexpected_failure_renders_opaque_internal_error(app, manager_headers, monkeypatch):
    async def broken_listing(self, **filters):
        raise RuntimeError("connection string postgres://admin:hunter2@db")

    monkeypatch.setattr(ProjectRepository, "list_projects", broken_listing)

    # The server error middleware re-raises after rendering; keep the response
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/projects", headers=manager_headers)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert error["message"] == "An internal error occurred"
    assert "details" not in error
    assert "hunter2" not in response.text


@pytest.mark.asyncio
async def test_request_validation_lists_offending_fields(client, manager_headers):
    response = await client.put(
        "/api/v1/projects", json={"name": "app", "owner": "me"}, headers=manager_headers
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"] == [{"field": "owner", "message": "Extra inputs are not permitted"}]
    assert error["trace_id"] == response.headers["X-Trace-Id"]
