"""Create, update, patch and delete workflows at the service layer."""

import pytest
from sqlalchemy import select

from vantage.db.models import ProjectRow
from vantage.errors.exceptions import (
    DuplicateIdentityError,
    HierarchyViolationError,
    LatestConflictError,
    NotFoundError,
)
from vantage.models.project import ParentRef, ProjectCreate, ProjectPatch, ProjectUpdate, Tag
from vantage.services.project_mutations import ProjectMutationService, collection_modified


async def _reload(session_factory, uuid: str) -> ProjectRow | None:
    async with session_factory() as fresh:
        result = await fresh.execute(select(ProjectRow).where(ProjectRow.uuid == uuid))
        return result.scalar_one_or_none()


def test_collection_modified_rules():
    assert not collection_modified(None, [{"name": "a"}])
    assert not collection_modified([], None)
    assert not collection_modified([{"name": "a"}], [{"name": "a"}])
    assert collection_modified([], [{"name": "a"}])
    assert collection_modified([{"name": "b"}], [{"name": "a"}])


@pytest.mark.asyncio
async def test_create_applies_defaults(db_session, principal_for):
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    project = await service.create(ProjectCreate(name="app", version="1.0"))

    assert project.classifier == "APPLICATION"
    assert project.is_latest is False
    assert project.is_active is True
    assert project.uuid


@pytest.mark.asyncio
async def test_create_duplicate_identity_rejected(db_session, portfolio, principal_for):
    await portfolio.project("app", "1.0")
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    with pytest.raises(DuplicateIdentityError):
        await service.create(ProjectCreate(name="app", version=" 1.0 "))


@pytest.mark.asyncio
async def test_create_latest_supersedes_previous_holder(db_session, portfolio, principal_for, session_factory):
    v1 = await portfolio.project("app", "1.0", is_latest=True)
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    v2 = await service.create(ProjectCreate(name="app", version="2.0", is_latest=True))

    assert v2.is_latest is True
    assert (await _reload(session_factory, v1.uuid)).is_latest is False


@pytest.mark.asyncio
async def test_creator_teams_granted_when_none_chosen(db_session, portfolio, principal_for):
    red = await portfolio.team("red")
    service = ProjectMutationService(db_session, principal_for(teams=[red]), access_control_enabled=True)

    project = await service.create(ProjectCreate(name="app"))

    assert [team.name for team in project.access_teams] == ["red"]


@pytest.mark.asyncio
async def test_patch_latest_blocked_by_inaccessible_holder(db_session, portfolio, principal_for, session_factory):
    owners = await portfolio.team("owners")
    mine = await portfolio.team("mine")
    previous = await portfolio.project("app", "1.0", is_latest=True, access_teams=[owners])
    current = await portfolio.project("app", "2.0", access_teams=[mine])
    current_uuid, previous_uuid = current.uuid, previous.uuid
    service = ProjectMutationService(db_session, principal_for(teams=[mine]), access_control_enabled=True)

    with pytest.raises(LatestConflictError):
        await service.patch(current_uuid, ProjectPatch(is_latest=True))

    assert (await _reload(session_factory, current_uuid)).is_latest is False
    assert (await _reload(session_factory, previous_uuid)).is_latest is True


@pytest.mark.asyncio
async def test_patch_latest_moves_marker(db_session, portfolio, principal_for, session_factory):
    previous = await portfolio.project("app", "1.0", is_latest=True)
    current = await portfolio.project("app", "2.0")
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    patched = await service.patch(current.uuid, ProjectPatch(is_latest=True))

    assert patched.is_latest is True
    assert (await _reload(session_factory, previous.uuid)).is_latest is False


@pytest.mark.asyncio
async def test_patch_without_differences_is_a_no_op(db_session, portfolio, principal_for):
    project = await portfolio.project("app", "1.0", description="web app", tags=[{"name": "prod"}])
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    result = await service.patch(
        project.uuid,
        ProjectPatch(name="app", version="1.0", description="web app", tags=[Tag(name="prod")]),
    )
    assert result is None


@pytest.mark.asyncio
async def test_patch_rename_into_taken_identity_changes_nothing(db_session, portfolio, principal_for, session_factory):
    await portfolio.project("app", "1.0")
    other = await portfolio.project("app", "2.0", description="before")
    other_uuid = other.uuid
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    with pytest.raises(DuplicateIdentityError):
        await service.patch(other_uuid, ProjectPatch(version="1.0", description="after"))

    reloaded = await _reload(session_factory, other_uuid)
    assert reloaded.version == "2.0"
    assert reloaded.description == "before"


@pytest.mark.asyncio
async def test_patch_deactivation_blocked_by_active_child(db_session, portfolio, principal_for, session_factory):
    parent = await portfolio.project("parent")
    await portfolio.project("child", parent=parent)
    parent_uuid = parent.uuid
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    with pytest.raises(HierarchyViolationError):
        await service.patch(parent_uuid, ProjectPatch(is_active=False))

    assert (await _reload(session_factory, parent_uuid)).is_active is True


@pytest.mark.asyncio
async def test_update_replaces_descriptive_fields(db_session, portfolio, principal_for):
    parent = await portfolio.project("platform")
    project = await portfolio.project(
        "app", "1.0", description="old", publisher="acme", is_active=False, parent=parent
    )
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    updated = await service.update(ProjectUpdate(uuid=project.uuid, version="1.1", description="new"))

    assert updated.name == "app"
    assert updated.version == "1.1"
    assert updated.description == "new"
    assert updated.publisher is None
    assert updated.classifier == "APPLICATION"
    # Omitted activity keeps the stored value; omitted parent detaches
    assert updated.is_active is False
    assert updated.parent is None


@pytest.mark.asyncio
async def test_update_unknown_project_is_not_found(db_session, principal_for):
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    with pytest.raises(NotFoundError):
        await service.update(ProjectUpdate(uuid="00000000-0000-0000-0000-000000000000"))


@pytest.mark.asyncio
async def test_update_rejects_cycle(db_session, portfolio, principal_for):
    b = await portfolio.project("b")
    a = await portfolio.project("a", parent=b)
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    with pytest.raises(HierarchyViolationError):
        await service.update(ProjectUpdate(uuid=b.uuid, parent=ParentRef(uuid=a.uuid)))


@pytest.mark.asyncio
async def test_delete_removes_descendants(db_session, portfolio, principal_for, session_factory):
    root = await portfolio.project("root")
    child = await portfolio.project("child", parent=root)
    grandchild = await portfolio.project("grandchild", parent=child)
    bystander = await portfolio.project("bystander")
    service = ProjectMutationService(db_session, principal_for(), access_control_enabled=False)

    await service.delete(root.uuid)

    for uuid in (root.uuid, child.uuid, grandchild.uuid):
        assert await _reload(session_factory, uuid) is None
    assert await _reload(session_factory, bystander.uuid) is not None
