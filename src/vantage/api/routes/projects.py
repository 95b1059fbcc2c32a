"""Project API routes: reads, mutations and the clone handoff."""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.project import ProjectRow
from vantage.dependencies import Dispatcher, Page, Pagination, PortfolioManager, PortfolioViewer, TraceId, get_db
from vantage.errors.exceptions import NotFoundError, ValidationError
from vantage.models.clone import CloneProjectRequest, CloneResponse
from vantage.models.enums import Classifier
from vantage.models.project import (
    ProjectCreate,
    ProjectPatch,
    ProjectRefResponse,
    ProjectResponse,
    ProjectUpdate,
    TeamResponse,
)
from vantage.repositories.project_repo import ProjectRepository
from vantage.repositories.team_repo import TeamRepository
from vantage.services.access_control import AccessControlEvaluator
from vantage.services.clone_handoff import CloneHandoffService
from vantage.services.project_mutations import ProjectMutationService

router = APIRouter(tags=["Projects"])


def _project_response(row: ProjectRow) -> dict:
    parent = None
    if row.parent is not None:
        parent = ProjectRefResponse(uuid=row.parent.uuid, name=row.parent.name, version=row.parent.version)
    return ProjectResponse(
        uuid=row.uuid,
        name=row.name,
        version=row.version,
        classifier=row.classifier,
        author=row.author,
        authors=row.authors,
        publisher=row.publisher,
        group=row.group,
        description=row.description,
        cpe=row.cpe,
        purl=row.purl,
        swid_tag_id=row.swid_tag_id,
        supplier=row.supplier,
        manufacturer=row.manufacturer,
        is_active=row.is_active,
        is_latest=row.is_latest,
        parent=parent,
        tags=row.tags or [],
        external_references=row.external_references or [],
        access_teams=[TeamResponse(uuid=team.uuid, name=team.name) for team in row.access_teams],
        created_at=row.created_at,
        updated_at=row.updated_at,
    ).model_dump(mode="json", by_alias=True, exclude_none=True)


async def _get_visible(db: AsyncSession, principal, uuid: str) -> ProjectRow:
    row = await ProjectRepository(db).get_by_uuid(uuid)
    if row is None:
        raise NotFoundError("Project", message="The project could not be found.")
    AccessControlEvaluator(db).require_access(principal, row)
    return row


# Reads

TOTAL_COUNT_HEADER = "X-Total-Count"


def _visible_page(
    db: AsyncSession, principal, rows: list[ProjectRow], response: Response, page: Pagination
) -> list[dict]:
    """Drop projects the principal cannot see, then cut the requested window."""
    access = AccessControlEvaluator(db)
    visible = [row for row in rows if access.has_access(principal, row)]
    response.headers[TOTAL_COUNT_HEADER] = str(len(visible))
    return [_project_response(row) for row in page.apply(visible)]


def _require_classifier(classifier: str) -> str:
    if classifier not in Classifier.__members__:
        raise ValidationError("The classifier type specified is not valid.")
    return classifier


async def _get_visible_parent(db: AsyncSession, principal, uuid: str) -> ProjectRow:
    row = await ProjectRepository(db).get_by_uuid(uuid)
    if row is None:
        raise NotFoundError("Project", message="The UUID of the project could not be found.")
    AccessControlEvaluator(db).require_access(principal, row)
    return row


@router.get("/projects")
async def list_projects(
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    name: str | None = None,
    exclude_inactive: bool = False,
    only_root: bool = False,
    not_assigned_to_team_with_uuid: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    team_id = None
    if not_assigned_to_team_with_uuid:
        team = await TeamRepository(db).get_by_uuid(not_assigned_to_team_with_uuid)
        if team is None:
            raise NotFoundError("Team", message="The UUID of the team could not be found.")
        team_id = team.id
    rows = await ProjectRepository(db).list_projects(
        name=name, exclude_inactive=exclude_inactive, only_root=only_root, not_assigned_to_team_id=team_id
    )
    return _visible_page(db, principal, rows, response, page)


@router.get("/projects/lookup")
async def lookup_project(
    principal: PortfolioViewer,
    name: str = Query(..., min_length=1),
    version: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await ProjectRepository(db).get_by_identity(name.strip(), (version or "").strip() or None)
    if row is None:
        raise NotFoundError("Project", message="The project could not be found.")
    AccessControlEvaluator(db).require_access(principal, row)
    return _project_response(row)


@router.get("/projects/latest/{name}")
async def get_latest_project(
    name: str,
    principal: PortfolioViewer,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await ProjectRepository(db).get_latest(name)
    if row is None:
        raise NotFoundError("Project", message="The project could not be found.")
    AccessControlEvaluator(db).require_access(principal, row)
    return _project_response(row)


@router.get("/projects/tag/{tag}")
async def list_projects_by_tag(
    tag: str,
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    exclude_inactive: bool = False,
    only_root: bool = False,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await ProjectRepository(db).list_projects(
        tag=tag, exclude_inactive=exclude_inactive, only_root=only_root
    )
    return _visible_page(db, principal, rows, response, page)


@router.get("/projects/classifier/{classifier}")
async def list_projects_by_classifier(
    classifier: str,
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    exclude_inactive: bool = False,
    only_root: bool = False,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await ProjectRepository(db).list_projects(
        classifier=_require_classifier(classifier), exclude_inactive=exclude_inactive, only_root=only_root
    )
    return _visible_page(db, principal, rows, response, page)


@router.get("/projects/withoutDescendantsOf/{uuid}")
async def list_projects_without_descendants_of(
    uuid: str,
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    name: str | None = None,
    exclude_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    """Projects that could become the parent of ``uuid`` without forming a cycle."""
    project = await _get_visible_parent(db, principal, uuid)
    repo = ProjectRepository(db)
    levels = await repo.collect_descendant_ids(project.id)
    excluded = [project.id] + [pid for level in levels for pid in level]
    rows = await repo.list_projects(name=name, exclude_ids=excluded, exclude_inactive=exclude_inactive)
    return _visible_page(db, principal, rows, response, page)


@router.get("/projects/{uuid}")
async def get_project(
    uuid: str,
    principal: PortfolioViewer,
    db: AsyncSession = Depends(get_db),
) -> dict:
    return _project_response(await _get_visible(db, principal, uuid))


@router.get("/projects/{uuid}/children")
async def list_children(
    uuid: str,
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    exclude_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    parent = await _get_visible_parent(db, principal, uuid)
    rows = await ProjectRepository(db).list_projects(parent_id=parent.id, exclude_inactive=exclude_inactive)
    return _visible_page(db, principal, rows, response, page)


@router.get("/projects/{uuid}/children/classifier/{classifier}")
async def list_children_by_classifier(
    uuid: str,
    classifier: str,
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    exclude_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    classifier = _require_classifier(classifier)
    parent = await _get_visible_parent(db, principal, uuid)
    rows = await ProjectRepository(db).list_projects(
        parent_id=parent.id, classifier=classifier, exclude_inactive=exclude_inactive
    )
    return _visible_page(db, principal, rows, response, page)


@router.get("/projects/{uuid}/children/tag/{tag}")
async def list_children_by_tag(
    uuid: str,
    tag: str,
    principal: PortfolioViewer,
    response: Response,
    page: Page,
    exclude_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    parent = await _get_visible_parent(db, principal, uuid)
    rows = await ProjectRepository(db).list_projects(parent_id=parent.id, tag=tag, exclude_inactive=exclude_inactive)
    return _visible_page(db, principal, rows, response, page)


# Mutations


@router.put("/projects", status_code=201)
async def create_project(
    payload: ProjectCreate,
    principal: PortfolioManager,
    db: AsyncSession = Depends(get_db),
) -> dict:
    project = await ProjectMutationService(db, principal).create(payload)
    return _project_response(project)


@router.post("/projects")
async def update_project(
    payload: ProjectUpdate,
    principal: PortfolioManager,
    db: AsyncSession = Depends(get_db),
) -> dict:
    project = await ProjectMutationService(db, principal).update(payload)
    return _project_response(project)


@router.patch("/projects/{uuid}", response_model=None)
async def patch_project(
    uuid: str,
    payload: ProjectPatch,
    principal: PortfolioManager,
    db: AsyncSession = Depends(get_db),
) -> dict | Response:
    project = await ProjectMutationService(db, principal).patch(uuid, payload)
    if project is None:
        return Response(status_code=304)
    return _project_response(project)


@router.delete("/projects/{uuid}", status_code=204)
async def delete_project(
    uuid: str,
    principal: PortfolioManager,
    db: AsyncSession = Depends(get_db),
) -> Response:
    await ProjectMutationService(db, principal).delete(uuid)
    return Response(status_code=204)


@router.put("/projects/clone")
async def clone_project(
    payload: CloneProjectRequest,
    principal: PortfolioManager,
    dispatcher: Dispatcher,
    trace_id: TraceId,
    db: AsyncSession = Depends(get_db),
) -> dict:
    token = await CloneHandoffService(db, principal, dispatcher, trace_id).initiate_clone(payload)
    return CloneResponse(token=token).model_dump(by_alias=True)
