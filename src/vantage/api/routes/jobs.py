"""Job status polling endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.dependencies import PortfolioViewer, get_db
from vantage.errors.exceptions import NotFoundError
from vantage.models.job import JobStatusModel
from vantage.repositories.job_repo import JobRepository
from vantage.repositories.project_repo import ProjectRepository

router = APIRouter(tags=["Jobs"])


@router.get("/jobs/{job_id}")
async def get_job_status(
    job_id: str,
    principal: PortfolioViewer,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await JobRepository(db).get(job_id)
    if not row:
        raise NotFoundError("Job", job_id)

    project_uuid = None
    if row.project_id is not None:
        project = await ProjectRepository(db).get(row.project_id)
        project_uuid = project.uuid if project else None

    return JobStatusModel(
        job_id=row.job_id,
        status=row.status,
        job_type=row.job_type,
        project_uuid=project_uuid,
        created_at=row.created_at,
        updated_at=row.updated_at,
        trace_id=row.trace_id,
        result_refs=row.result_refs,
        errors=row.errors,
    ).model_dump(mode="json", exclude_none=True)
