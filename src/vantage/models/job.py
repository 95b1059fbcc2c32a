"""Pydantic model for job status polling."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from vantage.models.common import ErrorDetail, Reference
from vantage.models.enums import JobStatus, JobType


class JobStatusModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_id: str = Field(..., pattern=r"^job_[A-Za-z0-9_-]+$")
    status: JobStatus
    job_type: JobType
    project_uuid: str | None = None
    created_at: datetime
    updated_at: datetime
    trace_id: str
    result_refs: list[Reference] | None = None
    errors: list[ErrorDetail] | None = None
