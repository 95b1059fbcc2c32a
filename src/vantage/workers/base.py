"""Base worker interface for async job processing."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.models.enums import JobStatus
from vantage.repositories.job_repo import JobRepository

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """Abstract base class for job workers."""

    max_retries: int = 0

    @abstractmethod
    async def process(self, job_id: str, payload: dict, session: AsyncSession) -> dict:
        """Do the work and return ``{"result_refs": [...]}``. Raise to fail the job."""
        ...

    async def finalize(self, job_id: str, session: AsyncSession, succeeded: bool) -> None:
        """Hook run in the same transaction that records the terminal status."""

    async def execute(self, job_id: str, payload: dict, session: AsyncSession) -> JobStatus | None:
        """Run the job lifecycle: running -> process -> succeeded/failed (or queued for retry)."""
        repo = JobRepository(session)
        job = await repo.get(job_id)
        if not job:
            logger.warning("Job %s vanished before execution", job_id)
            return None

        job.status = JobStatus.RUNNING.value
        await session.commit()

        try:
            result = await self.process(job_id, payload, session)
        except Exception as exc:
            # Discard whatever the failed attempt wrote before recording the failure
            await session.rollback()
            job = await repo.get(job_id)
            if not job:
                return None
            error_detail = {
                "code": getattr(exc, "code", "WORKER_ERROR"),
                "message": getattr(exc, "message", str(exc)),
                "trace_id": job.trace_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            logger.exception("Job %s failed (type=%s, retry=%d)", job_id, job.job_type, job.retry_count)
            job.errors = (job.errors or []) + [error_detail]
            if job.retry_count < self.max_retries:
                job.retry_count += 1
                job.status = JobStatus.QUEUED.value
            else:
                job.status = JobStatus.FAILED.value
                await self.finalize(job_id, session, succeeded=False)
            await session.commit()
            return JobStatus(job.status)

        job.status = JobStatus.SUCCEEDED.value
        job.result_refs = result.get("result_refs", [])
        await self.finalize(job_id, session, succeeded=True)
        await session.commit()
        logger.info("Job %s succeeded (type=%s)", job_id, job.job_type)
        return JobStatus.SUCCEEDED
