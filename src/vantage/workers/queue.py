"""Job records and hand-off of job descriptors to the async executor."""

import asyncio
import json
import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.config import settings
from vantage.db.models.job import JobRow
from vantage.models.enums import JobStatus
from vantage.repositories.job_repo import JobRepository
from vantage.services.id_generator import generate_id

logger = logging.getLogger(__name__)


async def enqueue_job(
    session: AsyncSession,
    job_type: str,
    project_id: int | None,
    trace_id: str,
    payload: dict | None = None,
) -> JobRow:
    """Create a queued job record inside the caller's transaction.

    The job id doubles as the tracking token handed back to clients.
    """
    repo = JobRepository(session)
    return await repo.create(
        job_id=generate_id("job_"),
        job_type=job_type,
        project_id=project_id,
        status=JobStatus.QUEUED.value,
        payload=payload or {},
        trace_id=trace_id,
        result_refs=[],
        errors=None,
    )


class JobDispatcher(Protocol):
    async def dispatch(self, job_type: str, job_id: str, payload: dict) -> None:
        """Hand a committed job to the executor and return immediately."""
        ...


class RedisJobDispatcher:
    """Push jobs onto ``<prefix>:<job_type>`` for ``vantage.workers.consumer``."""

    def __init__(self, redis, prefix: str | None = None):
        self.redis = redis
        self.prefix = prefix or settings.job_queue_prefix

    def queue_key(self, job_type: str) -> str:
        return f"{self.prefix}:{job_type}"

    async def dispatch(self, job_type: str, job_id: str, payload: dict) -> None:
        await self.redis.rpush(
            self.queue_key(job_type),
            json.dumps({"job_id": job_id, "payload": payload}),
        )
        logger.debug("Job %s pushed to %s", job_id, self.queue_key(job_type))


class LocalJobDispatcher:
    """Run jobs as tasks on the API's own event loop (local mode, no Redis)."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._tasks: set[asyncio.Task] = set()

    async def dispatch(self, job_type: str, job_id: str, payload: dict) -> None:
        from vantage.workers.consumer import execute_job

        task = asyncio.create_task(execute_job(self.session_factory, job_type, job_id, payload, dispatcher=self))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for in-flight jobs; used on shutdown."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
