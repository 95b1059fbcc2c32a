"""Clone handoff: validate synchronously, commit a job, then dispatch it.

The caller gets a token as soon as the job is committed. No project row
exists until the worker runs; the target (name, version) slot is held by a
reservation written in the same transaction as the job.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.transaction import atomic
from vantage.errors.exceptions import InternalError, NotFoundError
from vantage.logging_config import bind_project_context
from vantage.models.clone import CloneJobDescriptor, CloneProjectRequest
from vantage.models.enums import JobStatus, JobType
from vantage.models.principal import Principal
from vantage.repositories.clone_reservation_repo import CloneReservationRepository
from vantage.repositories.job_repo import JobRepository
from vantage.repositories.project_repo import ProjectRepository
from vantage.services.access_control import AccessControlEvaluator
from vantage.services.identity_registry import IdentityRegistry
from vantage.workers.queue import JobDispatcher, enqueue_job

logger = logging.getLogger(__name__)


class CloneHandoffService:
    def __init__(
        self,
        session: AsyncSession,
        principal: Principal,
        dispatcher: JobDispatcher,
        trace_id: str,
        access_control_enabled: bool | None = None,
    ):
        self.session = session
        self.principal = principal
        self.dispatcher = dispatcher
        self.trace_id = trace_id
        self.projects = ProjectRepository(session)
        self.reservations = CloneReservationRepository(session)
        self.registry = IdentityRegistry(session)
        self.access = AccessControlEvaluator(session, enabled=access_control_enabled)

    async def initiate_clone(self, request: CloneProjectRequest) -> str:
        """Validate the clone, commit its job and hand it off. Returns the job token."""
        async with atomic(self.session):
            source = await self.projects.get_by_uuid(request.project)
            if source is None:
                raise NotFoundError("Project", message="The UUID of the project could not be found.")
            self.access.require_access(self.principal, source)
            bind_project_context(source.uuid)

            await self.registry.assert_name_version_free(source.name, request.target_version)
            await self.access.guard_latest_transition(
                self.principal,
                source.name,
                currently_latest=False,
                becoming_latest=request.make_clone_latest,
            )

            job = await enqueue_job(self.session, JobType.CLONE_PROJECT.value, source.id, self.trace_id)
            descriptor = CloneJobDescriptor(
                token=job.job_id,
                source_project_id=source.id,
                source_name=source.name,
                request=request,
                trace_id=self.trace_id,
                requested_by=self.principal.name,
            )
            job.payload = descriptor.model_dump(mode="json")
            await self.reservations.reserve(job.job_id, source.name, request.target_version)

        logger.info("Project %s is being cloned by %s (job=%s)", source, self.principal.name, descriptor.token)

        try:
            await self.dispatcher.dispatch(JobType.CLONE_PROJECT.value, descriptor.token, job.payload)
        except Exception as exc:
            logger.exception("Dispatch of clone job %s failed", descriptor.token)
            await self._abandon(descriptor.token, str(exc))
            raise InternalError("The clone job could not be queued") from exc
        return descriptor.token

    async def _abandon(self, job_id: str, reason: str) -> None:
        """Fail a committed job that never reached the executor and free its slot."""
        async with atomic(self.session):
            job = await JobRepository(self.session).get(job_id)
            if job is not None:
                job.status = JobStatus.FAILED.value
                job.errors = [
                    {
                        "code": "DISPATCH_FAILED",
                        "message": reason,
                        "trace_id": self.trace_id,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    }
                ]
            await self.reservations.release(job_id)
