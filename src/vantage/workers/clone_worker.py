"""Clone worker: materializes the project copy described by a clone job."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.project import ProjectPropertyRow, ProjectRow
from vantage.errors.exceptions import DuplicateIdentityError, NotFoundError
from vantage.models.clone import CloneJobDescriptor
from vantage.models.enums import ReferenceKind
from vantage.repositories.clone_reservation_repo import CloneReservationRepository
from vantage.repositories.project_repo import ProjectRepository
from vantage.services.id_generator import generate_uuid
from vantage.services.identity_registry import IdentityRegistry
from vantage.workers.base import BaseWorker

logger = logging.getLogger(__name__)

# Request flag -> portfolio data copied by the analysis pipeline, not by this worker
DEFERRED_COPIES = {
    "include_components": "components",
    "include_services": "services",
    "include_audit_history": "audit_history",
    "include_policy_violations": "policy_violations",
    "include_metrics": "metrics",
    "include_findings": "findings",
}

COPIED_ATTRIBUTES = (
    "classifier",
    "author",
    "authors",
    "publisher",
    "group",
    "description",
    "cpe",
    "purl",
    "swid_tag_id",
    "supplier",
    "manufacturer",
    "is_active",
    "parent_id",
)


class CloneProjectWorker(BaseWorker):
    async def process(self, job_id: str, payload: dict, session: AsyncSession) -> dict:
        descriptor = CloneJobDescriptor.model_validate(payload)
        request = descriptor.request
        projects = ProjectRepository(session)
        registry = IdentityRegistry(session)

        source = await projects.get(descriptor.source_project_id)
        if source is None:
            raise NotFoundError("Project", message="The source project no longer exists.")

        # The slot was reserved and the latest guard checked under the name
        # the source had at handoff; a later rename of the source does not move it
        name = descriptor.source_name

        # The reservation held the slot until now; the new row takes it over
        await CloneReservationRepository(session).release(job_id)
        if not await registry.check_name_version_free(name, request.target_version):
            raise DuplicateIdentityError(name, request.target_version)
        if request.make_clone_latest:
            await registry.clear_latest(name)

        clone = ProjectRow(
            uuid=generate_uuid(),
            name=name,
            version=request.target_version,
            is_latest=request.make_clone_latest,
            tags=list(source.tags) if request.include_tags else [],
            external_references=list(source.external_references or []),
            **{field: getattr(source, field) for field in COPIED_ATTRIBUTES},
        )
        if request.include_acl:
            clone.access_teams = list(source.access_teams)
        if request.include_properties:
            clone.properties = [
                ProjectPropertyRow(
                    group_name=prop.group_name,
                    property_name=prop.property_name,
                    property_value=prop.property_value,
                    property_type=prop.property_type,
                    description=prop.description,
                )
                for prop in source.properties
            ]
        session.add(clone)
        await session.flush()
        logger.info("Cloned project %s into %s (job=%s)", source, clone.uuid, job_id)

        result_refs = [
            {"ref_id": clone.uuid, "kind": ReferenceKind.PROJECT.value, "summary": f"Clone of {source.uuid}"}
        ]
        for flag, label in DEFERRED_COPIES.items():
            if getattr(request, flag):
                result_refs.append(
                    {
                        "ref_id": label,
                        "kind": ReferenceKind.DEFERRED.value,
                        "summary": f"Copy of {label.replace('_', ' ')} is left to the analysis pipeline",
                    }
                )
        return {"result_refs": result_refs}

    async def finalize(self, job_id: str, session: AsyncSession, succeeded: bool) -> None:
        if not succeeded:
            await CloneReservationRepository(session).release(job_id)
