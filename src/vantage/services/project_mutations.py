"""Create, update, patch and delete workflows for projects.

Each workflow runs in one transaction and performs every check before the
first write, so a rejected request leaves nothing behind.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.db.models.project import ProjectRow
from vantage.db.transaction import atomic
from vantage.errors.exceptions import NotFoundError, ValidationError
from vantage.logging_config import bind_project_context
from vantage.models.enums import Classifier
from vantage.models.principal import Principal
from vantage.models.project import ProjectCreate, ProjectPatch, ProjectUpdate
from vantage.repositories.project_repo import ProjectRepository
from vantage.services.access_control import AccessControlEvaluator
from vantage.services.hierarchy import HierarchyValidator
from vantage.services.id_generator import generate_uuid
from vantage.services.identity_registry import IdentityRegistry

logger = logging.getLogger(__name__)


def _to_storage(value: Any) -> Any:
    """Convert payload values into their column representation."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, list):
        return [_to_storage(item) for item in value]
    if isinstance(value, Classifier):
        return value.value
    return value


@dataclass(frozen=True)
class FieldPatch:
    """Apply-if-present-and-different rule for one scalar project field."""

    field: str
    convert: Callable[[Any], Any] = _to_storage

    def diff(self, incoming: BaseModel, project: ProjectRow) -> tuple[bool, Any]:
        new_value = getattr(incoming, self.field)
        if new_value is None:
            return False, None
        stored = self.convert(new_value)
        if stored == getattr(project, self.field):
            return False, None
        return True, stored


def collection_modified(incoming: list | None, current: list | None) -> bool:
    """A non-null incoming collection replaces the current one unless both are empty or equal."""
    if incoming is None:
        return False
    if not incoming and not current:
        return False
    return incoming != (current or [])


IDENTITY_PATCHES = (FieldPatch("name"), FieldPatch("version"))

ATTRIBUTE_PATCHES = (
    FieldPatch("author"),
    FieldPatch("authors"),
    FieldPatch("publisher"),
    FieldPatch("group"),
    FieldPatch("description"),
    FieldPatch("classifier"),
    FieldPatch("cpe"),
    FieldPatch("purl"),
    FieldPatch("swid_tag_id"),
    FieldPatch("is_active"),
    FieldPatch("manufacturer"),
    FieldPatch("supplier"),
    FieldPatch("is_latest"),
)

# Replaced wholesale by a full update
FULL_UPDATE_FIELDS = (
    "version",
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
)


class ProjectMutationService:
    """Orchestrates project mutations on behalf of one principal."""

    def __init__(self, session: AsyncSession, principal: Principal, access_control_enabled: bool | None = None):
        self.session = session
        self.principal = principal
        self.projects = ProjectRepository(session)
        self.registry = IdentityRegistry(session)
        self.access = AccessControlEvaluator(session, enabled=access_control_enabled)
        self.hierarchy = HierarchyValidator(session, self.access)

    async def _load_accessible(self, uuid: str) -> ProjectRow:
        project = await self.projects.get_by_uuid(uuid)
        if project is None:
            raise NotFoundError("Project", message="The UUID of the project could not be found.")
        self.access.require_access(self.principal, project)
        bind_project_context(project.uuid)
        return project

    async def create(self, payload: ProjectCreate) -> ProjectRow:
        classifier = payload.classifier or Classifier.APPLICATION
        is_latest = bool(payload.is_latest)

        async with atomic(self.session):
            await self.registry.assert_name_version_free(payload.name, payload.version)
            await self.access.guard_latest_transition(
                self.principal, payload.name, currently_latest=False, becoming_latest=is_latest
            )

            parent = None
            if payload.parent is not None and payload.parent.uuid is not None:
                parent = await self.hierarchy.resolve_parent(payload.parent.uuid, self.principal)

            teams = await self.access.resolve_chosen_teams(self.principal, payload.access_teams)

            if is_latest:
                await self.registry.clear_latest(payload.name)

            project = ProjectRow(
                uuid=generate_uuid(),
                name=payload.name,
                classifier=classifier.value,
                is_active=True if payload.is_active is None else payload.is_active,
                is_latest=is_latest,
                tags=_to_storage(payload.tags or []),
                external_references=_to_storage(payload.external_references or []),
                **{field: _to_storage(getattr(payload, field)) for field in FULL_UPDATE_FIELDS},
            )
            project.parent = parent
            project.access_teams = teams
            self.session.add(project)
            await self.access.grant_creator_access(project, self.principal)
            await self.session.flush()

        logger.info("Project %s created by %s", project, self.principal.name)
        return project

    async def update(self, payload: ProjectUpdate) -> ProjectRow:
        async with atomic(self.session):
            project = await self._load_accessible(payload.uuid)

            # A project never loses its name through an update
            name = payload.name or project.name
            version = payload.version
            is_latest = bool(payload.is_latest)
            is_active = project.is_active if payload.is_active is None else payload.is_active
            renamed = name != project.name

            await self.access.guard_latest_transition(
                self.principal,
                name,
                currently_latest=project.is_latest and not renamed,
                becoming_latest=is_latest,
                exclude_id=project.id,
            )
            await self.registry.assert_name_version_free(name, version, exclude_id=project.id)

            parent = None
            if payload.parent is not None and payload.parent.uuid is not None:
                parent = await self.hierarchy.resolve_parent(payload.parent.uuid, self.principal, project)
            await self.hierarchy.assert_no_active_children_on_deactivation(project, is_active)

            if is_latest and (renamed or not project.is_latest):
                await self.registry.clear_latest(name, exclude_id=project.id)

            project.name = name
            for field in FULL_UPDATE_FIELDS:
                setattr(project, field, _to_storage(getattr(payload, field)))
            project.classifier = (payload.classifier or Classifier.APPLICATION).value
            project.is_active = is_active
            project.is_latest = is_latest
            project.parent = parent
            project.tags = _to_storage(payload.tags or [])
            project.external_references = _to_storage(payload.external_references or [])
            await self.session.flush()

        logger.info("Project %s updated by %s", project, self.principal.name)
        return project

    async def patch(self, uuid: str, payload: ProjectPatch) -> ProjectRow | None:
        """Apply only the supplied, differing fields. Returns None when nothing changed."""
        if payload.uuid is not None and payload.uuid != uuid:
            raise ValidationError("The UUID in the request body does not match the project being patched.")

        async with atomic(self.session):
            project = await self._load_accessible(uuid)
            changes: dict[str, Any] = {}

            name = payload.name or project.name
            renamed = name != project.name
            becoming_latest = project.is_latest if payload.is_latest is None else payload.is_latest
            await self.access.guard_latest_transition(
                self.principal,
                name,
                currently_latest=project.is_latest and not renamed,
                becoming_latest=becoming_latest,
                exclude_id=project.id,
            )

            for rule in IDENTITY_PATCHES:
                changed, value = rule.diff(payload, project)
                if changed:
                    changes[rule.field] = value
            if changes:
                await self.registry.assert_name_version_free(
                    changes.get("name", project.name),
                    changes.get("version", project.version),
                    exclude_id=project.id,
                )

            for rule in ATTRIBUTE_PATCHES:
                changed, value = rule.diff(payload, project)
                if changed:
                    changes[rule.field] = value

            if payload.parent is not None and payload.parent.uuid is not None:
                parent = await self.hierarchy.resolve_parent(payload.parent.uuid, self.principal, project)
                if project.parent_id != parent.id:
                    changes["parent"] = parent

            if "is_active" in changes:
                await self.hierarchy.assert_no_active_children_on_deactivation(project, changes["is_active"])

            tags = _to_storage(payload.tags)
            if collection_modified(tags, project.tags):
                changes["tags"] = tags
            external_references = _to_storage(payload.external_references)
            if collection_modified(external_references, project.external_references):
                changes["external_references"] = external_references

            if not changes:
                logger.debug("Patch of project %s changed nothing", project.uuid)
                return None

            if changes.get("is_latest", project.is_latest) and ("is_latest" in changes or renamed):
                await self.registry.clear_latest(name, exclude_id=project.id)

            for field, value in changes.items():
                setattr(project, field, value)
            await self.session.flush()

        logger.info("Project %s patched by %s (%s)", project, self.principal.name, ", ".join(sorted(changes)))
        return project

    async def delete(self, uuid: str) -> None:
        async with atomic(self.session):
            project = await self._load_accessible(uuid)
            logger.info("Project %s deletion request by %s", project, self.principal.name)
            removed = await self.projects.delete_recursively(project)
        logger.info("Deleted project %s and %d descendant(s)", uuid, removed - 1)
