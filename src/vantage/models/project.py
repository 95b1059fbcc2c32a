"""Pydantic models for project payloads and responses.

Field constraints here are the format validator of the API: anything that
fails them is rejected with a 400 before a transaction is opened.
"""

from datetime import datetime

from pydantic import Field, field_validator

from vantage.models.common import CamelModel
from vantage.models.enums import Classifier

_PRINTABLE = r"^[^\x00-\x1F\x7F]*$"
_PURL = r"^pkg:[A-Za-z.+-][A-Za-z0-9.+-]*/.+"
_CPE = r"^(cpe:2\.3:[aho\*\-]:.+|cpe:/[aho]:.*)$"


def _trim_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class OrganizationalContact(CamelModel):
    name: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=255)


class OrganizationalEntity(CamelModel):
    name: str | None = Field(None, max_length=255)
    urls: list[str] | None = None
    contacts: list[OrganizationalContact] | None = None


class Tag(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)


class ExternalReference(CamelModel):
    type: str = Field(..., min_length=1, max_length=64)
    url: str = Field(..., min_length=1, max_length=2048)
    comment: str | None = Field(None, max_length=1024)


class ParentRef(CamelModel):
    uuid: str | None = None


class TeamSelector(CamelModel):
    """A requested access team, identified by uuid or by name."""

    uuid: str | None = None
    name: str | None = None


class ProjectFields(CamelModel):
    """Descriptive attributes shared by every project payload."""

    version: str | None = Field(None, max_length=255, pattern=_PRINTABLE)
    classifier: Classifier | None = None
    author: str | None = Field(None, max_length=255)
    authors: list[OrganizationalContact] | None = None
    publisher: str | None = Field(None, max_length=255)
    group: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=255)
    cpe: str | None = Field(None, max_length=255, pattern=_CPE)
    purl: str | None = Field(None, max_length=786, pattern=_PURL)
    swid_tag_id: str | None = Field(None, max_length=255)
    supplier: OrganizationalEntity | None = None
    manufacturer: OrganizationalEntity | None = None
    is_active: bool | None = None
    is_latest: bool | None = None
    parent: ParentRef | None = None
    tags: list[Tag] | None = None
    external_references: list[ExternalReference] | None = None

    @field_validator("version")
    @classmethod
    def _normalize_version(cls, value: str | None) -> str | None:
        return _trim_to_none(value)


class ProjectCreate(ProjectFields):
    name: str = Field(..., max_length=255, pattern=_PRINTABLE)
    access_teams: list[TeamSelector] | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        trimmed = _trim_to_none(value)
        if trimmed is None:
            raise ValueError("name must not be blank")
        return trimmed


class ProjectUpdate(ProjectFields):
    """Full update. A blank name keeps the stored one.

    ``access_teams`` is accepted so a project read back from the API can be
    sent as-is, but it is ignored: an update never changes the ACL.
    """

    uuid: str
    name: str | None = Field(None, max_length=255, pattern=_PRINTABLE)
    access_teams: list[TeamSelector] | None = None

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str | None) -> str | None:
        return _trim_to_none(value)


class ProjectPatch(ProjectFields):
    """Partial update. ``None`` means "leave unchanged".

    ``uuid`` must match the path when present. ``access_teams`` is ignored.
    """

    uuid: str | None = None
    name: str | None = Field(None, max_length=255, pattern=_PRINTABLE)
    access_teams: list[TeamSelector] | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and _trim_to_none(value) is None:
            raise ValueError("name must not be blank")
        return _trim_to_none(value)


class ProjectRefResponse(CamelModel):
    uuid: str
    name: str
    version: str | None = None


class TeamResponse(CamelModel):
    uuid: str
    name: str


class ProjectResponse(CamelModel):
    uuid: str
    name: str
    version: str | None = None
    classifier: Classifier
    author: str | None = None
    authors: list[OrganizationalContact] | None = None
    publisher: str | None = None
    group: str | None = None
    description: str | None = None
    cpe: str | None = None
    purl: str | None = None
    swid_tag_id: str | None = None
    supplier: OrganizationalEntity | None = None
    manufacturer: OrganizationalEntity | None = None
    is_active: bool
    is_latest: bool
    parent: ProjectRefResponse | None = None
    tags: list[Tag] = []
    external_references: list[ExternalReference] = []
    access_teams: list[TeamResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None
