"""Clone request, job descriptor and handoff response."""

from pydantic import ConfigDict, Field, field_validator

from vantage.models.common import CamelModel


class CloneProjectRequest(CamelModel):
    project: str = Field(..., min_length=1, description="UUID of the source project")
    version: str = Field(..., max_length=255)
    include_tags: bool = False
    include_properties: bool = False
    include_components: bool = False
    include_services: bool = False
    include_audit_history: bool = False
    include_acl: bool = False
    include_policy_violations: bool = False
    include_metrics: bool = False
    include_findings: bool = False
    make_clone_latest: bool = False

    @field_validator("version")
    @classmethod
    def _trim_version(cls, value: str) -> str:
        return value.strip()

    @property
    def target_version(self) -> str | None:
        return self.version or None


class CloneJobDescriptor(CamelModel):
    """Immutable unit of work handed to the clone worker after commit."""

    model_config = ConfigDict(frozen=True)

    token: str
    source_project_id: int
    source_name: str
    request: CloneProjectRequest
    trace_id: str
    requested_by: str


class CloneResponse(CamelModel):
    token: str
