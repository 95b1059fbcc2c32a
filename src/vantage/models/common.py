"""Pydantic models shared across API payloads."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vantage.models.enums import ReferenceKind


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case keys; serializes camelCase with ``by_alias=True``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class Reference(BaseModel):
    """Reference to a resource produced or touched by a job."""

    model_config = ConfigDict(extra="forbid")

    ref_id: str
    kind: ReferenceKind
    summary: str | None = None


class ErrorDetail(BaseModel):
    """Error detail in API responses."""

    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    trace_id: str = Field(..., min_length=1, max_length=128)
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    model_config = ConfigDict(extra="forbid")

    error: ErrorDetail
