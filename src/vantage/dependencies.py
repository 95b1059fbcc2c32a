"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.errors.exceptions import AuthenticationError, AuthorizationError
from vantage.logging_config import bind_request_context
from vantage.models.enums import Permission
from vantage.models.principal import Principal
from vantage.services.principals import load_principal


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


def get_dispatcher(request: Request):
    """Return the job dispatcher installed on app state at startup."""
    return request.app.state.job_dispatcher


async def get_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
    trace_id: str = Depends(get_trace_id),
) -> Principal:
    """Return the acting principal or raise 401."""
    claims = getattr(request.state, "user", {})
    if "_auth_error" in claims:
        raise AuthenticationError(claims["_auth_error"])
    if not claims or claims.get("sub") in ("anonymous", "", None):
        raise AuthenticationError("Authentication required")
    principal = await load_principal(db, claims)
    if principal is None:
        raise AuthenticationError("The authenticated principal no longer exists")
    bind_request_context(trace_id, principal.name)
    return principal


@dataclass(frozen=True)
class Pagination:
    """Window over an ordered listing. No limit means the rest of the listing."""

    offset: int = 0
    limit: int | None = None

    def apply(self, items: list) -> list:
        end = None if self.limit is None else self.offset + self.limit
        return items[self.offset:end]


def get_pagination(
    offset: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=500),
) -> Pagination:
    return Pagination(offset=offset, limit=limit)


def require_permission(*permissions: Permission):
    """Return a dependency that enforces every given permission."""

    async def _check(principal: Principal = Depends(get_principal)) -> Principal:
        missing = [p.value for p in permissions if not principal.has_permission(p)]
        if missing:
            raise AuthorizationError(f"Requires permission: {', '.join(missing)}")
        return principal

    return _check


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
TraceId = Annotated[str, Depends(get_trace_id)]
Dispatcher = Annotated[object, Depends(get_dispatcher)]
PortfolioViewer = Annotated[Principal, Depends(require_permission(Permission.VIEW_PORTFOLIO))]
PortfolioManager = Annotated[Principal, Depends(require_permission(Permission.PORTFOLIO_MANAGEMENT))]
Page = Annotated[Pagination, Depends(get_pagination)]
