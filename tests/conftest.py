"""Shared test fixtures."""

import secrets
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vantage.config import settings
from vantage.db.base import Base
# Import all models to register with Base.metadata
import vantage.db.models  # noqa: F401
from vantage.db.models import ApiKeyRow, ProjectRow, TeamRow, UserRow
from vantage.api.middleware.auth import hash_api_key
from vantage.models.enums import Permission, PrincipalKind
from vantage.models.principal import Principal, TeamRef
from vantage.services.id_generator import generate_id, generate_uuid

MANAGER_PERMISSIONS = (Permission.VIEW_PORTFOLIO, Permission.PORTFOLIO_MANAGEMENT)


class RecordingDispatcher:
    """Collects dispatched jobs instead of running them."""

    def __init__(self):
        self.dispatched: list[tuple[str, str, dict]] = []

    async def dispatch(self, job_type: str, job_id: str, payload: dict) -> None:
        self.dispatched.append((job_type, job_id, payload))


class Portfolio:
    """Seeds teams, users, API keys and projects directly through the ORM."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def team(self, name: str, permissions=()) -> TeamRow:
        row = TeamRow(uuid=generate_uuid(), name=name, permissions=[p.value for p in permissions])
        self.session.add(row)
        await self.session.commit()
        return row

    async def user(self, user_id: str, permissions=MANAGER_PERMISSIONS, teams=()) -> UserRow:
        row = UserRow(
            user_id=user_id,
            email=f"{user_id}@example.com",
            display_name=user_id,
            permissions=[p.value for p in permissions],
        )
        row.teams = list(teams)
        self.session.add(row)
        await self.session.commit()
        return row

    async def api_key(self, team: TeamRow, name: str = "ci") -> str:
        raw_key = secrets.token_urlsafe(24)
        self.session.add(
            ApiKeyRow(key_id=generate_id("key_"), team_id=team.id, key_hash=hash_api_key(raw_key), name=name)
        )
        await self.session.commit()
        return raw_key

    async def project(self, name: str, version: str | None = None, **fields) -> ProjectRow:
        teams = fields.pop("access_teams", [])
        parent = fields.pop("parent", None)
        properties = fields.pop("properties", [])
        row = ProjectRow(uuid=generate_uuid(), name=name, version=version, **fields)
        # Assign every relationship so seeded rows never need a lazy load
        row.access_teams = list(teams)
        row.parent = parent
        row.properties = list(properties)
        self.session.add(row)
        await self.session.commit()
        return row

    @staticmethod
    def bearer(user_id: str) -> dict:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": user_id,
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_audience,
                "iat": now,
                "exp": now + timedelta(minutes=15),
            },
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        return {"Authorization": f"Bearer {token}"}


def _make_principal(name: str = "tester", permissions=MANAGER_PERMISSIONS, teams=()) -> Principal:
    return Principal(
        kind=PrincipalKind.USER,
        subject=name,
        name=name,
        teams=tuple(TeamRef(id=team.id, uuid=team.uuid, name=team.name) for team in teams),
        permissions=frozenset(permissions),
    )


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def principal_for():
    """Build detached principals for service-level tests."""
    return _make_principal


@pytest.fixture
def session_factory(db_engine):
    """Factory for fresh sessions, used to observe committed state."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def portfolio(db_session):
    return Portfolio(db_session)


@pytest.fixture
def acl_enabled(monkeypatch):
    """Switch portfolio access control on for the duration of a test."""
    monkeypatch.setattr(settings, "portfolio_access_control", True)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def app(db_engine, dispatcher):
    """Create a test application instance with in-memory DB."""
    from vantage.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    _app.state.redis = None
    _app.state.job_dispatcher = dispatcher
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def manager_headers(portfolio):
    """Bearer headers for a user holding view and management permissions."""
    await portfolio.user("manager")
    return Portfolio.bearer("manager")
