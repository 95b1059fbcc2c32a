"""Async SQLAlchemy engine and session creation."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from vantage.config import settings


def create_db_engine(url: str | None = None) -> AsyncEngine:
    """Create an async engine; SQLite gets no pool sizing."""
    db_url = url or settings.effective_database_url
    engine_kwargs: dict = {"echo": False}
    if "sqlite" not in db_url:
        engine_kwargs.update(pool_size=10, max_overflow=20, pool_pre_ping=True)
    return create_async_engine(db_url, **engine_kwargs)


def create_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
