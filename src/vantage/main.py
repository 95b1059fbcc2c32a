"""FastAPI application factory and lifespan management."""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vantage.config import settings
from vantage.db.engine import create_db_engine, create_session_factory
from vantage.logging_config import configure_logging

# Configure logging at import time
_json_logs = os.environ.get("VANTAGE_LOCAL", "0") != "1"
configure_logging(log_level=settings.log_level, json_output=_json_logs)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    engine = create_db_engine()
    db_url = settings.effective_database_url

    # Auto-create tables for SQLite (local dev, no Alembic migrations)
    if "sqlite" in db_url:
        from vantage.db.base import Base
        import vantage.db.models  # noqa: F401 (register all ORM models)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    from vantage.workers.queue import LocalJobDispatcher, RedisJobDispatcher

    # Jobs go through Redis when it is reachable, otherwise they run in-process
    consumer_task = None
    app.state.redis = None
    if not settings.local_mode:
        try:
            import redis.asyncio as aioredis

            redis = aioredis.from_url(settings.redis_url, decode_responses=True)
            await redis.ping()
            app.state.redis = redis
        except Exception as exc:
            logger.warning("Redis not available (%s), running jobs in-process", exc)

    if app.state.redis is not None:
        from vantage.workers.consumer import run_job_consumer

        app.state.job_dispatcher = RedisJobDispatcher(app.state.redis)
        consumer_task = asyncio.create_task(run_job_consumer(app))
    else:
        app.state.job_dispatcher = LocalJobDispatcher(app.state.db_session_factory)

    logger.info("Vantage API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # Shutdown
    if consumer_task is not None:
        consumer_task.cancel()
        try:
            await consumer_task
        except asyncio.CancelledError:
            pass
    if isinstance(app.state.job_dispatcher, LocalJobDispatcher):
        await app.state.job_dispatcher.drain()
    if app.state.redis:
        await app.state.redis.aclose()
    await engine.dispose()
    logger.info("Vantage API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Vantage API",
        version="1.0.0",
        description="Project portfolio API with versioned identities, hierarchy and access control.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add middleware (order matters: last added = first executed)
    from vantage.api.middleware.auth import AuthMiddleware
    from vantage.api.middleware.trace_id import TraceIdMiddleware

    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from vantage.errors.handlers import register_exception_handlers

    register_exception_handlers(app)

    from vantage.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
