"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from vantage.api.routes import health, jobs, projects

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(projects.router)
api_router.include_router(jobs.router)
