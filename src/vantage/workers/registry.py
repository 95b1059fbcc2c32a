"""Worker registry mapping job types to worker classes."""

from vantage.models.enums import JobType
from vantage.workers.base import BaseWorker


def _build_registry() -> dict[str, type[BaseWorker]]:
    from vantage.workers.clone_worker import CloneProjectWorker

    return {
        JobType.CLONE_PROJECT.value: CloneProjectWorker,
    }


_registry: dict[str, type[BaseWorker]] = {}


def _ensure_registry() -> None:
    if not _registry:
        _registry.update(_build_registry())


def get_worker(job_type: str) -> BaseWorker | None:
    """Get a worker instance for a job type."""
    _ensure_registry()
    cls = _registry.get(job_type)
    return cls() if cls else None


def registered_job_types() -> list[str]:
    _ensure_registry()
    return sorted(_registry)
