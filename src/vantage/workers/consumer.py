"""Background consumer that executes queued jobs pulled from Redis."""

import asyncio
import json
import logging

from vantage.config import settings
from vantage.models.enums import JobStatus
from vantage.workers.registry import get_worker, registered_job_types

logger = logging.getLogger(__name__)


async def execute_job(session_factory, job_type: str, job_id: str, payload: dict, dispatcher=None) -> JobStatus | None:
    """Execute one job in a fresh session, re-dispatching it if the worker asks for a retry."""
    worker = get_worker(job_type)
    if worker is None:
        logger.error("No worker registered for job type %s (job=%s)", job_type, job_id)
        return None

    async with session_factory() as session:
        status = await worker.execute(job_id, payload, session)

    if status == JobStatus.QUEUED and dispatcher is not None:
        logger.info("Re-dispatching job %s for retry", job_id)
        await dispatcher.dispatch(job_type, job_id, payload)
    return status


async def run_job_consumer(app) -> None:
    """Blocking-pop jobs from every registered queue until cancelled."""
    from vantage.workers.queue import RedisJobDispatcher

    redis = app.state.redis
    dispatcher = RedisJobDispatcher(redis)
    queue_keys = {dispatcher.queue_key(job_type): job_type for job_type in registered_job_types()}
    logger.info("Job consumer started (queues=%s)", ", ".join(queue_keys))

    while True:
        try:
            item = await redis.blpop(list(queue_keys), timeout=settings.job_poll_timeout)
            if item is None:
                continue
            queue_key, raw = item
            message = json.loads(raw)
            await execute_job(
                app.state.db_session_factory,
                queue_keys[queue_key],
                message["job_id"],
                message.get("payload") or {},
                dispatcher=dispatcher,
            )
        except asyncio.CancelledError:
            logger.info("Job consumer stopped")
            break
        except Exception as exc:
            logger.exception("Job consumer error: %s", exc)
            await asyncio.sleep(1)
