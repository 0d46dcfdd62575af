import logging
from datetime import date
from typing import Optional, Dict, Any

from redis import Redis
from rq import Queue
from rq.job import Job

from spendwise.config import settings

logger = logging.getLogger(__name__)

_redis_connection: Optional[Redis] = None
_recurring_queue: Optional[Queue] = None


def _get_redis_connection() -> Redis:
    global _redis_connection
    if _redis_connection is None:
        _redis_connection = Redis.from_url(settings.REDIS_URL)
    return _redis_connection


def get_recurring_queue() -> Queue:
    global _recurring_queue
    if _recurring_queue is None:
        _recurring_queue = Queue(
            settings.RECURRING_QUEUE_NAME,
            connection=_get_redis_connection(),
            default_timeout=settings.RECURRING_JOB_TIMEOUT,
        )
    return _recurring_queue


def enqueue_recurring_generation_job(user_id: Optional[str] = None, as_of: Optional[date] = None) -> Job:
    """Queue recurring materialization for one user, or for everyone when user_id is None."""
    from spendwise.tasks.recurring import run_recurring_generation_job

    as_of_value = as_of.isoformat() if as_of else None
    queue = get_recurring_queue()
    job = queue.enqueue(
        run_recurring_generation_job,
        user_id,
        as_of_value,
        job_timeout=settings.RECURRING_JOB_TIMEOUT,
    )
    job.meta = job.meta or {}
    job.meta.update({"user_id": user_id, "as_of": as_of_value})
    job.save_meta()
    logger.info("Enqueued recurring generation job %s for user %s", job.id, user_id or "<all>")
    return job


def get_job_info(job_id: str) -> Dict[str, Any]:
    job = Job.fetch(job_id, connection=_get_redis_connection())
    info = {
        "job_id": job.id,
        "status": job.get_status(),
        "enqueued_at": job.enqueued_at.isoformat() if job.enqueued_at else None,
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "ended_at": job.ended_at.isoformat() if job.ended_at else None,
        "meta": job.meta or {},
    }

    if job.is_finished:
        info["result"] = job.result
    elif job.is_failed:
        info["error"] = job.exc_info

    return info
