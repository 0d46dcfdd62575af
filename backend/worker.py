import logging
import os
import signal
import sys

from redis import Redis
from rq import Worker, Queue

from spendwise.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    logger.info("Received signal %s, shutting down worker gracefully...", signum)
    sys.exit(0)


def listen_queues() -> list:
    queue_list = os.getenv("QUEUE_LIST")
    if queue_list:
        listen = [q.strip() for q in queue_list.split(",") if q.strip()]
    else:
        listen = [settings.RECURRING_QUEUE_NAME]

    seen = set()
    return [q for q in listen if not (q in seen or seen.add(q))]


def enqueue_daily_generation():
    """Queue recurring generation for every user; meant to be run from cron."""
    from spendwise.services.job_queue import enqueue_recurring_generation_job

    job = enqueue_recurring_generation_job(None)
    logger.info("Queued recurring generation job %s for all users", job.id)


def main():
    # `python worker.py enqueue-daily` queues a run for every user and exits
    if sys.argv[1:2] == ["enqueue-daily"]:
        enqueue_daily_generation()
        return

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    redis_conn = Redis.from_url(settings.REDIS_URL)
    listen = listen_queues()

    logger.info("Worker starting, listening to queues: %s", ", ".join(listen))

    worker = Worker(
        [Queue(name, connection=redis_conn) for name in listen],
        connection=redis_conn,
        log_job_description=True,
        job_monitoring_interval=5,
    )

    logger.info("Worker started and ready to process jobs")

    worker.work(
        logging_level=settings.LOG_LEVEL.upper(),
        max_jobs=None,
        with_scheduler=True,
    )


if __name__ == "__main__":
    main()
