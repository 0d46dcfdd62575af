import logging
from datetime import date
from typing import Optional

from rq import get_current_job

from spendwise.database.postgres_db import get_db_context
from spendwise.services.recurring import generate_for_user, generate_for_all_users

logger = logging.getLogger(__name__)


def _serializable(result: dict) -> dict:
    return {key: (value.isoformat() if isinstance(value, date) else value) for key, value in result.items()}


def run_recurring_generation_job(user_id: Optional[str] = None, as_of: Optional[str] = None):
    """Materialize due recurring transactions for one user or for every user."""
    job = get_current_job()

    def update_stage(stage: str, progress: dict = None):
        if job:
            job.meta["stage"] = stage
            if progress:
                job.meta["progress"] = progress
            job.save_meta()
            logger.info("Recurring job %s stage: %s progress: %s", job.id, stage, progress)

    as_of_date = date.fromisoformat(as_of) if as_of else date.today()

    try:
        update_stage("starting", {"message": "Generating recurring transactions...", "as_of": as_of_date.isoformat()})
        with get_db_context() as session:
            if user_id:
                result = generate_for_user(session, user_id, as_of_date)
            else:
                result = generate_for_all_users(session, as_of_date)

        result = _serializable(result)
        update_stage("completed", {"message": "Recurring transactions generated", **result})
        return result
    except Exception as exc:
        update_stage("failed", {"message": f"Generation failed: {str(exc)}"})
        logger.exception("Recurring generation job failed for user %s", user_id or "<all>")
        raise
