import logging
from datetime import date
from types import SimpleNamespace
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from redis.exceptions import RedisError
from rq.exceptions import NoSuchJobError
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.api.categories import category_ref, load_owned_category
from spendwise.database.db_service import DatabaseService, get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import (
    FixedCost,
    FixedCostCreate,
    FixedCostUpdate,
    PeriodicIncome,
    PeriodicIncomeCreate,
    PeriodicIncomeUpdate,
    FixedInvestment,
    FixedInvestmentCreate,
    FixedInvestmentUpdate,
    RecurringGenerationResult,
    User,
)
from spendwise.services.job_queue import enqueue_recurring_generation_job, get_job_info
from spendwise.services.recurring import RULE_KINDS, generate_for_user, resumed_pointer, upcoming_occurrence

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/financial", tags=["financial"])


def _as_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _rule_response(rule: dict, categories: dict, response_model: Type[BaseModel], today: date):
    schedule = SimpleNamespace(
        is_active=rule["is_active"],
        start_date=_as_date(rule["start_date"]),
        end_date=_as_date(rule["end_date"]),
        frequency=rule["frequency"],
        last_generated_date=_as_date(rule["last_generated_date"]),
    )
    return response_model(
        **rule,
        next_occurrence=upcoming_occurrence(schedule, today),
        category=category_ref(categories.get(rule.get("category_id"))),
    )


def _register_rule_routes(
    path: str,
    rule_type: str,
    label: str,
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    response_model: Type[BaseModel],
):
    """Register list/get/create/update/delete endpoints for one recurring rule kind."""
    _, collection, transaction_type = RULE_KINDS[rule_type]
    not_found = f"{label} not found"

    def load_rule(db: DatabaseService, user_id: str, rule_id: str) -> dict:
        rule = db.find_one(collection, {"id": rule_id, "user_id": user_id})
        if not rule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return rule

    def check_category(db: DatabaseService, user_id: str, category_id) -> Optional[str]:
        if category_id is None:
            return None
        return load_owned_category(db, user_id, category_id, transaction_type)["id"]

    @router.get(path, response_model=List[response_model], name=f"list_{collection}")
    async def list_rules(
        current_user: User = Depends(get_current_user),
        session: Session = Depends(get_session)
    ):
        db = get_db_service(session)
        categories = db.find_category_map(current_user.id)
        rules = db.find(collection, {"user_id": current_user.id}, order_by=["-amount", "start_date"])
        today = date.today()
        return [_rule_response(r, categories, response_model, today) for r in rules]

    @router.get(f"{path}/{{rule_id}}", response_model=response_model, name=f"get_{rule_type}")
    async def get_rule(
        rule_id: str,
        current_user: User = Depends(get_current_user),
        session: Session = Depends(get_session)
    ):
        db = get_db_service(session)
        rule = load_rule(db, current_user.id, rule_id)
        return _rule_response(rule, db.find_category_map(current_user.id), response_model, date.today())

    @router.post(path, response_model=response_model, status_code=status.HTTP_201_CREATED,
                 name=f"create_{rule_type}")
    async def create_rule(
        payload: create_model,
        current_user: User = Depends(get_current_user),
        session: Session = Depends(get_session)
    ):
        db = get_db_service(session)
        rule_doc = payload.model_dump()
        rule_doc["category_id"] = check_category(db, current_user.id, payload.category_id)
        rule_doc["user_id"] = current_user.id

        created = db.insert(collection, rule_doc)
        session.commit()
        logger.info("Created %s %s for user %s", rule_type, created["id"], current_user.id)

        return _rule_response(created, db.find_category_map(current_user.id), response_model, date.today())

    @router.put(f"{path}/{{rule_id}}", response_model=response_model, name=f"update_{rule_type}")
    async def update_rule(
        rule_id: str,
        payload: update_model,
        current_user: User = Depends(get_current_user),
        session: Session = Depends(get_session)
    ):
        db = get_db_service(session)
        existing = load_rule(db, current_user.id, rule_id)

        update_data = payload.model_dump(exclude_unset=True)
        if "category_id" in update_data:
            update_data["category_id"] = check_category(db, current_user.id, update_data["category_id"])
        for required in ("amount", "frequency", "start_date", "is_active", "investment_type"):
            if required in update_data and update_data[required] is None:
                del update_data[required]

        start_date = update_data.get("start_date") or _as_date(existing["start_date"])
        end_date = update_data["end_date"] if "end_date" in update_data else _as_date(existing["end_date"])
        if end_date is not None and end_date < start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end_date must be on or after start_date"
            )

        if update_data.get("is_active") and not existing["is_active"]:
            # Paused occurrences are not backfilled
            update_data["last_generated_date"] = resumed_pointer(SimpleNamespace(
                start_date=start_date,
                frequency=update_data.get("frequency", existing["frequency"]),
                last_generated_date=_as_date(existing["last_generated_date"]),
            ), date.today())

        if update_data:
            db.update(collection, rule_id, update_data)
            session.commit()

        updated = load_rule(db, current_user.id, rule_id)
        return _rule_response(updated, db.find_category_map(current_user.id), response_model, date.today())

    @router.delete(f"{path}/{{rule_id}}", name=f"delete_{rule_type}")
    async def delete_rule(
        rule_id: str,
        current_user: User = Depends(get_current_user),
        session: Session = Depends(get_session)
    ):
        db = get_db_service(session)
        load_rule(db, current_user.id, rule_id)

        # Already generated transactions stay in the history
        db.delete(collection, rule_id)
        session.commit()

        return {"message": f"{label} deleted successfully"}


_register_rule_routes(
    "/fixed-costs", "fixed_cost", "Fixed cost",
    FixedCostCreate, FixedCostUpdate, FixedCost,
)
_register_rule_routes(
    "/periodic-income", "periodic_income", "Periodic income",
    PeriodicIncomeCreate, PeriodicIncomeUpdate, PeriodicIncome,
)
_register_rule_routes(
    "/fixed-investments", "fixed_investment", "Fixed investment",
    FixedInvestmentCreate, FixedInvestmentUpdate, FixedInvestment,
)


@router.post("/recurring/generate", response_model=RecurringGenerationResult)
async def generate_recurring_transactions(
    as_of: Optional[date] = Query(None),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Materialize every due occurrence of the user's active recurring rules."""
    today = date.today()
    if as_of is not None and as_of > today:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="as_of cannot be in the future"
        )

    result = generate_for_user(session, current_user.id, as_of or today)
    session.commit()
    return result


@router.post("/recurring/generate/async")
async def queue_recurring_generation(
    current_user: User = Depends(get_current_user),
):
    try:
        job = enqueue_recurring_generation_job(current_user.id)
    except RedisError:
        logger.exception("Could not enqueue recurring generation for user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Background queue unavailable"
        )
    return {"job_id": job.id, "status": "queued"}


@router.get("/recurring/jobs/{job_id}")
async def get_recurring_job_status(
    job_id: str,
    current_user: User = Depends(get_current_user),
):
    try:
        info = get_job_info(job_id)
    except NoSuchJobError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    if info["meta"].get("user_id") != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return info
