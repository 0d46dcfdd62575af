from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.database.db_service import get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import FinancialGoal, FinancialGoalCreate, FinancialGoalUpdate, User

router = APIRouter(prefix="/financial/financial-goals", tags=["financial"])


def _goal_response(goal: dict) -> FinancialGoal:
    target = goal.get("target_amount") or 0.0
    progress = round(goal.get("current_amount", 0.0) / target * 100, 2) if target else 0.0
    return FinancialGoal(**goal, progress_percentage=progress)


def _load_goal(db, user_id: str, goal_id: str) -> dict:
    goal = db.find_one("financial_goals", {"id": goal_id, "user_id": user_id})
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Financial goal not found")
    return goal


@router.get("", response_model=List[FinancialGoal])
async def get_goals(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    goals = db.find("financial_goals", {"user_id": current_user.id})
    # Soonest deadline first, undated goals last
    goals.sort(key=lambda g: (g["deadline"] is None, g["deadline"] or "", g["name"].lower()))
    return [_goal_response(g) for g in goals]


@router.get("/{goal_id}", response_model=FinancialGoal)
async def get_goal(
    goal_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return _goal_response(_load_goal(db, current_user.id, goal_id))


@router.post("", response_model=FinancialGoal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal: FinancialGoalCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    goal_doc = goal.model_dump()
    goal_doc["user_id"] = current_user.id

    created = db.insert("financial_goals", goal_doc)
    session.commit()

    return _goal_response(created)


@router.put("/{goal_id}", response_model=FinancialGoal)
async def update_goal(
    goal_id: str,
    goal: FinancialGoalUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_goal(db, current_user.id, goal_id)

    update_data = goal.model_dump(exclude_unset=True)
    for required in ("name", "target_amount", "current_amount", "status"):
        if required in update_data and update_data[required] is None:
            del update_data[required]

    if update_data:
        db.update("financial_goals", goal_id, update_data)
        session.commit()

    return _goal_response(_load_goal(db, current_user.id, goal_id))


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_goal(db, current_user.id, goal_id)

    db.delete("financial_goals", goal_id)
    session.commit()

    return {"message": "Financial goal deleted successfully"}
