from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.database.db_service import get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import Profile, ProfileUpdate, InitialBalanceUpdate, User
from spendwise.services.profiles import delete_profile_data

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _load_profile(db, user_id: str) -> dict:
    profile = db.find_one("profiles", {"id": user_id})
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.get("", response_model=Profile)
async def get_profile(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return Profile(**_load_profile(db, current_user.id))


@router.put("", response_model=Profile)
async def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_profile(db, current_user.id)

    update_data = payload.model_dump(exclude_unset=True)
    if update_data:
        db.update("profiles", current_user.id, update_data)
        session.commit()

    return Profile(**_load_profile(db, current_user.id))


@router.put("/initial-balance", response_model=Profile)
async def update_initial_balance(
    payload: InitialBalanceUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_profile(db, current_user.id)

    db.update("profiles", current_user.id, {"initial_balance": payload.initial_balance})
    session.commit()

    return Profile(**_load_profile(db, current_user.id))


@router.delete("")
async def delete_profile(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_profile(db, current_user.id)

    delete_profile_data(db, current_user.id)
    session.commit()

    return {"message": "Profile deleted successfully"}
